"""
Test: Tree Mutation Engine
==========================

Path-copying updates, lookups, construction and export of the decomposition tree.
"""

import json
import re
from dataclasses import replace

import pytest

import tree_engine
from state import Node, NodeType, new_node_id


def expand(n):
    return replace(n, is_expanded=True)


class TestUpdateNode:

    def test_update_child(self):
        child = Node(id="c1", name="Child", description="", type=NodeType.COMPONENT, level=1)
        root = Node(id="r1", name="Root", description="", type=NodeType.ROOT, level=0, children=(child,))

        new_root = tree_engine.update_node(root, "c1", expand)

        assert new_root.children[0].is_expanded is True
        assert new_root is not root
        assert new_root.id == "r1"
        assert root.children[0].is_expanded is False

    def test_update_root(self, sample_tree):
        new_root = tree_engine.update_node(sample_tree, "r1", lambda n: replace(n, is_mastered=True))
        assert new_root.is_mastered
        assert new_root.children is sample_tree.children

    def test_untouched_siblings_are_shared(self, sample_tree):
        new_root = tree_engine.update_node(sample_tree, "g2", expand)
        assert new_root.children[1] is sample_tree.children[1]          # c2
        assert new_root.children[0] is not sample_tree.children[0]      # c1 on the path
        assert new_root.children[0].children[0] is sample_tree.children[0].children[0]  # g1
        assert new_root.children[0].children[1].is_expanded

    def test_missing_id_returns_same_tree(self, sample_tree):
        result = tree_engine.update_node(sample_tree, "nope", expand)
        assert result is sample_tree
        assert result == sample_tree

    def test_leaf_without_match_returned_by_reference(self):
        leaf = Node(id="x", name="Leaf", description="", type=NodeType.FUNDAMENTAL, level=3)
        assert tree_engine.update_node(leaf, "y", expand) is leaf

    def test_update_fn_called_once(self, sample_tree):
        calls = []

        def fn(n):
            calls.append(n.id)
            return expand(n)

        tree_engine.update_node(sample_tree, "g1", fn)
        assert calls == ["g1"]

    def test_update_fn_not_called_on_miss(self, sample_tree):
        calls = []
        tree_engine.update_node(sample_tree, "missing", lambda n: calls.append(n) or n)
        assert calls == []

    def test_disjoint_updates_commute(self, sample_tree):
        f = lambda n: replace(n, is_mastered=True)
        g = lambda n: replace(n, description="changed")
        ab = tree_engine.update_node(tree_engine.update_node(sample_tree, "g1", f), "c2", g)
        ba = tree_engine.update_node(tree_engine.update_node(sample_tree, "c2", g), "g1", f)
        assert ab == ba

    def test_input_tree_unchanged(self, sample_tree):
        before = tree_engine.tree_to_dict(sample_tree)
        tree_engine.update_node(sample_tree, "g2", lambda n: replace(n, assumptions=("new",)))
        assert tree_engine.tree_to_dict(sample_tree) == before


class TestLookups:

    def test_find_node(self, sample_tree):
        assert tree_engine.find_node(sample_tree, "g2").name == "Gear Ratio"
        assert tree_engine.find_node(sample_tree, "zz") is None
        assert tree_engine.find_node(None, "r1") is None

    def test_iter_nodes_preorder(self, sample_tree):
        assert [n.id for n in tree_engine.iter_nodes(sample_tree)] == ["r1", "c1", "g1", "g2", "c2"]

    def test_path_to(self, sample_tree):
        assert [n.name for n in tree_engine.path_to(sample_tree, "g1")] == ["Car", "Engine", "Conservation of Energy"]
        assert tree_engine.path_to(sample_tree, "missing") == []

    def test_progress(self, sample_tree):
        tree = tree_engine.update_node(sample_tree, "g1", lambda n: replace(n, is_mastered=True))
        assert tree_engine.progress(tree) == {"total": 5, "mastered": 1, "fundamentals": 1}
        assert tree_engine.progress(None) == {"total": 0, "mastered": 0, "fundamentals": 0}


class TestConstruction:

    def test_new_node_id_shape(self):
        ids = {new_node_id() for _ in range(500)}
        assert len(ids) == 500
        assert all(re.fullmatch(r"[a-z0-9]{9}", i) for i in ids)

    def test_build_children_coerces_names(self):
        children = tree_engine.build_children(1, [{"name": 42}, {"name": " Torque "}])
        assert [c.name for c in children] == ["42", "Torque"]
        assert all(c.level == 2 for c in children)

    def test_build_root(self):
        data = {"assumptions": ["Cash is physical"], "core_concept": "Stored trust", "sources": [
            {"title": "T", "uri": "https://u"}]}
        components = [
            {"name": "Trust", "description": "d", "is_fundamental": False, "reasoning": "r"},
            {"name": "Scarcity", "description": "d", "is_fundamental": True, "reasoning": "r"},
        ]
        root = tree_engine.build_root("Money", data, components, image_url="data:image/png;base64,AA")

        assert root.type == NodeType.ROOT and root.level == 0 and root.is_expanded
        assert root.assumptions == ("Cash is physical",)
        assert root.core_concept == "Stored trust"
        assert root.image_url.startswith("data:image")
        assert [c.type for c in root.children] == [NodeType.COMPONENT, NodeType.FUNDAMENTAL]
        assert all(c.level == 1 for c in root.children)
        assert len({c.id for c in root.children} | {root.id}) == 3

    def test_attach_children_appends_assumptions(self, sample_tree):
        c2 = tree_engine.find_node(sample_tree, "c2")
        c2 = replace(c2, assumptions=("old",), is_loading=True)
        data = {"assumptions": ["new"], "core_concept": "Rolling", "sources": []}
        updated = tree_engine.attach_children(c2, data, [{"name": "Friction", "is_fundamental": True}])

        assert updated.assumptions == ("old", "new")
        assert updated.is_loading is False and updated.is_expanded is True
        assert updated.children[0].level == c2.level + 1
        assert updated.children[0].type == NodeType.FUNDAMENTAL
        assert updated.core_concept == "Rolling"

    def test_attach_children_keeps_existing_enrichment(self):
        node = Node(id="n", name="N", description="", type=NodeType.COMPONENT, level=1, analogy="Original")
        updated = tree_engine.attach_children(node, {"analogy": "Replacement"}, [])
        assert updated.analogy == "Original"


class TestExport:

    def test_to_dict_is_json_serializable(self, sample_tree):
        data = tree_engine.tree_to_dict(sample_tree)
        text = json.dumps(data)
        assert data["type"] == "ROOT"
        assert data["children"][0]["children"][0]["type"] == "FUNDAMENTAL"
        assert data["children"][0]["assumptions"] == ["Fuel is cheap"]
        assert "is_mastered" in data and "learning_question" in data
        assert json.loads(text) == data

    def test_round_trip(self, sample_tree):
        tree = tree_engine.update_node(sample_tree, "c2", lambda n: replace(
            n, sources=({"title": "T", "uri": "https://u"},), learning_question="Why?"))
        assert tree_engine.tree_from_dict(json.loads(json.dumps(tree_engine.tree_to_dict(tree)))) == tree

    def test_from_dict_ignores_unknown_fields(self):
        node = tree_engine.tree_from_dict({"id": "a", "name": "A", "description": "", "type": "COMPONENT",
                                           "level": 1, "extra": "ignored"})
        assert node.id == "a" and node.children == ()

    @pytest.mark.parametrize("node_type", list(NodeType))
    def test_type_values(self, node_type):
        node = Node(id="a", name="A", description="", type=node_type, level=0)
        assert tree_engine.tree_from_dict(tree_engine.tree_to_dict(node)).type is node_type
