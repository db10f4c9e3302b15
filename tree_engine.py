# Script Version: 1.0.0 | Phase 1: Decomposition Core
# Description: Structural updates, lookups and (de)serialization for the immutable decomposition tree.
# Implementation: Path-copying rebuild; untouched subtrees are returned by reference.

from dataclasses import fields, replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from state import Component, DecompositionResult, Node, NodeType, new_node_id

UpdateFn = Callable[[Node], Node]


def update_node(root: Node, target_id: str, update_fn: UpdateFn) -> Node:
    """
    Returns a new tree where the node with `target_id` is replaced by `update_fn(node)`.
    Only the path from the root to the target is rebuilt. If the id is not present,
    the original root is returned as-is.
    """
    if root.id == target_id:
        return update_fn(root)
    if not root.children:
        return root

    changed = False
    new_children = []
    for child in root.children:
        if changed:
            # ids are unique, nothing left to match
            new_children.append(child)
            continue
        new_child = update_node(child, target_id, update_fn)
        if new_child is not child:
            changed = True
        new_children.append(new_child)

    if not changed:
        return root
    return replace(root, children=tuple(new_children))


def iter_nodes(root: Optional[Node]) -> Iterator[Node]:
    """Depth-first, pre-order."""
    if root is None:
        return
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_node(root: Optional[Node], node_id: str) -> Optional[Node]:
    for node in iter_nodes(root):
        if node.id == node_id:
            return node
    return None


def path_to(root: Optional[Node], node_id: str) -> List[Node]:
    """Nodes from the root down to `node_id` (inclusive); empty if absent."""
    if root is None:
        return []
    if root.id == node_id:
        return [root]
    for child in root.children:
        sub = path_to(child, node_id)
        if sub:
            return [root] + sub
    return []


def build_children(parent_level: int, components: Sequence[Component]) -> tuple:
    return tuple(
        Node(
            id=new_node_id(),
            name=str(comp["name"] if comp.get("name") is not None else "").strip(),
            description=comp.get("description", ""),
            type=NodeType.FUNDAMENTAL if comp.get("is_fundamental") else NodeType.COMPONENT,
            level=parent_level + 1,
            reasoning=comp.get("reasoning"),
        )
        for comp in components
    )


def build_root(topic: str, data: DecompositionResult, components: Sequence[Component],
               image_url: Optional[str] = None) -> Node:
    """Creates the level-0 node with its first generation of children already attached."""
    return Node(
        id=new_node_id(),
        name=topic,
        description="Root Subject",
        type=NodeType.ROOT,
        level=0,
        children=build_children(0, components),
        assumptions=tuple(data.get("assumptions") or ()),
        core_concept=data.get("core_concept"),
        analogy=data.get("analogy"),
        why_important=data.get("why_important"),
        sources=tuple(data.get("sources") or ()),
        image_url=image_url,
        is_expanded=True,
    )


def attach_children(node: Node, data: DecompositionResult, components: Sequence[Component]) -> Node:
    """Update rule for a completed expansion. Assumptions are appended, never replaced."""
    return replace(
        node,
        children=build_children(node.level, components),
        assumptions=node.assumptions + tuple(data.get("assumptions") or ()),
        core_concept=node.core_concept or data.get("core_concept"),
        analogy=node.analogy or data.get("analogy"),
        why_important=node.why_important or data.get("why_important"),
        sources=node.sources or tuple(data.get("sources") or ()),
        is_loading=False,
        is_expanded=True,
    )


def progress(root: Optional[Node]) -> Dict[str, int]:
    total = mastered = fundamentals = 0
    for node in iter_nodes(root):
        total += 1
        if node.is_mastered:
            mastered += 1
        if node.type == NodeType.FUNDAMENTAL:
            fundamentals += 1
    return {"total": total, "mastered": mastered, "fundamentals": fundamentals}


# --- Export ---

def tree_to_dict(node: Node) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for f in fields(Node):
        value = getattr(node, f.name)
        if f.name == "children":
            value = [tree_to_dict(child) for child in value]
        elif f.name == "type":
            value = value.value
        elif f.name == "sources":
            value = [dict(src) for src in value]
        elif isinstance(value, tuple):
            value = list(value)
        data[f.name] = value
    return data


def tree_from_dict(data: Dict[str, Any]) -> Node:
    known = {f.name for f in fields(Node)}
    kwargs = {k: v for k, v in data.items() if k in known}
    kwargs["type"] = NodeType(kwargs["type"])
    kwargs["children"] = tuple(tree_from_dict(child) for child in data.get("children") or [])
    kwargs["assumptions"] = tuple(data.get("assumptions") or [])
    kwargs["sources"] = tuple({"title": s["title"], "uri": s["uri"]} for s in data.get("sources") or [])
    return Node(**kwargs)
