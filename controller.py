# Script Version: 1.0.0 | Phase 3: Interaction Flow
# Description: Sequences user actions (analyze, review, execute, expand, elaborate) into backend calls and tree updates.
# Implementation: The tree is only ever replaced whole (via tree_engine.update_node); all methods run on one asyncio loop.

import asyncio
from dataclasses import replace
from enum import Enum
from typing import Callable, List, Optional

import tree_engine
from normalizer import normalize_components
from orchestrator import RequestOrchestrator
from state import Node, QueryAnalysis


class Phase(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    REVIEW = "REVIEW"
    PROCESSING = "PROCESSING"


class ControllerError(Exception):
    """An action was requested that the current state does not allow."""


Listener = Callable[[str, "ApplicationController"], None]


class ApplicationController:
    """
    Holds the session state (phase, query analysis, tree, selection) and applies
    every change as a whole-tree replacement, so readers between suspension points
    always see a complete tree.
    """
    def __init__(self, orchestrator: RequestOrchestrator):
        self.orchestrator = orchestrator
        self.phase = Phase.IDLE
        self.analysis: Optional[QueryAnalysis] = None
        self.root: Optional[Node] = None
        self.selected_id: Optional[str] = None
        self.error: Optional[str] = None
        self._generation = 0
        self._listeners: List[Listener] = []

    # --- Observers ---

    def add_listener(self, callback: Listener):
        self._listeners.append(callback)

    def _notify(self, event: str):
        for callback in list(self._listeners):
            callback(event, self)

    def _set_phase(self, phase: Phase):
        print(f"[CONTROLLER] {self.phase.value} -> {phase.value}")
        self.phase = phase
        self._notify("phase")

    def _fail(self, message: str, exc: Exception):
        print(f"[ERROR] [Controller] {message}: {exc}")
        self.error = message
        self._notify("error")

    def _set_root(self, root: Optional[Node]):
        self.root = root
        self._notify("tree")

    def _apply(self, generation: int, node_id: str, update_fn) -> bool:
        """Applies an update if the tree it was issued against is still current."""
        if generation != self._generation or self.root is None:
            print(f"[CONTROLLER] Dropping late update for node {node_id} (tree was replaced).")
            return False
        self._set_root(tree_engine.update_node(self.root, node_id, update_fn))
        return True

    # --- Read access ---

    @property
    def selected_node(self) -> Optional[Node]:
        if self.selected_id is None:
            return None
        return tree_engine.find_node(self.root, self.selected_id)

    def get_node(self, node_id: str) -> Optional[Node]:
        return tree_engine.find_node(self.root, node_id)

    def progress(self):
        return tree_engine.progress(self.root)

    def export_tree(self) -> Optional[dict]:
        """Snapshot of the current tree (the last fully-formed one while PROCESSING)."""
        if self.root is None:
            return None
        return tree_engine.tree_to_dict(self.root)

    # --- Search session ---

    async def submit_query(self, text: str) -> Optional[QueryAnalysis]:
        query = (text or "").strip()
        if not query:
            raise ControllerError("Query is empty.")
        if self.phase not in (Phase.IDLE, Phase.REVIEW):
            raise ControllerError(f"Cannot submit a query while {self.phase.value}.")

        # A new top-level query discards the previous tree and anything in flight for it.
        self._generation += 1
        self.error = None
        self.analysis = None
        self.selected_id = None
        self._set_root(None)
        self._set_phase(Phase.ANALYZING)

        try:
            analysis = await self.orchestrator.analyze_query(query)
        except Exception as e:
            self._set_phase(Phase.IDLE)
            self._fail("Failed to analyze query. Please check your API key and try again.", e)
            return None

        self.analysis = analysis
        self._notify("analysis")
        self._set_phase(Phase.REVIEW)
        if analysis.get("is_ambiguous"):
            print(f"[CONTROLLER] Query is ambiguous: {analysis.get('ambiguity_options')}")
        return analysis

    async def choose_interpretation(self, option: str) -> Optional[QueryAnalysis]:
        if self.phase != Phase.REVIEW or self.analysis is None:
            raise ControllerError("No analysis to disambiguate.")
        return await self.submit_query(option)

    async def _illustration_or_none(self, topic: str) -> Optional[str]:
        try:
            return await self.orchestrator.generate_illustration(topic)
        except Exception as e:
            print(f"[WARNING] [Controller] Illustration failed, continuing without image: {e}")
            return None

    async def confirm(self) -> Optional[Node]:
        """REVIEW -> PROCESSING: full decomposition plus an optional illustration, concurrently."""
        if self.phase != Phase.REVIEW or self.analysis is None:
            raise ControllerError("Nothing to confirm; submit a query first.")

        analysis = self.analysis
        topic = analysis.get("corrected_query") or analysis.get("original_query", "")
        self.error = None
        self._set_phase(Phase.PROCESSING)

        try:
            data, image_url = await asyncio.gather(
                self.orchestrator.decompose(
                    topic,
                    analysis.get("enrichment", ""),
                    analysis.get("intent", "CONCEPT"),
                    analysis.get("domain", "General")
                ),
                self._illustration_or_none(topic)
            )
        except Exception as e:
            self._set_phase(Phase.REVIEW)
            self._fail("Failed to decompose topic. The analysis is kept, try again.", e)
            return None

        components = normalize_components(data.get("components"), topic)
        root = tree_engine.build_root(topic, data, components, image_url=image_url)
        print(f"[CONTROLLER] Tree created for '{topic}' with {len(root.children)} components "
              f"({data.get('data_source')}).")
        self.selected_id = root.id
        self._set_root(root)
        self._notify("selection")
        self._set_phase(Phase.IDLE)
        return root

    # --- Node actions ---

    def select_node(self, node_id: str) -> Optional[Node]:
        node = self.get_node(node_id)
        if node is not None:
            self.selected_id = node_id
            self._notify("selection")
        return node

    def toggle_mastered(self, node_id: str):
        if self.root is None:
            return
        self._set_root(tree_engine.update_node(self.root, node_id, lambda n: replace(n, is_mastered=not n.is_mastered)))

    def _parent_context(self, node_id: str) -> str:
        return " > ".join(n.name for n in tree_engine.path_to(self.root, node_id))

    async def expand_node(self, node_id: str) -> Optional[Node]:
        """
        Toggles an already-decomposed node, or fetches its children. Returns the
        updated node, or None when nothing was done.
        """
        node = self.get_node(node_id)
        if node is None:
            return None
        if node.has_children:
            self._set_root(tree_engine.update_node(self.root, node_id, lambda n: replace(n, is_expanded=not n.is_expanded)))
            return self.get_node(node_id)
        if node.is_loading:
            print(f"[CONTROLLER] '{node.name}' is already being decomposed.")
            return None
        if node.is_fundamental:
            print(f"[CONTROLLER] '{node.name}' is fundamental; nothing to decompose.")
            return None

        generation = self._generation
        context = self._parent_context(node_id)
        self._apply(generation, node_id, lambda n: replace(n, is_loading=True))

        try:
            data = await self.orchestrator.verify(node.name, context)
        except Exception as e:
            self._apply(generation, node_id, lambda n: replace(n, is_loading=False))
            self._fail(f"Failed to decompose '{node.name}'.", e)
            return None

        components = normalize_components(data.get("components"), node.name)
        if not self._apply(generation, node_id, lambda n: tree_engine.attach_children(n, data, components)):
            return None
        print(f"[CONTROLLER] '{node.name}' decomposed into {len(components)} components.")
        return self.get_node(node_id)

    async def _fill_text(self, node_id: str, flag: str, field: str, call) -> Optional[str]:
        node = self.get_node(node_id)
        if node is None:
            return None
        if getattr(node, flag):
            print(f"[CONTROLLER] '{node.name}' already has a {field} request in flight.")
            return None

        generation = self._generation
        self._apply(generation, node_id, lambda n: replace(n, **{flag: True}))
        try:
            text = await call(node.name, node.description)
        except Exception as e:
            self._apply(generation, node_id, lambda n: replace(n, **{flag: False}))
            self._fail(f"Failed to load {field.replace('_', ' ')} for '{node.name}'.", e)
            return None

        self._apply(generation, node_id, lambda n: replace(n, **{flag: False, field: text}))
        return text

    async def elaborate(self, node_id: str) -> Optional[str]:
        return await self._fill_text(node_id, "is_elaborating", "detailed_explanation",
                                     self.orchestrator.elaborate)

    async def generate_question(self, node_id: str) -> Optional[str]:
        return await self._fill_text(node_id, "is_generating_question", "learning_question",
                                     self.orchestrator.generate_challenge_question)
