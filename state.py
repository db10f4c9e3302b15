# Script Version: 1.0.0 | Phase 1: Decomposition Core
# Description: Shared entity definitions for the decomposition tree and the reasoning payloads.
# Implementation: Nodes are frozen dataclasses (tuples for collections) so every update builds a new value.

import secrets
import string
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, TypedDict

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 9


class NodeType(str, Enum):
    ROOT = "ROOT"
    COMPONENT = "COMPONENT"
    FUNDAMENTAL = "FUNDAMENTAL"


class SearchMode(str, Enum):
    CONCEPT = "CONCEPT"
    PROBLEM = "PROBLEM"
    COMPARE = "COMPARE"
    WHY = "WHY"


class DataSource(str, Enum):
    AI = "AI"
    FALLBACK = "FALLBACK"


class Source(TypedDict):
    title: str
    uri: str


class Component(TypedDict, total=False):
    name: str
    description: str
    is_fundamental: bool
    reasoning: str


class QueryAnalysis(TypedDict, total=False):
    """Interpreted user intent for one search session."""
    original_query: str
    corrected_query: str
    intent: str  # SearchMode value
    domain: str
    is_ambiguous: bool
    ambiguity_options: List[str]
    enrichment: str
    predicted_topics: List[str]
    data_source: str


class DecompositionResult(TypedDict, total=False):
    """One decomposition/verification response, consumed immediately by the controller."""
    core_concept: str
    analogy: str
    why_important: str
    components: List[Component]
    assumptions: List[str]
    sources: List[Source]
    data_source: str


def new_node_id() -> str:
    """Random 9-character alphanumeric token. No ordering guarantee."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


@dataclass(frozen=True)
class Node:
    """
    A vertex of the decomposition tree.
    Children are owned exclusively by their parent; the tree is replaced, never edited.
    """
    id: str
    name: str
    description: str
    type: NodeType
    level: int
    children: Tuple["Node", ...] = ()
    assumptions: Tuple[str, ...] = ()

    # Enrichment
    reasoning: Optional[str] = None
    core_concept: Optional[str] = None
    analogy: Optional[str] = None
    why_important: Optional[str] = None
    sources: Tuple[Source, ...] = ()
    detailed_explanation: Optional[str] = None
    learning_question: Optional[str] = None
    image_url: Optional[str] = None

    # Transient UI state
    is_expanded: bool = False
    is_loading: bool = False
    is_elaborating: bool = False
    is_generating_question: bool = False
    is_mastered: bool = False

    @property
    def has_children(self) -> bool:
        return len(self.children) > 0

    @property
    def is_fundamental(self) -> bool:
        return self.type == NodeType.FUNDAMENTAL
