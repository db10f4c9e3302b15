"""
Pytest configuration and shared fixtures for Bedrock tests.
"""

import asyncio

import pytest

from orchestrator import RequestOrchestrator
from state import Node, NodeType


class TransientError(Exception):
    def __init__(self, status_code=429):
        super().__init__(f"Error code: {status_code} - busy")
        self.status_code = status_code


class FakeCapability:
    """
    Scripted stand-in for the reasoning backend. Each operation pops its next
    scripted outcome (a value, or an exception instance to raise) and records
    the call.
    """
    def __init__(self):
        self.calls = []
        self.scripts = {}
        self.gates = {}

    def script(self, operation, *outcomes):
        self.scripts.setdefault(operation, []).extend(outcomes)

    def gate(self, operation, key):
        """Blocks `operation` for `key` until the returned event is set."""
        event = asyncio.Event()
        self.gates[(operation, key)] = event
        return event

    async def _run(self, operation, key, *args):
        self.calls.append((operation, args))
        event = self.gates.get((operation, key))
        if event is not None:
            await event.wait()
        queue = self.scripts.get(operation) or []
        outcome = queue.pop(0) if queue else self._default(operation, key)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def _default(self, operation, key):
        if operation == "analyze_query":
            return {
                "original_query": key, "corrected_query": key, "intent": "CONCEPT",
                "domain": "Physics", "is_ambiguous": False, "ambiguity_options": [],
                "enrichment": "Focus on mechanics", "predicted_topics": ["Mass"]
            }
        if operation in ("decompose", "verify"):
            return {
                "core_concept": f"{key} core", "analogy": "Like a pump", "why_important": "Enables motion",
                "components": [
                    {"name": f"{key} part A", "description": "A", "is_fundamental": False, "reasoning": "r"},
                    {"name": f"{key} part B", "description": "B", "is_fundamental": True, "reasoning": "r"}
                ],
                "assumptions": [f"{key} assumption"],
                "sources": []
            }
        if operation == "generate_illustration":
            return "data:image/png;base64,AAAA"
        return f"{operation} text for {key}"

    async def analyze_query(self, text):
        return await self._run("analyze_query", text, text)

    async def decompose(self, topic, enrichment, mode, domain):
        return await self._run("decompose", topic, topic, enrichment, mode, domain)

    async def verify(self, component_name, parent_context):
        return await self._run("verify", component_name, component_name, parent_context)

    async def elaborate(self, topic, description):
        return await self._run("elaborate", topic, topic, description)

    async def generate_challenge_question(self, topic, description):
        return await self._run("generate_challenge_question", topic, topic, description)

    async def generate_illustration(self, topic):
        return await self._run("generate_illustration", topic, topic)


class RecordingSleep:
    """Records backoff waits (in seconds) without actually waiting."""
    def __init__(self):
        self.waits = []

    async def __call__(self, seconds):
        self.waits.append(seconds)


@pytest.fixture
def transient():
    """Factory for errors carrying a 429/503 status code."""
    return TransientError


@pytest.fixture
def capability():
    return FakeCapability()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def orchestrator(capability, recording_sleep):
    return RequestOrchestrator(capability, max_retries=3, base_delay_ms=2000, sleep=recording_sleep)


@pytest.fixture
def offline_orchestrator():
    return RequestOrchestrator(None)


@pytest.fixture
def sample_tree():
    """
    r1 (ROOT)
    ├── c1 (COMPONENT)
    │   ├── g1 (FUNDAMENTAL)
    │   └── g2 (COMPONENT)
    └── c2 (COMPONENT)
    """
    g1 = Node(id="g1", name="Conservation of Energy", description="Law", type=NodeType.FUNDAMENTAL, level=2)
    g2 = Node(id="g2", name="Gear Ratio", description="Design", type=NodeType.COMPONENT, level=2)
    c1 = Node(id="c1", name="Engine", description="Converts fuel", type=NodeType.COMPONENT, level=1,
              children=(g1, g2), assumptions=("Fuel is cheap",), is_expanded=True)
    c2 = Node(id="c2", name="Wheels", description="Roll", type=NodeType.COMPONENT, level=1)
    return Node(id="r1", name="Car", description="Root Subject", type=NodeType.ROOT, level=0,
                children=(c1, c2), assumptions=("Roads exist",), is_expanded=True)
