# Script Version: 1.0.0 | Phase 2: Orchestration
# Description: Resilient access to the reasoning backend: bounded exponential backoff and offline fallbacks.
# Implementation: The backend is injected at construction; None means offline and no call is ever attempted.

import asyncio
import re
from typing import Any, Awaitable, Callable, Optional, TypeVar

from agents import ResponseParseError
from state import DataSource, DecompositionResult, QueryAnalysis, SearchMode

T = TypeVar("T")

MAX_RETRIES = 3
BASE_DELAY_MS = 2000
TRANSIENT_STATUS_CODES = (429, 503)
TRANSIENT_MESSAGE = re.compile(r"\b(429|503)\b")

ELABORATION_FALLBACK = "Elaboration unavailable in offline mode."
QUESTION_FALLBACK = "Socratic questions are unavailable in offline mode."


def is_transient_error(error: BaseException) -> bool:
    """Rate limit (429) or overload (503), by status field or by message. Parse errors never are."""
    if isinstance(error, ResponseParseError):
        return False
    response = getattr(error, "response", None)
    candidates = (
        getattr(error, "status_code", None),
        getattr(error, "status", None),
        getattr(error, "code", None),
        getattr(response, "status_code", None),
    )
    if any(code in TRANSIENT_STATUS_CODES for code in candidates):
        return True
    return TRANSIENT_MESSAGE.search(str(error)) is not None


async def call_with_retry(operation: Callable[[], Awaitable[T]],
                          max_retries: int = MAX_RETRIES,
                          base_delay_ms: int = BASE_DELAY_MS,
                          sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep) -> T:
    """
    Runs `operation` until it succeeds, fails permanently, or `max_retries` retries
    have been spent. Waits double after each transient failure.
    """
    retries = max_retries
    delay = base_delay_ms
    while True:
        try:
            return await operation()
        except Exception as e:
            if retries <= 0 or not is_transient_error(e):
                raise
            print(f"[ORCHESTRATOR] Backend busy/rate-limited. Retrying in {delay}ms... "
                  f"({retries} attempts remaining)")
            await sleep(delay / 1000.0)
            retries -= 1
            delay *= 2


# --- FALLBACK PAYLOADS ---

def fallback_analysis(query: str) -> QueryAnalysis:
    return {
        "original_query": query,
        "corrected_query": query,
        "intent": SearchMode.CONCEPT.value,
        "domain": "General",
        "is_ambiguous": False,
        "ambiguity_options": [],
        "enrichment": "Basic analysis (Offline)",
        "predicted_topics": ["Overview", "Details"],
        "data_source": DataSource.FALLBACK.value
    }


def fallback_decomposition(topic: str) -> DecompositionResult:
    return {
        "core_concept": f"{topic} (Offline Mode)",
        "analogy": "System offline",
        "why_important": "Cannot retrieve importance without AI",
        "components": [
            {"name": "Component 1", "description": "Placeholder data", "is_fundamental": False, "reasoning": "Offline"},
            {"name": "Component 2", "description": "Placeholder data", "is_fundamental": False, "reasoning": "Offline"}
        ],
        "assumptions": ["Data is offline"],
        "sources": [],
        "data_source": DataSource.FALLBACK.value
    }


def _tag_ai(result: dict) -> dict:
    tagged = dict(result)
    tagged["data_source"] = DataSource.AI.value
    return tagged


class RequestOrchestrator:
    """
    Single entry point for every outbound reasoning call. Only this layer retries.
    """
    def __init__(self, capability=None, max_retries: int = MAX_RETRIES, base_delay_ms: int = BASE_DELAY_MS,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.capability = capability
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self._sleep = sleep
        mode = "ONLINE" if capability is not None else "OFFLINE (fallback data)"
        print(f"[ORCHESTRATOR] Initialized in {mode} mode "
              f"(max_retries={max_retries}, base_delay={base_delay_ms}ms)")

    @classmethod
    def from_settings(cls, settings, capability=None) -> "RequestOrchestrator":
        return cls(
            capability,
            max_retries=int(settings.get("max_retries", MAX_RETRIES)),
            base_delay_ms=int(settings.get("base_delay_ms", BASE_DELAY_MS))
        )

    @property
    def is_online(self) -> bool:
        return self.capability is not None

    async def _call(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await call_with_retry(operation, self.max_retries, self.base_delay_ms, sleep=self._sleep)

    async def analyze_query(self, text: str) -> QueryAnalysis:
        if not self.is_online:
            return fallback_analysis(text)
        result = await self._call(lambda: self.capability.analyze_query(text))
        return _tag_ai(result)

    async def decompose(self, topic: str, enrichment: str, mode: str, domain: str) -> DecompositionResult:
        if not self.is_online:
            return fallback_decomposition(topic)
        result = await self._call(lambda: self.capability.decompose(topic, enrichment, mode, domain))
        return _tag_ai(result)

    async def verify(self, component_name: str, parent_context: str) -> DecompositionResult:
        if not self.is_online:
            return fallback_decomposition(component_name)
        result = await self._call(lambda: self.capability.verify(component_name, parent_context))
        return _tag_ai(result)

    async def elaborate(self, topic: str, description: str) -> str:
        if not self.is_online:
            return ELABORATION_FALLBACK
        text = await self._call(lambda: self.capability.elaborate(topic, description))
        return text or "No elaboration available."

    async def generate_challenge_question(self, topic: str, description: str) -> str:
        if not self.is_online:
            return QUESTION_FALLBACK
        text = await self._call(lambda: self.capability.generate_challenge_question(topic, description))
        return text or "No question available."

    async def generate_illustration(self, topic: str) -> Optional[str]:
        """Single attempt: the image is optional and must not hold up the tree."""
        if not self.is_online:
            return None
        return await self.capability.generate_illustration(topic)
