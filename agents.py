# Script Version: 1.0.0 | Phase 2: Reasoning Backend
# Description: Agents wrapping each call to the external reasoning model (OpenRouter via langchain).
# Implementation: One async call per agent run; no retries here (see orchestrator.call_with_retry).

import os
from typing import Any, Dict, List, Optional

import httpx
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from normalizer import extract_json, extract_sources
from state import DecompositionResult, QueryAnalysis, SearchMode

OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"
API_KEY_PLACEHOLDER = "YOUR_API_KEY_HERE"

ANALYSIS_KEYS = ("corrected_query", "intent", "domain", "is_ambiguous", "enrichment", "predicted_topics")
DECOMPOSITION_KEYS = ("core_concept", "analogy", "why_important", "components", "assumptions")


class CapabilityError(Exception):
    """Failure reported by the reasoning backend. `status_code` drives the retry decision."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseParseError(CapabilityError):
    """The backend answered, but not with the payload we asked for. Never retried."""


def _citation_chunks(response: Any) -> List[Dict]:
    """Collects url_citation annotations / grounding chunks wherever langchain put them."""
    chunks: List[Dict] = []
    for meta in (getattr(response, "additional_kwargs", None), getattr(response, "response_metadata", None)):
        if not isinstance(meta, dict):
            continue
        chunks.extend(meta.get("annotations") or [])
        chunks.extend(meta.get("grounding_chunks") or [])
    content = getattr(response, "content", None)
    if isinstance(content, list):
        for block in content:
            if isinstance(block, dict):
                chunks.extend(block.get("annotations") or [])
    return chunks


def _response_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        content = "".join(parts)
    return (content or "").strip()


class BaseAgent:
    """Base class for all agents to handle LLM and externalized prompts."""
    prompt_key = ""
    default_system = ""

    def __init__(self, llm: ChatOpenAI, prompts):
        self.llm = llm
        self.prompts = prompts

    def _messages(self, **kwargs) -> List:
        p = self.prompts.get(self.prompt_key)
        system_content = p.get("system") or self.default_system
        user_content = p.get("user_template", "").format(**kwargs)
        messages = [HumanMessage(content=user_content)]
        if system_content:
            messages.insert(0, SystemMessage(content=system_content))
        return messages

    async def _ask(self, **kwargs) -> Any:
        return await self.llm.ainvoke(self._messages(**kwargs))

    def _parse_object(self, response: Any, required_keys) -> Dict[str, Any]:
        """JSON agents only. Text agents return the raw (possibly empty) reply."""
        text = _response_text(response)
        if not text:
            raise ResponseParseError("No response from AI")
        try:
            parsed = extract_json(text)
        except ValueError as e:
            raise ResponseParseError(f"Malformed JSON from AI: {e}") from e
        if not isinstance(parsed, dict):
            raise ResponseParseError("Expected a JSON object from AI")
        missing = [k for k in required_keys if k not in parsed]
        if missing:
            raise ResponseParseError(f"AI response missing keys: {', '.join(missing)}")
        return parsed


class QueryAnalysisAgent(BaseAgent):
    """Interprets a raw user query: spelling, intent, domain and ambiguity."""
    prompt_key = "analyze_query"
    default_system = "You analyze queries for a first-principles decomposition engine."

    async def run(self, query: str) -> QueryAnalysis:
        print(f"[AGENT] [Analyze] Interpreting query: {query}")
        parsed = self._parse_object(await self._ask(query=query), ANALYSIS_KEYS)
        parsed.setdefault("original_query", query)
        if parsed.get("intent") not in {m.value for m in SearchMode}:
            parsed["intent"] = SearchMode.CONCEPT.value
        parsed["ambiguity_options"] = list(parsed.get("ambiguity_options") or [])
        return parsed


class _DecompositionAgent(BaseAgent):
    def _to_result(self, response: Any) -> DecompositionResult:
        parsed = self._parse_object(response, DECOMPOSITION_KEYS)
        if not isinstance(parsed["components"], list):
            raise ResponseParseError("AI response 'components' is not a list")
        parsed["assumptions"] = [str(a) for a in parsed.get("assumptions") or []]
        parsed["sources"] = extract_sources(_citation_chunks(response))
        return parsed


class DecomposeTopicAgent(_DecompositionAgent):
    """Breaks a topic into fundamental principles and design choices."""
    prompt_key = "decompose_topic"

    async def run(self, topic: str, enrichment: str, mode: str, domain: str) -> DecompositionResult:
        print(f"[AGENT] [Decompose] Decomposing topic: {topic} (mode: {mode}, domain: {domain})")
        response = await self._ask(topic=topic, enrichment=enrichment, mode=mode, domain=domain)
        return self._to_result(response)


class VerifyComponentAgent(_DecompositionAgent):
    """Checks whether a component is fundamental and decomposes it if not."""
    prompt_key = "verify_component"

    async def run(self, component_name: str, parent_context: str) -> DecompositionResult:
        print(f"[AGENT] [Verify] Verifying component: {component_name}")
        response = await self._ask(component=component_name, context=parent_context)
        return self._to_result(response)


class ElaborationAgent(BaseAgent):
    prompt_key = "elaborate"

    async def run(self, topic: str, description: str) -> str:
        print(f"[AGENT] [Elaborate] Drafting explanation for: {topic}")
        return _response_text(await self._ask(topic=topic, description=description))


class ChallengeQuestionAgent(BaseAgent):
    prompt_key = "challenge_question"

    async def run(self, topic: str, description: str) -> str:
        print(f"[AGENT] [Socratic] Generating question for: {topic}")
        return _response_text(await self._ask(topic=topic, description=description))


class IllustrationAgent:
    """Requests a schematic illustration through OpenRouter's image modality."""
    def __init__(self, api_key: str, model_id: str, prompts, timeout: float = 120.0, transport=None):
        self.api_key = api_key
        self.model_id = model_id
        self.prompts = prompts
        self.timeout = timeout
        self.transport = transport

    async def run(self, topic: str) -> Optional[str]:
        print(f"[AGENT] [Illustrate] Requesting illustration for: {topic}")
        prompt = self.prompts.get("illustration").get("user_template", "{topic}").format(topic=topic)
        payload = {
            "model": self.model_id,
            "messages": [{"role": "user", "content": prompt}],
            "modalities": ["image", "text"]
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(f"{OPENROUTER_API_BASE}/chat/completions", json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()

        choices = data.get("choices") or []
        if not choices:
            return None
        for image in choices[0].get("message", {}).get("images") or []:
            url = (image.get("image_url") or {}).get("url")
            if url:
                return url
        return None


class ReasoningCapability:
    """
    The configured reasoning backend. One method per external operation;
    each method is a single attempt.
    """
    def __init__(self, analyst, architect, verifier, elaborator, tutor, illustrator):
        self.analyst = analyst
        self.architect = architect
        self.verifier = verifier
        self.elaborator = elaborator
        self.tutor = tutor
        self.illustrator = illustrator

    async def analyze_query(self, text: str) -> QueryAnalysis:
        return await self.analyst.run(text)

    async def decompose(self, topic: str, enrichment: str, mode: str, domain: str) -> DecompositionResult:
        return await self.architect.run(topic, enrichment, mode, domain)

    async def verify(self, component_name: str, parent_context: str) -> DecompositionResult:
        return await self.verifier.run(component_name, parent_context)

    async def elaborate(self, topic: str, description: str) -> str:
        return await self.elaborator.run(topic, description)

    async def generate_challenge_question(self, topic: str, description: str) -> str:
        return await self.tutor.run(topic, description)

    async def generate_illustration(self, topic: str) -> Optional[str]:
        return await self.illustrator.run(topic)


def _get_llm(settings, role: str, api_key: str) -> ChatOpenAI:
    """Retrieves role-specific model and temperature from settings."""
    role_cfg = settings.get_role(role)
    model_id = role_cfg["model_id"]
    temp = role_cfg["temperature"]

    print(f"[AGENT] Role '{role}' using model: {model_id} (temp: {temp})")

    return ChatOpenAI(
        model_name=model_id,
        openai_api_key=api_key,
        openai_api_base=OPENROUTER_API_BASE,
        temperature=temp,
        timeout=settings.get("api_timeout"),
        max_retries=0  # backoff is owned by orchestrator.call_with_retry
    )


def build_capability(settings, prompts, api_key: Optional[str] = None) -> Optional[ReasoningCapability]:
    """Returns None when no usable OPENROUTER_API_KEY is configured (offline mode)."""
    api_key = api_key or os.getenv("OPENROUTER_API_KEY")
    if not api_key or api_key == API_KEY_PLACEHOLDER:
        print("[WARNING] OPENROUTER_API_KEY not set. Running in offline mode.")
        return None

    analyst_llm = _get_llm(settings, "analyst", api_key)
    architect_llm = _get_llm(settings, "architect", api_key)
    tutor_llm = _get_llm(settings, "tutor", api_key)
    illustrator_cfg = settings.get_role("illustrator")

    return ReasoningCapability(
        analyst=QueryAnalysisAgent(analyst_llm, prompts),
        architect=DecomposeTopicAgent(architect_llm, prompts),
        verifier=VerifyComponentAgent(architect_llm, prompts),
        elaborator=ElaborationAgent(tutor_llm, prompts),
        tutor=ChallengeQuestionAgent(tutor_llm, prompts),
        illustrator=IllustrationAgent(api_key, illustrator_cfg["model_id"], prompts,
                                      timeout=settings.get("api_timeout"))
    )
