# Script Version: 1.0.0 | Phase 1: Decomposition Core
# Description: Cleans component lists and citation payloads returned by the reasoning backend.
# Implementation: Pure functions; stable filtering, first occurrence wins.

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from state import Component, Source


def _normalized(name: Optional[str]) -> str:
    return "" if name is None else str(name).strip().lower()


def normalize_components(raw_components: Optional[Iterable[Component]], current_topic_name: str) -> List[Component]:
    """
    Drops blank names, sibling duplicates (case/whitespace-insensitive) and any
    component that repeats the topic being decomposed. Input order is preserved.
    """
    if not raw_components:
        return []

    topic_key = _normalized(current_topic_name)
    seen = set()
    clean = []
    for comp in raw_components:
        if not isinstance(comp, dict):
            continue
        key = _normalized(comp.get("name"))
        if not key or key == topic_key or key in seen:
            continue
        seen.add(key)
        clean.append(comp)
    return clean


def _chunk_fields(chunk: Dict[str, Any]) -> Tuple[str, str]:
    # Gemini-style grounding chunk: {"web": {"title", "uri"}}
    web = chunk.get("web")
    if isinstance(web, dict):
        return web.get("title") or "", web.get("uri") or ""
    # OpenAI/OpenRouter annotation: {"type": "url_citation", "url_citation": {"title", "url"}}
    citation = chunk.get("url_citation")
    if isinstance(citation, dict):
        return citation.get("title") or "", citation.get("url") or ""
    return chunk.get("title") or "", chunk.get("uri") or chunk.get("url") or ""


def extract_sources(chunks: Optional[Iterable[Any]]) -> List[Source]:
    """Title/URI pairs from a citation payload. Chunks missing either field are skipped."""
    sources: List[Source] = []
    for chunk in chunks or []:
        if not isinstance(chunk, dict):
            continue
        title, uri = _chunk_fields(chunk)
        if title.strip() and uri.strip():
            sources.append({"title": title, "uri": uri})
    return sources


def extract_json(content: str) -> Any:
    """Robust JSON extraction: first {...} block, then the whole text."""
    json_match = re.search(r'\{.*\}', content, re.DOTALL)
    if json_match:
        try:
            return json.loads(json_match.group(0))
        except json.JSONDecodeError:
            pass
    return json.loads(content)
