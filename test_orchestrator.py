"""
Test: Request Orchestrator
==========================

Retry-with-backoff, transient error detection and offline fallbacks.
"""

import time

import httpx
import pytest

from agents import ResponseParseError
from orchestrator import (
    RequestOrchestrator, call_with_retry, fallback_analysis, fallback_decomposition, is_transient_error
)
from settings_manager import SettingsManager


class FlakyOperation:
    """Fails with the given errors in order, then returns `result`."""
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestTransientDetection:

    @pytest.mark.parametrize("code", [429, 503])
    def test_status_code_attribute(self, transient, code):
        assert is_transient_error(transient(code))

    def test_status_and_code_attributes(self):
        err = Exception("busy")
        err.status = 503
        assert is_transient_error(err)
        err2 = Exception("busy")
        err2.code = 429
        assert is_transient_error(err2)

    def test_message_match(self):
        assert is_transient_error(RuntimeError("Request failed with 429 Too Many Requests"))

    def test_httpx_status_error(self):
        request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
        response = httpx.Response(503, request=request)
        err = httpx.HTTPStatusError("Service Unavailable", request=request, response=response)
        assert is_transient_error(err)

    @pytest.mark.parametrize("err", [ValueError("bad json"), PermissionError("401 Unauthorized")])
    def test_permanent_errors(self, err):
        assert not is_transient_error(err)

    def test_parse_error_never_transient(self):
        err = ResponseParseError("Malformed JSON from AI: Expecting ',' delimiter: line 1 column 430 (char 429)")
        assert not is_transient_error(err)

    def test_message_needs_whole_status_code(self):
        assert not is_transient_error(RuntimeError("Unexpected token at char 5031"))
        assert is_transient_error(RuntimeError("upstream returned 503"))


class TestCallWithRetry:

    @pytest.mark.asyncio
    async def test_success_first_try(self, recording_sleep):
        op = FlakyOperation([])
        assert await call_with_retry(op, sleep=recording_sleep) == "ok"
        assert op.calls == 1
        assert recording_sleep.waits == []

    @pytest.mark.asyncio
    async def test_retry_bound(self, transient, recording_sleep):
        op = FlakyOperation([transient(429)] * 10)
        with pytest.raises(Exception) as exc_info:
            await call_with_retry(op, max_retries=3, base_delay_ms=2000, sleep=recording_sleep)
        assert op.calls == 4
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_backoff_doubles(self, transient, recording_sleep):
        op = FlakyOperation([transient(503)] * 3)
        assert await call_with_retry(op, max_retries=3, base_delay_ms=2000, sleep=recording_sleep) == "ok"
        assert recording_sleep.waits == [2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self, recording_sleep):
        err = ValueError("Malformed JSON")
        op = FlakyOperation([err])
        with pytest.raises(ValueError) as exc_info:
            await call_with_retry(op, sleep=recording_sleep)
        assert exc_info.value is err
        assert op.calls == 1
        assert recording_sleep.waits == []

    @pytest.mark.asyncio
    async def test_zero_retries(self, transient, recording_sleep):
        op = FlakyOperation([transient(429)])
        with pytest.raises(Exception):
            await call_with_retry(op, max_retries=0, sleep=recording_sleep)
        assert op.calls == 1

    @pytest.mark.asyncio
    async def test_real_delay_elapsed(self, transient):
        op = FlakyOperation([transient(429), transient(429)], result="done")
        start = time.monotonic()
        result = await call_with_retry(op, max_retries=2, base_delay_ms=100)
        elapsed = time.monotonic() - start
        assert result == "done"
        assert op.calls == 3
        assert elapsed >= 0.29


class TestRequestOrchestrator:

    @pytest.mark.asyncio
    async def test_live_results_tagged_ai(self, orchestrator, capability):
        analysis = await orchestrator.analyze_query("Money")
        data = await orchestrator.decompose("Money", "focus", "CONCEPT", "Economics")
        verified = await orchestrator.verify("Trust", "Money > Trust")
        assert analysis["data_source"] == "AI"
        assert data["data_source"] == "AI"
        assert verified["data_source"] == "AI"
        assert [c[0] for c in capability.calls] == ["analyze_query", "decompose", "verify"]

    @pytest.mark.asyncio
    async def test_retries_through_capability(self, orchestrator, capability, transient, recording_sleep):
        capability.script("elaborate", transient(429), transient(503), "Deep text")
        assert await orchestrator.elaborate("Gravity", "pulls") == "Deep text"
        assert len(capability.calls) == 3
        assert recording_sleep.waits == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_failure_propagates_after_exhaustion(self, orchestrator, capability, transient):
        capability.script("verify", *[transient(429)] * 4)
        with pytest.raises(Exception):
            await orchestrator.verify("Trust", "Money")
        assert len(capability.calls) == 4

    @pytest.mark.asyncio
    async def test_illustration_single_attempt(self, orchestrator, capability, transient, recording_sleep):
        capability.script("generate_illustration", transient(429), "data:image/png;base64,BBBB")
        with pytest.raises(Exception):
            await orchestrator.generate_illustration("Money")
        assert len(capability.calls) == 1
        assert recording_sleep.waits == []

    @pytest.mark.asyncio
    async def test_empty_text_gets_placeholder(self, orchestrator, capability):
        capability.script("generate_challenge_question", "")
        assert await orchestrator.generate_challenge_question("A", "B") == "No question available."

    def test_from_settings(self, tmp_path, capability):
        settings = SettingsManager(tmp_path / "settings.json")
        settings.settings["max_retries"] = 5
        settings.settings["base_delay_ms"] = 250
        orch = RequestOrchestrator.from_settings(settings, capability)
        assert orch.max_retries == 5
        assert orch.base_delay_ms == 250
        assert orch.is_online


class TestOfflineFallback:

    @pytest.mark.asyncio
    async def test_analysis_fallback(self, offline_orchestrator):
        result = await offline_orchestrator.analyze_query("Money")
        assert result["data_source"] == "FALLBACK"
        assert result["corrected_query"] == "Money"
        assert result["is_ambiguous"] is False

    @pytest.mark.asyncio
    async def test_fallback_is_deterministic(self, offline_orchestrator):
        first = await offline_orchestrator.decompose("Money", "", "CONCEPT", "General")
        second = await offline_orchestrator.decompose("Money", "", "CONCEPT", "General")
        assert first == second == fallback_decomposition("Money")
        assert first is not second
        assert first["data_source"] == "FALLBACK"

    @pytest.mark.asyncio
    async def test_every_operation_has_a_fallback(self, offline_orchestrator):
        assert (await offline_orchestrator.verify("Trust", "Money"))["core_concept"] == "Trust (Offline Mode)"
        assert "offline" in (await offline_orchestrator.elaborate("A", "B")).lower()
        assert "offline" in (await offline_orchestrator.generate_challenge_question("A", "B")).lower()
        assert await offline_orchestrator.generate_illustration("A") is None

    @pytest.mark.asyncio
    async def test_no_network_attempted(self, monkeypatch):
        def _boom(*args, **kwargs):
            raise AssertionError("network call attempted")

        monkeypatch.setattr(httpx.AsyncClient, "send", _boom)
        orch = RequestOrchestrator(None)
        assert (await orch.analyze_query("Money"))["data_source"] == "FALLBACK"
        assert await orch.generate_illustration("Money") is None

    def test_fallback_functions_return_fresh_copies(self):
        a = fallback_analysis("x")
        a["predicted_topics"].append("mutated")
        assert fallback_analysis("x")["predicted_topics"] == ["Overview", "Details"]
