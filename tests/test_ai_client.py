"""Tests for AI response parsing and the timeout race."""

import asyncio
import time

import pytest
from unittest.mock import AsyncMock, Mock

from examgrade.tools.answer_grading.ai_client import (
    AgentCompletionClient,
    UnavailableCompletionClient,
    complete_with_timeout,
    parse_grading_response,
    strip_code_fences,
)
from examgrade.tools.answer_grading.exceptions import AIResponseError, GradingError


class TestStripCodeFences:

    def test_plain_json_untouched(self):
        assert strip_code_fences('{"score": 3}') == '{"score": 3}'

    def test_json_fence_removed(self):
        text = '```json\n{"score": 3, "feedback": "ok"}\n```'
        assert strip_code_fences(text) == '{"score": 3, "feedback": "ok"}'

    def test_bare_fence_removed(self):
        text = '```\n{"score": 1}\n```'
        assert strip_code_fences(text) == '{"score": 1}'

    def test_surrounding_whitespace_trimmed(self):
        assert strip_code_fences('  \n{"score": 0}\n  ') == '{"score": 0}'

    def test_none(self):
        assert strip_code_fences(None) == ""


class TestParseGradingResponse:

    def test_parses_fenced_object(self):
        data = parse_grading_response('```json\n{"score": 4, "feedback": "Good", "correctedAnswer": "X"}\n```')
        assert data == {"score": 4, "feedback": "Good", "correctedAnswer": "X"}

    def test_malformed_json_raises(self):
        with pytest.raises(AIResponseError, match="not valid JSON"):
            parse_grading_response('```json\n{"score": 4, "feedback": \n```')

    def test_prose_raises(self):
        with pytest.raises(AIResponseError):
            parse_grading_response("I would give this answer 4 points.")

    def test_non_object_raises(self):
        with pytest.raises(AIResponseError, match="not a JSON object"):
            parse_grading_response("[1, 2, 3]")

    def test_response_error_is_grading_error(self):
        assert issubclass(AIResponseError, GradingError)


class NeverResolvingClient:
    """Completion client whose call never finishes."""

    def __init__(self):
        self.calls = 0
        self.cancelled = False

    async def complete(self, prompt: str) -> str:
        self.calls += 1
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return "unreachable"


class TestCompleteWithTimeout:

    @pytest.mark.asyncio
    async def test_returns_completion_before_timeout(self):
        client = AsyncMock()
        client.complete.return_value = '{"score": 1}'

        text = await complete_with_timeout(client, "prompt", timeout=1.0)

        assert text == '{"score": 1}'
        client.complete.assert_awaited_once_with("prompt")

    @pytest.mark.asyncio
    async def test_client_error_propagates(self):
        client = AsyncMock()
        client.complete.side_effect = ConnectionError("network down")

        with pytest.raises(ConnectionError, match="network down"):
            await complete_with_timeout(client, "prompt", timeout=1.0)

    @pytest.mark.asyncio
    async def test_timeout_cancels_pending_call(self):
        client = NeverResolvingClient()

        start = time.perf_counter()
        with pytest.raises(AIResponseError, match="AI timeout"):
            await complete_with_timeout(client, "prompt", timeout=0.1)
        elapsed = time.perf_counter() - start

        assert elapsed < 1.0
        # let the cancellation be delivered to the losing task
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert client.cancelled is True

    @pytest.mark.asyncio
    async def test_late_response_is_discarded(self):
        """A call that finishes after the timer fired does not surface anywhere."""
        finished = asyncio.Event()

        class SlowClient:
            async def complete(self, prompt):
                try:
                    await asyncio.sleep(0.2)
                finally:
                    finished.set()
                return '{"score": 10}'

        with pytest.raises(AIResponseError):
            await complete_with_timeout(SlowClient(), "prompt", timeout=0.05)

        await asyncio.wait_for(finished.wait(), timeout=1.0)


class TestClients:

    @pytest.mark.asyncio
    async def test_agent_client_reads_output(self):
        agent = Mock()
        agent.run = AsyncMock(return_value=Mock(output='{"score": 2}'))

        client = AgentCompletionClient(agent)

        assert await client.complete("prompt") == '{"score": 2}'
        agent.run.assert_awaited_once_with("prompt")

    @pytest.mark.asyncio
    async def test_unavailable_client_always_fails(self):
        with pytest.raises(AIResponseError):
            await UnavailableCompletionClient().complete("prompt")
