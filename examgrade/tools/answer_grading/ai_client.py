"""AI text-completion client used by the open-ended grader."""

import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional, Protocol

from examgrade.libs.config_loader import ConfigType
from examgrade.libs.llm import create_agent
from .exceptions import AIResponseError

LOG = logging.getLogger(__name__)

GRADING_SYSTEM_PROMPT = (
    "You are a fair exam grader. Compare the student's answer with the model "
    "answer, award partial credit where it is earned, and reply with JSON only."
)

_FENCE_RE = re.compile(r"```json\n?|\n?```")


class CompletionClient(Protocol):
    """Anything that turns a prompt into completion text."""

    async def complete(self, prompt: str) -> str:
        ...


class AgentCompletionClient:
    """CompletionClient backed by a pydantic-ai Agent."""

    def __init__(self, agent: Any):
        self.agent = agent

    async def complete(self, prompt: str) -> str:
        result = await self.agent.run(prompt)
        if hasattr(result, 'output'):
            return str(result.output)
        if hasattr(result, 'data'):
            return str(result.data)
        return str(result)


class UnavailableCompletionClient:
    """CompletionClient that always fails, forcing the keyword fallback."""

    async def complete(self, prompt: str) -> str:
        raise AIResponseError("AI grading is disabled")


def create_grading_client(configs: ConfigType,
                          model: Optional[str] = None,
                          settings_dict: Optional[Dict[str, Any]] = None) -> AgentCompletionClient:
    """
    Create the completion client used for grading open-ended answers.

    Args:
        configs: Configuration dictionary (required)
        model: Model to use (overrides config value)
        settings_dict: Pydantic AI settings dict (overrides config values)

    Returns:
        AgentCompletionClient wrapping a grading agent
    """
    agent = create_agent(
        configs=configs,
        model=model,
        settings_dict=settings_dict,
        system_prompt=GRADING_SYSTEM_PROMPT,
    )
    return AgentCompletionClient(agent)


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers around a completion and trim it."""
    return _FENCE_RE.sub("", text or "").strip()


def parse_grading_response(text: str) -> Dict[str, Any]:
    """
    Parse a grading completion into a dict.

    Args:
        text: Raw completion text, possibly wrapped in code fences

    Returns:
        The decoded JSON object

    Raises:
        AIResponseError: If the text is not a JSON object
    """
    clean_text = strip_code_fences(text)
    try:
        data = json.loads(clean_text)
    except json.JSONDecodeError as e:
        raise AIResponseError(f"AI response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AIResponseError(f"AI response is not a JSON object: {type(data).__name__}")
    return data


def _discard_result(task: asyncio.Task) -> None:
    # consume the loser's outcome so it is never reported or used
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOG.debug(f"Discarded late AI failure: {exc}")
    else:
        LOG.debug("Discarded late AI response")


async def complete_with_timeout(client: CompletionClient, prompt: str, timeout: float) -> str:
    """
    Race a completion against a timer.

    The completion runs as its own task. If the timer wins, the task is
    cancelled and left to finish on its own; its result is discarded.

    Args:
        client: Completion client
        prompt: Prompt text
        timeout: Seconds to wait before giving up

    Returns:
        Completion text

    Raises:
        AIResponseError: On timeout
        Exception: Whatever the client raised, if it failed before the timeout
    """
    task = asyncio.ensure_future(client.complete(prompt))
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if task in done:
        return task.result()

    task.cancel()
    task.add_done_callback(_discard_result)
    raise AIResponseError(f"AI timeout after {timeout:.1f}s")
