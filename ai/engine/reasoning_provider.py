"""Reasoning provider protocol: model-agnostic contract for LLM access.

The LLM only writes prose around statistics the engine already
computed.  Today it's Azure OpenAI; tests use the mock.

Usage:
    provider = AOAIReasoningProvider()       # production
    provider = MockReasoningProvider()       # tests
    engine   = InsightEngine(provider, prompts)
"""
from __future__ import annotations

from typing import Any, Protocol

SYSTEM_DELIMITER = "---SYSTEM---"


class ReasoningProvider(Protocol):
    """Any backend that can complete a templated prompt and return structured JSON."""

    def complete(self, template: str, payload: dict) -> dict:
        """
        Send *template* (rendered prompt text) with *payload* context
        and return parsed JSON output.

        Parameters
        ----------
        template : str
            The fully-rendered prompt: system prompt, ``---SYSTEM---``,
            then the user prompt.
        payload : dict
            Structured data the template was rendered with, passed so
            providers can inspect it for logging / tracing.

        Returns
        -------
        dict   Parsed JSON response from the model.
        """
        ...


def split_template(template: str) -> tuple[str, str]:
    """Split a rendered template into ``(system, user)``."""
    if SYSTEM_DELIMITER in template:
        system, user = template.split(SYSTEM_DELIMITER, 1)
        return system.strip(), user.strip()
    return "You are an organizational strategy consultant producing structured JSON.", template


# ── Azure OpenAI implementation ──────────────────────────────────
class AOAIReasoningProvider:
    """Wraps AOAIClient as a ReasoningProvider."""

    def __init__(self, model: str | None = None, max_tokens: int = 4000, **client_kwargs: Any):
        # Defer import so the module is loadable without Azure credentials
        from ai.engine.aoai_client import AOAIClient

        self._client = AOAIClient(model=model, max_tokens=max_tokens, **client_kwargs)

    def complete(self, template: str, payload: dict) -> dict:
        system, user = split_template(template)
        return self._client.run(system, user)


# ── Mock for offline tests ────────────────────────────────────────
class MockReasoningProvider:
    """Returns a canned response: no LLM, no network."""

    def __init__(self, response: dict | None = None):
        self._response = response or {}
        self.calls: list[dict[str, Any]] = []

    def complete(self, template: str, payload: dict) -> dict:
        self.calls.append({"template": template, "payload_keys": list(payload.keys())})
        return self._response
