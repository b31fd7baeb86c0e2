"""Azure OpenAI JSON client with retry and response repair."""
from __future__ import annotations

import json
import logging
import os
import re
import time
from typing import Any

import openai
from dotenv import load_dotenv
from openai import AzureOpenAI

load_dotenv()

_log = logging.getLogger(__name__)

# Maximum retries when the model returns invalid JSON
_MAX_RETRIES = 2

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


class NarrativeServiceError(RuntimeError):
    """The text-generation service failed; the message is safe to show users."""


class AOAIClient:
    """Thin wrapper over AzureOpenAI that always returns parsed JSON."""

    def __init__(
        self,
        model: str | None = None,
        endpoint: str | None = None,
        key: str | None = None,
        api_version: str | None = None,
        temperature: float = 0.4,
        max_tokens: int = 4000,
    ):
        self.model = model or os.environ.get("AZURE_OPENAI_DEPLOYMENT", "gpt-4.1")
        self.endpoint = endpoint or os.environ.get("AZURE_OPENAI_ENDPOINT", "")
        self.key = key or os.environ.get("AZURE_OPENAI_KEY", "")
        self.api_version = api_version or os.environ.get("AZURE_OPENAI_API_VERSION", "2024-02-15-preview")
        self.temperature = temperature
        self.max_tokens = max_tokens

        if not self.key or not self.endpoint:
            raise EnvironmentError(
                "AZURE_OPENAI_KEY / AZURE_OPENAI_ENDPOINT not set."
            )

        self._client = AzureOpenAI(
            api_key=self.key,
            azure_endpoint=self.endpoint,
            api_version=self.api_version,
        )

    # ── Core call ─────────────────────────────────────────────────
    def run(
        self,
        system: str,
        user: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """
        Send system + user prompt, parse response as JSON.
        Retries up to _MAX_RETRIES on JSONDecodeError.
        """
        temp = temperature if temperature is not None else self.temperature
        tokens = max_tokens if max_tokens is not None else self.max_tokens

        last_error: Exception | None = None
        raw = ""

        for attempt in range(_MAX_RETRIES + 1):
            try:
                response = self._client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    temperature=temp,
                    max_tokens=tokens,
                )
            except openai.AuthenticationError as e:
                raise NarrativeServiceError(
                    "Invalid Azure OpenAI API key. Please check your configuration."
                ) from e
            except openai.RateLimitError as e:
                raise NarrativeServiceError(
                    "API rate limit exceeded. Please try again in a few moments."
                ) from e
            except openai.OpenAIError as e:
                raise NarrativeServiceError("Analysis failed. Please try again.") from e

            raw = response.choices[0].message.content or ""
            try:
                parsed = json.loads(self._clean(raw))
            except json.JSONDecodeError as e:
                last_error = e
                _log.warning("JSON parse failed (attempt %d): %s", attempt + 1, e)
                if attempt < _MAX_RETRIES:
                    time.sleep(1)
                continue
            if not isinstance(parsed, dict):
                raise NarrativeServiceError("Failed to process analysis. Please try again.")
            return parsed

        # All retries exhausted: attempt truncation repair
        repaired = self._repair_truncated(raw)
        if repaired is not None:
            _log.warning("Recovered truncated JSON via repair")
            return repaired

        _log.error("Raw response (last attempt): %s", raw[:500])
        raise NarrativeServiceError(
            f"Failed to process analysis. Please try again. ({last_error})"
        )

    # ── Response cleanup ──────────────────────────────────────────

    @classmethod
    def _clean(cls, text: str) -> str:
        return _TRAILING_COMMA.sub(r"\1", cls._strip_fences(text))

    @staticmethod
    def _strip_fences(text: str) -> str:
        """Remove markdown code fences (```json ... ```) wrapping."""
        stripped = text.strip()
        if stripped.startswith("```"):
            first_nl = stripped.find("\n")
            stripped = stripped[first_nl + 1:] if first_nl != -1 else stripped[3:]
        if stripped.endswith("```"):
            stripped = stripped[:-3].rstrip()
        return stripped

    @classmethod
    def _repair_truncated(cls, text: str) -> dict | None:
        """Best-effort repair of JSON cut off by max_tokens.

        Closes a dangling string and any open arrays / objects.  Returns
        None if the result still does not parse to an object.
        """
        if not text or not text.strip():
            return None
        t = cls._clean(text).rstrip()

        opens: list[str] = []
        in_string = False
        escape = False
        for ch in t:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = not in_string
            elif not in_string and ch in "{[":
                opens.append(ch)
            elif not in_string and ch in "}]" and opens:
                opens.pop()

        if in_string:
            t += '"'
        t = re.sub(r",\s*$", "", t)
        t += "".join("]" if b == "[" else "}" for b in reversed(opens))
        try:
            repaired = json.loads(t)
        except json.JSONDecodeError:
            return None
        return repaired if isinstance(repaired, dict) else None
