"""Clarity checker adapter backed by an OpenAI-compatible chat endpoint."""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI, RateLimitError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.ranges import TextRange
from ..suggestions.models import Suggestion, SuggestionKind
from .base import CheckerError, new_suggestion_id

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
_CONFIDENCE = 0.8
_MIN_CHARS = 10

SYSTEM_PROMPT = """\
You are an editor who improves the clarity and concision of prose.
Read the user's text and point out wordy, redundant or hard-to-follow phrases.

Rules:
1. Quote complete phrases or sentences exactly as they appear in the text.
2. Keep the author's meaning; make the wording more direct.
3. Skip cosmetic changes. Only report edits that clearly help the reader.

Reply with a JSON object of the form:
{"suggestions": [{"type": "clarity", "original": "<exact text>", "suggestion": "<rewrite>", "explanation": "<why it reads better>"}]}
Reply with {"suggestions": []} when nothing needs to change.
"""


@dataclass(slots=True)
class ClaritySettings:
    """Subset of settings required to reach the clarity model."""

    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    organization: str | None = None
    temperature: float = 0.2
    request_timeout: float | None = 30.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    debug_logging: bool = False


def locate(text: str, original: str) -> TextRange | None:
    """Find ``original`` in ``text``: exact match first, then case-insensitive."""

    if not original:
        return None
    index = text.find(original)
    if index < 0:
        index = text.lower().find(original.lower())
        # Lower-casing can change lengths for a few scripts; verify the slice.
        if index >= 0 and text[index : index + len(original)].lower() != original.lower():
            index = -1
    if index < 0:
        return None
    return TextRange(index, index + len(original))


def parse_response(text: str, content: str | None) -> List[Suggestion]:
    """Convert the model's JSON reply into suggestions positioned inside ``text``."""

    try:
        payload = json.loads(content or "")
    except json.JSONDecodeError as exc:
        raise CheckerError(
            f"Clarity response is not valid JSON: {exc}",
            kind=SuggestionKind.CLARITY,
            reason="invalid_response",
        ) from exc
    entries = payload.get("suggestions") if isinstance(payload, Mapping) else None
    if not isinstance(entries, list):
        raise CheckerError(
            "Clarity response is missing a 'suggestions' list",
            kind=SuggestionKind.CLARITY,
            reason="invalid_response",
        )

    suggestions: List[Suggestion] = []
    for entry in entries:
        if not isinstance(entry, Mapping) or entry.get("type") != "clarity":
            continue
        original = entry.get("original")
        replacement = entry.get("suggestion")
        if not isinstance(original, str) or not isinstance(replacement, str):
            continue
        found = locate(text, original)
        if found is None:
            LOGGER.debug("Clarity suggestion dropped; %r not found in text", original)
            continue
        matched = found.slice(text)
        if replacement == matched:
            continue
        suggestions.append(
            Suggestion(
                id=new_suggestion_id(SuggestionKind.CLARITY),
                kind=SuggestionKind.CLARITY,
                original_text=matched,
                replacement_text=replacement,
                explanation=str(entry.get("explanation") or ""),
                range=found,
                confidence=_CONFIDENCE,
            )
        )
    return suggestions


class ClarityChecker:
    """Asks a chat model for clarity rewrites and anchors them in the text."""

    kind = SuggestionKind.CLARITY

    def __init__(self, settings: ClaritySettings, *, client: AsyncOpenAI | Any | None = None) -> None:
        self._settings = settings
        self._client = client
        if self._client is None and settings.api_key:
            self._client = self._build_client(settings)

    @property
    def settings(self) -> ClaritySettings:
        return self._settings

    def is_ready(self) -> bool:
        return self._client is not None

    async def check_text(self, text: str) -> List[Suggestion]:
        if len(text.strip()) < _MIN_CHARS:
            return []
        if self._client is None:
            raise CheckerError(
                "Clarity checker needs an API key",
                kind=self.kind,
                reason="not_ready",
            )

        payload = self._build_payload(text)
        LOGGER.debug("Requesting clarity suggestions via %s", self._settings.model)
        if self._settings.debug_logging:
            self._log_prompt_payload(payload)

        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self._client.chat.completions.create(**payload)
        except (APIError, APIConnectionError, httpx.TimeoutException) as exc:
            raise CheckerError(f"Clarity request failed: {exc}", kind=self.kind, reason="api_error") from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as exc:
            raise CheckerError(
                "Clarity response has no message content",
                kind=self.kind,
                reason="invalid_response",
            ) from exc
        return parse_response(text, content)

    def _build_client(self, settings: ClaritySettings) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.base_url,
            organization=settings.organization,
            timeout=settings.request_timeout,
        )

    def _build_payload(self, text: str) -> Dict[str, Any]:
        return {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            "temperature": self._settings.temperature,
            "response_format": {"type": "json_object"},
        }

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(
                (
                    APIError,
                    APIStatusError,
                    APIConnectionError,
                    RateLimitError,
                    httpx.TimeoutException,
                )
            ),
        )

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("Clarity prompt payload (unserializable): %s", payload)
        else:
            LOGGER.debug("Clarity prompt payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the underlying OpenAI client to release network resources."""

        close = getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result


__all__ = ["ClarityChecker", "ClaritySettings", "DEFAULT_MODEL", "SYSTEM_PROMPT", "locate", "parse_response"]
