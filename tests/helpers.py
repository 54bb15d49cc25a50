"""Shared test helpers and stub classes.

This module contains reusable test stubs that are used across multiple test files.
Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any, Iterable, Sequence

from draftwise.core.ranges import TextRange
from draftwise.suggestions.models import Suggestion, SuggestionKind


def make_suggestion(
    suggestion_id: str,
    start: int,
    end: int,
    original: str,
    replacement: str,
    *,
    kind: SuggestionKind | str = SuggestionKind.SPELLING,
    explanation: str = "",
    confidence: float = 1.0,
    priority: int = -1,
) -> Suggestion:
    """Build a suggestion with positional range arguments."""
    return Suggestion(
        id=suggestion_id,
        kind=SuggestionKind.parse(kind),
        original_text=original,
        replacement_text=replacement,
        explanation=explanation,
        range=TextRange(start, end),
        confidence=confidence,
        priority=priority,
    )


def suggestion_for(
    text: str,
    original: str,
    replacement: str,
    *,
    suggestion_id: str | None = None,
    kind: SuggestionKind | str = SuggestionKind.SPELLING,
    occurrence: int = 0,
) -> Suggestion:
    """Build a suggestion anchored at the ``occurrence``-th match of ``original`` in ``text``."""
    index = -1
    for _ in range(occurrence + 1):
        index = text.index(original, index + 1)
    return make_suggestion(
        suggestion_id or f"{SuggestionKind.parse(kind).value}-{original}-{index}",
        index,
        index + len(original),
        original,
        replacement,
        kind=kind,
    )


class FakeWordFrequency:
    def __init__(self, backend: "FakeSpellBackend") -> None:
        self._backend = backend

    def load_words(self, words: Iterable[str]) -> None:
        for word in words:
            self._backend.frequencies.setdefault(word.lower(), 1)


class FakeSpellBackend:
    """Deterministic stand-in for :class:`spellchecker.SpellChecker`.

    Example:
        backend = FakeSpellBackend(["the", "cat"], candidates={"kat": ["cat"]})
    """

    def __init__(
        self,
        words: Iterable[str] = (),
        *,
        candidates: dict[str, Sequence[str]] | None = None,
        frequencies: dict[str, int] | None = None,
    ) -> None:
        self.frequencies: dict[str, int] = {word.lower(): 1 for word in words}
        if frequencies:
            self.frequencies.update(frequencies)
        self._candidates = {key: list(value) for key, value in (candidates or {}).items()}
        self.word_frequency = FakeWordFrequency(self)

    def known(self, words: Iterable[str]) -> set[str]:
        return {word for word in words if word in self.frequencies}

    def candidates(self, word: str) -> set[str] | None:
        found = self._candidates.get(word)
        return set(found) if found else None

    def __getitem__(self, word: str) -> int:
        return self.frequencies.get(word, 0)


class FakeCompletions:
    """Records ``chat.completions.create`` calls and replays scripted replies."""

    def __init__(self, replies: Sequence[Any]) -> None:
        self._replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def create(self, **payload: Any) -> Any:
        self.calls.append(payload)
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeOpenAIClient:
    """Minimal AsyncOpenAI stand-in exposing ``chat.completions.create``."""

    def __init__(self, *replies: Any) -> None:
        self.completions = FakeCompletions(replies or ('{"suggestions": []}',))
        self.chat = SimpleNamespace(completions=self.completions)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class StubAdapter:
    """Checker adapter returning scripted suggestions for whatever text it sees.

    ``build`` receives the checked text and returns the candidate list, so
    ranges always refer to the exact text handed to the adapter. When
    ``gate`` is set the adapter blocks until the test releases it.
    """

    def __init__(
        self,
        kind: SuggestionKind | str,
        build: Any = None,
        *,
        ready: bool = True,
        error: BaseException | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.kind = SuggestionKind.parse(kind)
        self._build = build or (lambda text: [])
        self._ready = ready
        self._error = error
        self._gate = gate
        self.seen: list[str] = []
        self.started = asyncio.Event()
        self.closed = False

    def is_ready(self) -> bool:
        return self._ready

    async def check_text(self, text: str) -> list[Suggestion]:
        self.seen.append(text)
        self.started.set()
        if self._gate is not None:
            await self._gate.wait()
        if self._error is not None:
            raise self._error
        return list(self._build(text))

    async def aclose(self) -> None:
        self.closed = True
