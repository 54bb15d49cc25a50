"""Contract shared by the spelling, grammar and clarity checker adapters."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..suggestions.models import Suggestion, SuggestionKind

DEFAULT_GRAMMAR_MIN_CHARS = 10
DEFAULT_CLARITY_MIN_CHARS = 20


class CheckerError(RuntimeError):
    """Raised by an adapter when it cannot produce candidates for a text."""

    def __init__(
        self,
        message: str,
        *,
        kind: SuggestionKind | str | None = None,
        reason: str = "checker_error",
    ) -> None:
        super().__init__(message)
        self.kind = SuggestionKind.parse(kind) if kind is not None else None
        self.reason = reason

    def details(self) -> dict[str, str | None]:
        return {
            "kind": self.kind.value if self.kind is not None else None,
            "reason": self.reason,
            "message": str(self),
        }


@runtime_checkable
class CheckerAdapter(Protocol):
    """An independent analysis engine producing candidate suggestions.

    Ranges in the returned suggestions must be expressed in the coordinate
    system of the exact ``text`` passed to :meth:`check_text`.
    """

    kind: SuggestionKind

    def is_ready(self) -> bool:
        ...

    async def check_text(self, text: str) -> list[Suggestion]:
        ...


@dataclass(slots=True, frozen=True)
class CheckerGates:
    """Minimum stripped text length before a checker is worth invoking."""

    grammar_min_chars: int = DEFAULT_GRAMMAR_MIN_CHARS
    clarity_min_chars: int = DEFAULT_CLARITY_MIN_CHARS

    def passes(self, kind: SuggestionKind | str, text: str) -> bool:
        target = SuggestionKind.parse(kind)
        length = len(text.strip())
        if target is SuggestionKind.SPELLING:
            return length > 0
        if target is SuggestionKind.GRAMMAR:
            return length > self.grammar_min_chars
        return length >= self.clarity_min_chars


def passes_gate(kind: SuggestionKind | str, text: str, gates: CheckerGates | None = None) -> bool:
    """Return ``True`` when ``text`` is long enough to run the ``kind`` checker."""

    return (gates or CheckerGates()).passes(kind, text)


def new_suggestion_id(kind: SuggestionKind | str) -> str:
    """Return a fresh, never reused suggestion id for ``kind``."""

    return f"{SuggestionKind.parse(kind).value}_{uuid.uuid4().hex}"


__all__ = [
    "CheckerAdapter",
    "CheckerError",
    "CheckerGates",
    "DEFAULT_CLARITY_MIN_CHARS",
    "DEFAULT_GRAMMAR_MIN_CHARS",
    "new_suggestion_id",
    "passes_gate",
]
