"""Dataclasses describing correction suggestions and their lifecycle state.

Suggestions are immutable values. Every lifecycle operation (invalidate,
merge, apply, undo) receives a :class:`SuggestionSet` and returns a new one,
so a controller can swap state atomically and undo can restore a captured
set verbatim.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Mapping

from ..core.ranges import TextRange


class SuggestionKind(str, Enum):
    """Closed tag naming the checker that produced a suggestion."""

    SPELLING = "spelling"
    GRAMMAR = "grammar"
    CLARITY = "clarity"

    @classmethod
    def parse(cls, value: "SuggestionKind | str") -> "SuggestionKind":
        if isinstance(value, SuggestionKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            choices = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown suggestion kind {value!r}; expected one of {choices}") from exc


DEFAULT_PRIORITIES: Mapping[SuggestionKind, int] = {
    SuggestionKind.SPELLING: 1,
    SuggestionKind.GRAMMAR: 2,
    SuggestionKind.CLARITY: 3,
}


@dataclass(slots=True, frozen=True)
class Suggestion:
    """A correction candidate over a text buffer.

    Attributes:
        id: Opaque identifier assigned by the producing checker; never reused.
        kind: Which checker produced the suggestion.
        original_text: Exact substring expected at ``range``.
        replacement_text: Proposed substitute.
        explanation: Human-readable rationale.
        range: Half-open span into the buffer, ``end > start``.
        confidence: Checker confidence in ``[0, 1]``.
        priority: Tie-break rank, lower wins. Defaults per kind.
    """

    id: str
    kind: SuggestionKind
    original_text: str
    replacement_text: str
    explanation: str
    range: TextRange
    confidence: float = 1.0
    priority: int = -1

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Suggestion id is required")
        object.__setattr__(self, "kind", SuggestionKind.parse(self.kind))
        span = TextRange.from_value(self.range)
        if span.is_caret:
            raise ValueError(f"Suggestion {self.id} has an empty range {span.to_tuple()}")
        object.__setattr__(self, "range", span)
        confidence = float(self.confidence)
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"Suggestion {self.id} confidence {confidence} is outside [0, 1]")
        object.__setattr__(self, "confidence", confidence)
        if self.priority < 0:
            object.__setattr__(self, "priority", DEFAULT_PRIORITIES[self.kind])

    @property
    def start(self) -> int:
        return self.range.start

    @property
    def end(self) -> int:
        return self.range.end

    @property
    def length_delta(self) -> int:
        """Return how much the buffer grows when this suggestion is applied."""

        return len(self.replacement_text) - self.range.length

    def matches(self, buffer: str) -> bool:
        """Return ``True`` while ``buffer`` still holds ``original_text`` at ``range``."""

        return self.range.fits(buffer) and self.range.slice(buffer) == self.original_text

    def rebased(self, delta: int) -> Suggestion:
        """Return a copy whose range is shifted by ``delta`` characters."""

        if delta == 0:
            return self
        return replace(self, range=self.range.shifted(delta))

    def as_payload(self, *, text: str | None = None, utf16: bool = False) -> dict[str, Any]:
        """Serialize the suggestion for an editing surface.

        When ``utf16`` is set the range is expressed in UTF-16 code units of
        ``text``, which must then be the buffer the suggestion refers to.
        """

        span = self.range
        if utf16:
            if text is None:
                raise ValueError("text is required to express ranges in UTF-16 units")
            span = span.to_utf16(text)
        return {
            "id": self.id,
            "kind": self.kind.value,
            "original": self.original_text,
            "replacement": self.replacement_text,
            "explanation": self.explanation,
            "range": span.to_dict(),
            "confidence": self.confidence,
            "priority": self.priority,
        }


class SuggestionSet:
    """Immutable collection of live suggestions for one buffer, keyed by id."""

    __slots__ = ("_items",)

    def __init__(self, suggestions: Iterable[Suggestion] = ()) -> None:
        items: dict[str, Suggestion] = {}
        for suggestion in suggestions:
            items[suggestion.id] = suggestion
        self._items = items

    def __iter__(self) -> Iterator[Suggestion]:
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __contains__(self, suggestion_id: object) -> bool:
        return suggestion_id in self._items

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SuggestionSet):
            return NotImplemented
        return self._items == other._items

    def __hash__(self) -> int:
        return hash(frozenset(self._items.items()))

    def __repr__(self) -> str:
        return f"SuggestionSet({list(self._items)!r})"

    def get(self, suggestion_id: str) -> Suggestion | None:
        return self._items.get(suggestion_id)

    def ids(self) -> tuple[str, ...]:
        return tuple(self._items)

    def without(self, suggestion_id: str) -> SuggestionSet:
        """Return a copy with ``suggestion_id`` removed."""

        if suggestion_id not in self._items:
            return self
        return SuggestionSet(item for key, item in self._items.items() if key != suggestion_id)

    def filter(self, predicate: Callable[[Suggestion], bool]) -> SuggestionSet:
        return SuggestionSet(item for item in self._items.values() if predicate(item))

    def of_kind(self, kind: SuggestionKind | str) -> SuggestionSet:
        target = SuggestionKind.parse(kind)
        return self.filter(lambda item: item.kind is target)

    def excluding_kind(self, kind: SuggestionKind | str) -> SuggestionSet:
        target = SuggestionKind.parse(kind)
        return self.filter(lambda item: item.kind is not target)

    def extend(self, suggestions: Iterable[Suggestion]) -> SuggestionSet:
        """Return a copy with ``suggestions`` added; an existing id is replaced."""

        merged = dict(self._items)
        for suggestion in suggestions:
            merged[suggestion.id] = suggestion
        return SuggestionSet(merged.values())

    def ordered(self) -> list[Suggestion]:
        """Return suggestions in presentation order (position, priority, confidence)."""

        return sorted(
            self._items.values(),
            key=lambda item: (item.range.start, item.priority, -item.confidence, item.id),
        )

    def as_payload(self, *, text: str | None = None, utf16: bool = False) -> list[dict[str, Any]]:
        return [item.as_payload(text=text, utf16=utf16) for item in self.ordered()]


EMPTY_SET = SuggestionSet()


@dataclass(slots=True, frozen=True)
class UndoRecord:
    """Everything needed to reverse one applied suggestion.

    Attributes:
        document_id: Identity of the document the edit was applied to.
        buffer: Buffer content immediately before the edit.
        applied: The suggestion that was applied.
        suggestions: Full suggestion set immediately before the edit.
        timestamp: Monotonic clock reading, used for ordering only.
    """

    document_id: str
    buffer: str
    applied: Suggestion
    suggestions: SuggestionSet
    timestamp: float = field(default_factory=time.monotonic)


class FailureReason(str, Enum):
    """Locally recoverable outcomes of lifecycle operations."""

    NOT_FOUND = "not_found"
    STALE = "stale"
    EMPTY = "empty"
    WRONG_DOCUMENT = "wrong_document"


@dataclass(slots=True, frozen=True)
class SuggestionFailure:
    """Result returned instead of raising when an operation cannot proceed.

    ``suggestions`` carries the set the caller should adopt after the failure;
    for :attr:`FailureReason.STALE` the offending suggestion has already been
    dropped from it. It is ``None`` when the set is unchanged.
    """

    reason: FailureReason
    message: str
    suggestion_id: str | None = None
    suggestions: SuggestionSet | None = None

    def __bool__(self) -> bool:
        return False

    def details(self) -> dict[str, str | None]:
        return {
            "reason": self.reason.value,
            "message": self.message,
            "suggestion_id": self.suggestion_id,
        }


__all__ = [
    "DEFAULT_PRIORITIES",
    "EMPTY_SET",
    "FailureReason",
    "Suggestion",
    "SuggestionFailure",
    "SuggestionKind",
    "SuggestionSet",
    "UndoRecord",
]
