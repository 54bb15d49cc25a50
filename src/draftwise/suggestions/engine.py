"""Apply, undo and dismiss suggestions against a buffer snapshot.

All operations are pure: they take the current buffer and suggestion set
and return new values. Recoverable problems come back as
:class:`~draftwise.suggestions.models.SuggestionFailure` instead of being
raised, and no failing path produces a modified buffer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .history import UndoHistory
from .models import (
    FailureReason,
    Suggestion,
    SuggestionFailure,
    SuggestionSet,
    UndoRecord,
)

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ApplyResult:
    """Outcome of a successful :func:`apply_suggestion` call.

    Attributes:
        buffer: The rewritten buffer.
        suggestions: Remaining suggestions, rebased onto ``buffer``.
        record: Undo record capturing the pre-apply state.
        cursor: Caret hint for the editing surface (end of the replacement).
        dropped: Ids of other suggestions removed because they overlapped the edit.
    """

    buffer: str
    suggestions: SuggestionSet
    record: UndoRecord
    cursor: int
    dropped: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return True


@dataclass(slots=True, frozen=True)
class UndoResult:
    """Outcome of a successful :func:`undo_last` call."""

    buffer: str
    suggestions: SuggestionSet
    record: UndoRecord

    def __bool__(self) -> bool:
        return True


def apply_suggestion(
    suggestion_id: str,
    buffer: str,
    suggestions: SuggestionSet,
    *,
    document_id: str,
) -> ApplyResult | SuggestionFailure:
    """Replace one suggestion's range with its replacement text.

    Other suggestions entirely after the edited range shift by the length
    delta, ones overlapping it are dropped as conflicting edits, and ones
    entirely before it stay as they are.
    """

    target = suggestions.get(suggestion_id)
    if target is None:
        LOGGER.debug("apply: suggestion %s not found", suggestion_id)
        return SuggestionFailure(
            reason=FailureReason.NOT_FOUND,
            message="Suggestion no longer exists",
            suggestion_id=suggestion_id,
        )

    if not target.matches(buffer):
        LOGGER.debug(
            "apply: suggestion %s is stale (expected %r at %s)",
            suggestion_id,
            target.original_text,
            target.range.to_tuple(),
        )
        return SuggestionFailure(
            reason=FailureReason.STALE,
            message="Suggestion no longer matches the text",
            suggestion_id=suggestion_id,
            suggestions=suggestions.without(suggestion_id),
        )

    start, end = target.range.start, target.range.end
    new_buffer = buffer[:start] + target.replacement_text + buffer[end:]
    delta = target.length_delta

    remaining: list[Suggestion] = []
    dropped: list[str] = []
    for other in suggestions:
        if other.id == target.id:
            continue
        if other.range.start >= end:
            remaining.append(other.rebased(delta))
        elif other.range.end > start and other.range.start < end:
            dropped.append(other.id)
        else:
            remaining.append(other)

    record = UndoRecord(
        document_id=document_id,
        buffer=buffer,
        applied=target,
        suggestions=suggestions,
    )
    cursor = start + len(target.replacement_text)
    LOGGER.debug(
        "apply: %s %r -> %r at %s-%s (delta %+d, %d conflict(s) dropped)",
        target.kind.value,
        target.original_text,
        target.replacement_text,
        start,
        end,
        delta,
        len(dropped),
    )
    return ApplyResult(
        buffer=new_buffer,
        suggestions=SuggestionSet(remaining),
        record=record,
        cursor=cursor,
        dropped=tuple(dropped),
    )


def undo_last(history: UndoHistory, *, document_id: str) -> UndoResult | SuggestionFailure:
    """Pop the newest undo record and return its captured snapshot verbatim.

    The history is left untouched when it is empty or when its newest record
    belongs to a different document.
    """

    record = history.peek()
    if record is None:
        return SuggestionFailure(reason=FailureReason.EMPTY, message="Nothing to undo")
    if record.document_id != document_id:
        LOGGER.debug(
            "undo: newest record belongs to %s, active document is %s",
            record.document_id,
            document_id,
        )
        return SuggestionFailure(
            reason=FailureReason.WRONG_DOCUMENT,
            message="Undo history belongs to a different document",
            suggestion_id=record.applied.id,
        )
    history.pop()
    LOGGER.debug("undo: restored state before suggestion %s", record.applied.id)
    return UndoResult(buffer=record.buffer, suggestions=record.suggestions, record=record)


def dismiss(suggestion_id: str, suggestions: SuggestionSet) -> SuggestionSet | SuggestionFailure:
    """Drop a rejected suggestion without touching the buffer."""

    if suggestion_id not in suggestions:
        return SuggestionFailure(
            reason=FailureReason.NOT_FOUND,
            message="Suggestion no longer exists",
            suggestion_id=suggestion_id,
        )
    return suggestions.without(suggestion_id)


__all__ = ["ApplyResult", "UndoResult", "apply_suggestion", "dismiss", "undo_last"]
