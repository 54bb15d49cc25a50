"""Per-document owner of the buffer snapshot, suggestion set and undo history.

The controller is the single source of truth for one open document. The
editing surface reports edits and user decisions to it, and the check
scheduler delivers checker results through version-tagged tickets so that
results computed for an outdated buffer never reach the set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from ..events import (
    CheckerResultDiscarded,
    EventBus,
    SuggestionApplied,
    SuggestionDismissed,
    SuggestionRejected,
    SuggestionUndone,
    SuggestionsChanged,
)
from .engine import apply_suggestion, dismiss, undo_last
from .history import DEFAULT_UNDO_CAPACITY, UndoHistory
from .invalidation import invalidate
from .merge import merge
from .models import (
    EMPTY_SET,
    FailureReason,
    Suggestion,
    SuggestionFailure,
    SuggestionKind,
    SuggestionSet,
)

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CheckTicket:
    """Tag handed to a checker invocation; identifies the buffer it saw."""

    document_id: str
    kind: SuggestionKind
    version: int
    text: str


@dataclass(slots=True, frozen=True)
class ApplyOutcome:
    """What the editing surface needs to re-render after an apply request.

    ``buffer`` and ``suggestions`` always reflect the controller's state after
    the call, so the surface can re-render unconditionally.
    """

    ok: bool
    buffer: str
    suggestions: SuggestionSet
    cursor: int | None = None
    reason: FailureReason | None = None
    message: str = ""


@dataclass(slots=True, frozen=True)
class UndoOutcome:
    """Result of an undo request."""

    ok: bool
    buffer: str
    suggestions: SuggestionSet
    reason: FailureReason | None = None
    message: str = ""


class SuggestionController:
    """Coordinates suggestion lifecycle operations for one open document.

    Events Emitted:
        - SuggestionsChanged: Whenever the suggestion set is replaced.
        - SuggestionApplied / SuggestionUndone / SuggestionDismissed: On success.
        - SuggestionRejected: When apply, undo or dismiss fails recoverably.
        - CheckerResultDiscarded: When a checker result targets an old version.
    """

    def __init__(
        self,
        document_id: str,
        text: str = "",
        *,
        event_bus: EventBus | None = None,
        undo_capacity: int = DEFAULT_UNDO_CAPACITY,
    ) -> None:
        self._document_id = document_id
        self._buffer = text
        self._version = 1
        self._suggestions: SuggestionSet = EMPTY_SET
        self._history = UndoHistory(undo_capacity)
        self._bus = event_bus

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def document_id(self) -> str:
        return self._document_id

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def version(self) -> int:
        """Monotonic counter bumped on every buffer change."""
        return self._version

    @property
    def suggestions(self) -> SuggestionSet:
        return self._suggestions

    @property
    def history(self) -> UndoHistory:
        return self._history

    def can_undo(self) -> bool:
        record = self._history.peek()
        return record is not None and record.document_id == self._document_id

    # ------------------------------------------------------------------
    # Editing surface input
    # ------------------------------------------------------------------

    def on_edit(self, new_text: str) -> SuggestionSet:
        """Record a free-typing edit and drop suggestions it touched."""

        if new_text == self._buffer:
            return self._suggestions
        old_text = self._buffer
        self._buffer = new_text
        self._version += 1
        survivors = invalidate(old_text, new_text, self._suggestions)
        self._set_suggestions(survivors, cause="edit")
        return survivors

    def apply(self, suggestion_id: str) -> ApplyOutcome:
        """Apply a suggestion and push an undo record."""

        result = apply_suggestion(
            suggestion_id,
            self._buffer,
            self._suggestions,
            document_id=self._document_id,
        )
        if isinstance(result, SuggestionFailure):
            if result.suggestions is not None:
                self._set_suggestions(result.suggestions, cause="stale")
            self._reject(result)
            return ApplyOutcome(
                ok=False,
                buffer=self._buffer,
                suggestions=self._suggestions,
                reason=result.reason,
                message=result.message,
            )

        self._history.push(result.record)
        self._buffer = result.buffer
        self._version += 1
        self._set_suggestions(result.suggestions, cause="apply")
        self._publish(
            SuggestionApplied(
                document_id=self._document_id,
                suggestion_id=suggestion_id,
                kind=result.record.applied.kind.value,
                cursor=result.cursor,
                dropped=result.dropped,
            )
        )
        return ApplyOutcome(
            ok=True,
            buffer=self._buffer,
            suggestions=self._suggestions,
            cursor=result.cursor,
        )

    def undo(self) -> UndoOutcome:
        """Restore the buffer and suggestions captured by the newest apply."""

        result = undo_last(self._history, document_id=self._document_id)
        if isinstance(result, SuggestionFailure):
            self._reject(result)
            return UndoOutcome(
                ok=False,
                buffer=self._buffer,
                suggestions=self._suggestions,
                reason=result.reason,
                message=result.message,
            )

        self._buffer = result.buffer
        self._version += 1
        self._set_suggestions(result.suggestions, cause="undo")
        self._publish(
            SuggestionUndone(
                document_id=self._document_id,
                suggestion_id=result.record.applied.id,
            )
        )
        return UndoOutcome(ok=True, buffer=self._buffer, suggestions=self._suggestions)

    def dismiss(self, suggestion_id: str) -> bool:
        """Reject a suggestion; the buffer is left alone."""

        result = dismiss(suggestion_id, self._suggestions)
        if isinstance(result, SuggestionFailure):
            self._reject(result)
            return False
        self._set_suggestions(result, cause="dismiss")
        self._publish(
            SuggestionDismissed(document_id=self._document_id, suggestion_id=suggestion_id)
        )
        return True

    def clear(self, kind: SuggestionKind | str | None = None) -> None:
        """Drop every suggestion, or only those of ``kind``."""

        if kind is None:
            remaining = EMPTY_SET
            cause = "clear"
        else:
            target = SuggestionKind.parse(kind)
            remaining = self._suggestions.excluding_kind(target)
            cause = f"clear:{target.value}"
        if len(remaining) != len(self._suggestions):
            self._set_suggestions(remaining, cause=cause)

    def reset(self, document_id: str, text: str, *, clear_history: bool = False) -> None:
        """Switch to another document and discard its suggestions.

        Undo records are kept unless ``clear_history`` is set; records that
        belong to the previous document are refused by :meth:`undo` until that
        document becomes active again.
        """

        LOGGER.debug("Switching controller from %s to %s", self._document_id, document_id)
        self._document_id = document_id
        self._buffer = text
        self._version += 1
        if clear_history:
            self._history.clear()
        self._set_suggestions(EMPTY_SET, cause="reset")

    # ------------------------------------------------------------------
    # Checker results
    # ------------------------------------------------------------------

    def begin_check(self, kind: SuggestionKind | str) -> CheckTicket:
        """Return a ticket tying a checker invocation to the current buffer."""

        return CheckTicket(
            document_id=self._document_id,
            kind=SuggestionKind.parse(kind),
            version=self._version,
            text=self._buffer,
        )

    def receive(self, ticket: CheckTicket, candidates: Iterable[Suggestion]) -> bool:
        """Merge a checker's candidates if they were computed for the current buffer.

        Returns ``False`` when the ticket is outdated and the batch was dropped.
        """

        if ticket.document_id != self._document_id or ticket.version != self._version:
            LOGGER.debug(
                "Discarding %s results for %s@%d (current %s@%d)",
                ticket.kind.value,
                ticket.document_id,
                ticket.version,
                self._document_id,
                self._version,
            )
            self._publish(
                CheckerResultDiscarded(
                    document_id=ticket.document_id,
                    kind=ticket.kind.value,
                    ticket_version=ticket.version,
                    current_version=self._version,
                )
            )
            return False

        accepted: list[Suggestion] = []
        for candidate in candidates:
            if candidate.matches(self._buffer):
                accepted.append(candidate)
            else:
                LOGGER.debug(
                    "Ignoring %s candidate %s: %r not found at %s",
                    candidate.kind.value,
                    candidate.id,
                    candidate.original_text,
                    candidate.range.to_tuple(),
                )
        merged = merge(self._suggestions, accepted, ticket.kind)
        self._set_suggestions(merged, cause=f"merge:{ticket.kind.value}")
        return True

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _set_suggestions(self, suggestions: SuggestionSet, *, cause: str) -> None:
        self._suggestions = suggestions
        self._publish(
            SuggestionsChanged(
                document_id=self._document_id,
                version=self._version,
                count=len(suggestions),
                cause=cause,
            )
        )

    def _reject(self, failure: SuggestionFailure) -> None:
        LOGGER.debug(
            "SuggestionController: %s rejected (%s)",
            failure.suggestion_id,
            failure.reason.value,
        )
        self._publish(
            SuggestionRejected(
                document_id=self._document_id,
                reason=failure.reason.value,
                message=failure.message,
                suggestion_id=failure.suggestion_id,
            )
        )

    def _publish(self, event) -> None:
        if self._bus is not None:
            self._bus.publish(event)


__all__ = ["ApplyOutcome", "CheckTicket", "SuggestionController", "UndoOutcome"]
