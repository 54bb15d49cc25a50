"""Suggestion lifecycle: model, invalidation, merge, apply/undo and per-document control."""

from __future__ import annotations

from .controller import ApplyOutcome, CheckTicket, SuggestionController, UndoOutcome
from .engine import ApplyResult, UndoResult, apply_suggestion, dismiss, undo_last
from .history import DEFAULT_UNDO_CAPACITY, UndoHistory
from .invalidation import compute_change_span, invalidate
from .merge import merge
from .models import (
    DEFAULT_PRIORITIES,
    EMPTY_SET,
    FailureReason,
    Suggestion,
    SuggestionFailure,
    SuggestionKind,
    SuggestionSet,
    UndoRecord,
)

__all__: list[str] = [
    "ApplyOutcome",
    "ApplyResult",
    "CheckTicket",
    "DEFAULT_PRIORITIES",
    "DEFAULT_UNDO_CAPACITY",
    "EMPTY_SET",
    "FailureReason",
    "Suggestion",
    "SuggestionController",
    "SuggestionFailure",
    "SuggestionKind",
    "SuggestionSet",
    "UndoHistory",
    "UndoOutcome",
    "UndoRecord",
    "UndoResult",
    "apply_suggestion",
    "compute_change_span",
    "dismiss",
    "invalidate",
    "merge",
    "undo_last",
]
