"""Checker adapters and the scheduler that feeds their results to a controller."""

from __future__ import annotations

from .base import (
    DEFAULT_CLARITY_MIN_CHARS,
    DEFAULT_GRAMMAR_MIN_CHARS,
    CheckerAdapter,
    CheckerError,
    CheckerGates,
    new_suggestion_id,
    passes_gate,
)
from .clarity import ClarityChecker, ClaritySettings
from .grammar import GrammarChecker, LintIssue, ProselintLinter
from .scheduler import CheckScheduler, SchedulerConfig
from .spelling import SpellingChecker

__all__: list[str] = [
    "CheckScheduler",
    "CheckerAdapter",
    "CheckerError",
    "CheckerGates",
    "ClarityChecker",
    "ClaritySettings",
    "DEFAULT_CLARITY_MIN_CHARS",
    "DEFAULT_GRAMMAR_MIN_CHARS",
    "GrammarChecker",
    "LintIssue",
    "ProselintLinter",
    "SchedulerConfig",
    "SpellingChecker",
    "new_suggestion_id",
    "passes_gate",
]
