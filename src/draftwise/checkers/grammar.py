"""Grammar and usage checker adapter backed by ``proselint``."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from ..core.ranges import TextRange
from ..suggestions.models import Suggestion, SuggestionKind
from .base import CheckerError, new_suggestion_id

LOGGER = logging.getLogger(__name__)

_CONFIDENCE = 0.8

# proselint keeps a process-wide registry; checks must be registered once.
_checks_registered = False

# Rules that report spelling or purely typographic issues handled elsewhere.
DEFAULT_SKIP_CHECKS: frozenset[str] = frozenset(
    {
        "typography.symbols.ellipsis",
        "typography.symbols.multiplication_symbol",
        "typography.symbols.curly_quotes",
        "typography.exclamation",
        "spelling",
    }
)


@dataclass(slots=True, frozen=True)
class LintIssue:
    """One finding reported by the linter, in character offsets of the text."""

    check: str
    message: str
    start: int
    end: int
    replacement: str | None = None


Linter = Callable[[str], Iterable[LintIssue]]


def _first_replacement(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str) and item:
                return item
    return None


def _normalize(result: Any) -> LintIssue | None:
    check_result = getattr(result, "check_result", None)
    if check_result is None and isinstance(result, tuple) and len(result) == 2:
        check_result = result[0] if hasattr(result[0], "check_path") else None
    if check_result is not None:
        span = check_result.span or (0, 0)
        return LintIssue(
            check=str(check_result.check_path),
            message=str(check_result.message),
            start=int(span[0]),
            end=int(span[1]),
            replacement=_first_replacement(check_result.replacements),
        )
    try:
        return LintIssue(
            check=str(result[0]),
            message=str(result[1]),
            start=int(result[4]),
            end=int(result[5]),
            replacement=_first_replacement(result[8] if len(result) > 8 else None),
        )
    except (IndexError, TypeError, ValueError):
        return None


class ProselintLinter:
    """Callable wrapper over proselint that copes with the pre- and post-0.14 APIs."""

    def __init__(self) -> None:
        self._proselint: Any = None
        self._config: Any = None
        self._registered = False
        self._error: str | None = None
        self._initialize()

    def _initialize(self) -> None:
        try:
            import proselint
        except ImportError as exc:
            self._error = f"proselint not installed: {exc}"
            return
        self._proselint = proselint
        try:
            from proselint.checks import __register__
            from proselint.config import DEFAULT
            from proselint.registry import CheckRegistry
        except ImportError:
            # Releases before 0.14 lint through proselint.tools.lint.
            return
        global _checks_registered
        if not _checks_registered:
            CheckRegistry().register_many(__register__)
            _checks_registered = True
        self._config = DEFAULT
        self._registered = True

    @property
    def available(self) -> bool:
        return self._proselint is not None

    @property
    def error(self) -> str | None:
        return self._error

    def __call__(self, text: str) -> list[LintIssue]:
        if self._registered:
            from proselint.tools import LintFile

            results = LintFile(source="-", content=text).lint(self._config)
        else:
            from proselint.tools import lint

            results = lint(text)
        issues: list[LintIssue] = []
        for result in results:
            issue = _normalize(result)
            if issue is not None:
                issues.append(issue)
        return issues


class GrammarChecker:
    """Turns linter findings with a concrete replacement into grammar suggestions."""

    kind = SuggestionKind.GRAMMAR

    def __init__(
        self,
        *,
        linter: Linter | None = None,
        skip_checks: Iterable[str] = DEFAULT_SKIP_CHECKS,
    ) -> None:
        self._skip_checks = frozenset(skip_checks)
        self._error: str | None = None
        if linter is None:
            default = ProselintLinter()
            self._error = default.error
            linter = default if default.available else None
        self._linter = linter

    @property
    def error(self) -> str | None:
        return self._error

    def is_ready(self) -> bool:
        return self._linter is not None

    async def check_text(self, text: str) -> list[Suggestion]:
        if self._linter is None:
            raise CheckerError(
                self._error or "Grammar checker is not ready",
                kind=self.kind,
                reason="not_ready",
            )
        try:
            issues = await asyncio.to_thread(lambda: list(self._linter(text)))
        except CheckerError:
            raise
        except Exception as exc:
            raise CheckerError(f"Grammar check failed: {exc}", kind=self.kind) from exc

        suggestions: list[Suggestion] = []
        for issue in issues:
            suggestion = self._build_suggestion(text, issue)
            if suggestion is not None:
                suggestions.append(suggestion)
        LOGGER.debug(
            "Grammar checker kept %d of %d finding(s)", len(suggestions), len(issues)
        )
        return suggestions

    def _should_skip(self, check: str) -> bool:
        return any(check == name or check.startswith(f"{name}.") for name in self._skip_checks)

    def _build_suggestion(self, text: str, issue: LintIssue) -> Suggestion | None:
        if self._should_skip(issue.check):
            return None
        if not 0 <= issue.start < issue.end <= len(text):
            return None
        original = text[issue.start : issue.end]
        if issue.replacement is None or issue.replacement == original:
            return None
        return Suggestion(
            id=new_suggestion_id(self.kind),
            kind=self.kind,
            original_text=original,
            replacement_text=issue.replacement,
            explanation=issue.message,
            range=TextRange(issue.start, issue.end),
            confidence=_CONFIDENCE,
        )


__all__ = ["DEFAULT_SKIP_CHECKS", "GrammarChecker", "LintIssue", "Linter", "ProselintLinter"]
