"""Drop suggestions whose text was touched by a free-typing edit."""

from __future__ import annotations

import logging

from ..core.ranges import TextRange
from .models import SuggestionSet

LOGGER = logging.getLogger(__name__)


def compute_change_span(old_text: str, new_text: str) -> TextRange | None:
    """Return the minimal span of ``old_text`` that differs from ``new_text``.

    The span is found by matching a common prefix and then a common suffix
    that may not cross back over the prefix. The end offset is exclusive and
    indexes into ``old_text``. A pure insertion yields a caret. Identical
    texts yield ``None``.
    """

    if old_text == new_text:
        return None

    limit = min(len(old_text), len(new_text))
    change_start = 0
    while change_start < limit and old_text[change_start] == new_text[change_start]:
        change_start += 1

    old_end = len(old_text) - 1
    new_end = len(new_text) - 1
    while (
        old_end >= change_start
        and new_end >= change_start
        and old_text[old_end] == new_text[new_end]
    ):
        old_end -= 1
        new_end -= 1

    return TextRange(change_start, old_end + 1)


def invalidate(old_text: str, new_text: str, suggestions: SuggestionSet) -> SuggestionSet:
    """Return ``suggestions`` minus every entry overlapping the edited span.

    Survivors are kept verbatim; their offsets are not rebased. Checkers are
    re-run after edits and replace their own slice with fresh positions.
    """

    if not suggestions:
        return suggestions

    span = compute_change_span(old_text, new_text)
    if span is None:
        return suggestions

    LOGGER.debug(
        "Text change detected at %s-%s (old length %d, new length %d)",
        span.start,
        span.end,
        len(old_text),
        len(new_text),
    )

    survivors = suggestions.filter(lambda item: not item.range.overlaps(span))
    removed = len(suggestions) - len(survivors)
    if removed:
        LOGGER.debug("Invalidated %d suggestion(s) overlapping the edit", removed)
        return survivors
    return suggestions


__all__ = ["compute_change_span", "invalidate"]
