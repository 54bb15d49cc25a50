"""Fold a checker's fresh candidates into the live suggestion set."""

from __future__ import annotations

import logging
from typing import Iterable

from .models import Suggestion, SuggestionKind, SuggestionSet

LOGGER = logging.getLogger(__name__)


def merge(
    current: SuggestionSet,
    candidates: Iterable[Suggestion],
    kind: SuggestionKind | str,
) -> SuggestionSet:
    """Replace the ``kind`` partition of ``current`` with ``candidates``.

    Each checker owns its kind exclusively: a re-run drops every previous
    suggestion of that kind before the new batch goes in. Suggestions of
    other kinds are returned untouched, including ones that overlap the new
    candidates.
    """

    target = SuggestionKind.parse(kind)
    batch = list(candidates)
    for candidate in batch:
        if candidate.kind is not target:
            raise ValueError(
                f"Cannot merge {candidate.kind.value} suggestion {candidate.id} into the {target.value} partition"
            )

    retained = current.excluding_kind(target)
    merged = retained.extend(batch)
    LOGGER.debug(
        "Merged %d %s suggestion(s); replaced %d, kept %d of other kinds",
        len(batch),
        target.value,
        len(current) - len(retained),
        len(retained),
    )
    return merged


__all__ = ["merge"]
