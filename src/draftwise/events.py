"""Event bus used to tell the editing surface about suggestion state changes.

Controllers and the check scheduler publish the events defined here; the
editing surface subscribes to re-render highlights, show feedback for
rejected operations and indicate checker activity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on the bus."""


# =============================================================================
# Suggestion lifecycle events
# =============================================================================


@dataclass(slots=True)
class SuggestionsChanged(Event):
    """Emitted whenever a document's suggestion set is replaced.

    Attributes:
        document_id: The document whose suggestions changed.
        version: Buffer version the set now refers to.
        count: Number of live suggestions.
        cause: Short tag naming the operation (``edit``, ``merge:spelling``, ``apply``...).
    """

    document_id: str
    version: int
    count: int
    cause: str


@dataclass(slots=True)
class SuggestionApplied(Event):
    """Emitted after a suggestion rewrote the buffer.

    Attributes:
        document_id: The document that was edited.
        suggestion_id: The applied suggestion.
        kind: Kind tag of the applied suggestion.
        cursor: Caret hint for the editing surface.
        dropped: Ids of conflicting suggestions removed by the edit.
    """

    document_id: str
    suggestion_id: str
    kind: str
    cursor: int
    dropped: tuple[str, ...] = ()


@dataclass(slots=True)
class SuggestionUndone(Event):
    """Emitted after an applied suggestion was reverted."""

    document_id: str
    suggestion_id: str


@dataclass(slots=True)
class SuggestionDismissed(Event):
    """Emitted when the user rejects a suggestion."""

    document_id: str
    suggestion_id: str


@dataclass(slots=True)
class SuggestionRejected(Event):
    """Emitted when apply, undo or dismiss could not proceed.

    Attributes:
        document_id: The active document.
        reason: Failure reason value (``not_found``, ``stale``, ``empty``, ``wrong_document``).
        message: Human-readable description for UI feedback.
        suggestion_id: The suggestion involved, when known.
    """

    document_id: str
    reason: str
    message: str
    suggestion_id: str | None = None


# =============================================================================
# Checker events
# =============================================================================


@dataclass(slots=True)
class CheckerFailed(Event):
    """Emitted when a checker run raised; its kind yields no candidates."""

    document_id: str
    kind: str
    error: str


@dataclass(slots=True)
class CheckerResultDiscarded(Event):
    """Emitted when a checker result arrived for an outdated buffer version."""

    document_id: str
    kind: str
    ticket_version: int
    current_version: int


# =============================================================================
# Persistence events
# =============================================================================


@dataclass(slots=True)
class DraftSaved(Event):
    """Emitted after the autosaver persisted a draft."""

    draft_id: str
    title: str


@dataclass(slots=True)
class DraftSaveFailed(Event):
    """Emitted when a best-effort draft save failed."""

    draft_id: str | None
    error: str


# Published on every keystroke; not logged per publish.
_UNLOGGED_EVENTS: frozenset[type[Event]] = frozenset({SuggestionsChanged})

# Returns the live handler, or None once its owner was collected.
_Resolver = Callable[[], "Handler | None"]


class EventBus(Generic[E]):
    """Synchronous publish/subscribe dispatch keyed on the exact event type.

    Bound methods are held through :class:`weakref.WeakMethod` so a
    subscriber that goes away stops receiving events without having to
    unsubscribe. Plain functions and lambdas are held strongly.

    The bus is not thread-safe; use it from the thread running the event loop.
    """

    __slots__ = ("_subscribers",)

    def __init__(self) -> None:
        self._subscribers: Dict[type, List[_Resolver]] = {}

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler``; registering twice means two calls per publish."""
        self._subscribers.setdefault(event_type, []).append(_resolver_for(handler))
        logger.debug("%s subscribed to %s", _describe(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Drop the earliest registration of ``handler``, if there is one."""
        resolvers = self._subscribers.get(event_type, [])
        position = next(
            (index for index, resolve in enumerate(resolvers) if resolve() == handler),
            None,
        )
        if position is None:
            return
        del resolvers[position]
        logger.debug("%s unsubscribed from %s", _describe(handler), event_type.__name__)

    def publish(self, event: E) -> None:
        """Call the handlers for ``event`` in subscription order.

        Exceptions raised by a handler are logged; later handlers still run.
        """
        event_type = type(event)
        resolvers = self._subscribers.get(event_type)
        if event_type not in _UNLOGGED_EVENTS:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(resolvers or ()))
        if not resolvers:
            return

        live: List[_Resolver] = []
        for resolve in list(resolvers):
            handler = resolve()
            if handler is None:
                continue
            live.append(resolve)
            try:
                handler(event)
            except Exception:
                logger.exception("%s failed while handling %s", _describe(handler), event_type.__name__)
        if len(live) != len(resolvers):
            self._subscribers[event_type] = live

    def clear(self) -> None:
        """Forget every subscription."""
        self._subscribers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Number of registrations for ``event_type``, or for all types."""
        if event_type is None:
            return sum(len(resolvers) for resolvers in self._subscribers.values())
        return len(self._subscribers.get(event_type, ()))


def _resolver_for(handler: Handler) -> _Resolver:
    if getattr(handler, "__self__", None) is not None and hasattr(handler, "__func__"):
        try:
            return WeakMethod(handler)  # type: ignore[arg-type]
        except TypeError:
            pass
    return lambda: handler


def _describe(handler: Handler) -> str:
    owner = getattr(handler, "__self__", None)
    if owner is not None and hasattr(handler, "__func__"):
        return f"{type(owner).__name__}.{handler.__func__.__name__}"  # type: ignore[attr-defined]
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "SuggestionsChanged",
    "SuggestionApplied",
    "SuggestionUndone",
    "SuggestionDismissed",
    "SuggestionRejected",
    "CheckerFailed",
    "CheckerResultDiscarded",
    "DraftSaved",
    "DraftSaveFailed",
]
