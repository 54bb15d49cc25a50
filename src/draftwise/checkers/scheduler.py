"""Debounced, per-kind scheduling of checker runs for one controller."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from ..events import CheckerFailed, EventBus
from ..suggestions.controller import SuggestionController
from ..suggestions.models import SuggestionKind
from .base import CheckerAdapter, CheckerError, CheckerGates

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SchedulerConfig:
    """Tunable debounce delays (seconds) and length gates."""

    spelling_debounce: float = 0.0
    grammar_debounce: float = 1.5
    clarity_debounce: float = 1.5
    gates: CheckerGates = field(default_factory=CheckerGates)

    def debounce_for(self, kind: SuggestionKind) -> float:
        if kind is SuggestionKind.SPELLING:
            return max(0.0, self.spelling_debounce)
        if kind is SuggestionKind.GRAMMAR:
            return max(0.0, self.grammar_debounce)
        return max(0.0, self.clarity_debounce)


class CheckScheduler:
    """Runs checker adapters against a controller's buffer after edits settle.

    Each kind owns at most one pending (debouncing) task. A new edit cancels
    the pending task and starts a fresh delay; runs already talking to their
    adapter are left alone, and the controller discards their results when
    the buffer has moved on.

    Events Emitted:
        - CheckerFailed: When an adapter raises for a run.
    """

    def __init__(
        self,
        controller: SuggestionController,
        adapters: Iterable[CheckerAdapter],
        *,
        config: SchedulerConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._controller = controller
        self._adapters: dict[SuggestionKind, CheckerAdapter] = {}
        for adapter in adapters:
            self._adapters[SuggestionKind.parse(adapter.kind)] = adapter
        self._config = config or SchedulerConfig()
        self._bus = event_bus
        self._pending: dict[SuggestionKind, asyncio.Task[bool]] = {}
        self._inflight: set[asyncio.Task[bool]] = set()
        self._closed = False

    @property
    def kinds(self) -> tuple[SuggestionKind, ...]:
        return tuple(self._adapters)

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    def is_pending(self, kind: SuggestionKind | str) -> bool:
        return SuggestionKind.parse(kind) in self._pending

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def notify_edit(self) -> None:
        """(Re)schedule every configured kind after its debounce delay."""

        for kind in self._adapters:
            self.schedule(kind)

    def schedule(self, kind: SuggestionKind | str, delay: float | None = None) -> None:
        """Start the debounce timer for ``kind``, replacing a pending one.

        Must be called from a running event loop.
        """

        if self._closed:
            return
        target = SuggestionKind.parse(kind)
        if target not in self._adapters:
            return
        previous = self._pending.pop(target, None)
        if previous is not None:
            previous.cancel()
        wait = self._config.debounce_for(target) if delay is None else max(0.0, delay)
        loop = asyncio.get_running_loop()
        self._pending[target] = loop.create_task(self._debounced(target, wait))

    async def _debounced(self, kind: SuggestionKind, delay: float) -> bool:
        if delay:
            await asyncio.sleep(delay)
        task = asyncio.current_task()
        if self._pending.get(kind) is task:
            self._pending.pop(kind)
        if task is not None:
            self._inflight.add(task)
        try:
            return await self.run_now(kind)
        finally:
            if task is not None:
                self._inflight.discard(task)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run_now(self, kind: SuggestionKind | str) -> bool:
        """Run the ``kind`` checker immediately; ``True`` when results were merged."""

        target = SuggestionKind.parse(kind)
        adapter = self._adapters.get(target)
        if adapter is None:
            return False

        controller = self._controller
        if not self._config.gates.passes(target, controller.buffer):
            if target is SuggestionKind.CLARITY:
                controller.clear(SuggestionKind.CLARITY)
            LOGGER.debug("Skipping %s check; text below the length gate", target.value)
            return False
        if not adapter.is_ready():
            LOGGER.debug("Skipping %s check; adapter not ready", target.value)
            return False

        ticket = controller.begin_check(target)
        try:
            candidates = await adapter.check_text(ticket.text)
        except asyncio.CancelledError:
            raise
        except CheckerError as exc:
            self._report_failure(ticket.document_id, target, exc)
            return False
        except Exception as exc:
            LOGGER.debug("%s checker raised", target.value, exc_info=True)
            self._report_failure(ticket.document_id, target, exc)
            return False
        try:
            return controller.receive(ticket, candidates)
        except Exception as exc:
            # Malformed results (wrong kind, not a suggestion) fail this kind only.
            LOGGER.debug("%s results rejected", target.value, exc_info=True)
            self._report_failure(ticket.document_id, target, exc)
            return False

    async def run_all(self) -> dict[SuggestionKind, bool]:
        """Run every configured kind once, bypassing debounce."""

        results: dict[SuggestionKind, bool] = {}
        for kind in self._adapters:
            results[kind] = await self.run_now(kind)
        return results

    async def drain(self) -> None:
        """Wait for pending and in-flight runs to finish."""

        while self._pending or self._inflight:
            tasks = list(self._pending.values()) + list(self._inflight)
            await asyncio.gather(*tasks, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel every scheduled run and close adapters that hold resources."""

        if self._closed:
            return
        self._closed = True
        tasks = list(self._pending.values()) + list(self._inflight)
        self._pending.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for adapter in self._adapters.values():
            close = getattr(adapter, "aclose", None)
            if close is not None:
                await close()

    def _report_failure(self, document_id: str, kind: SuggestionKind, error: BaseException) -> None:
        LOGGER.warning("%s checker failed: %s", kind.value.capitalize(), error)
        if self._bus is not None:
            self._bus.publish(CheckerFailed(document_id=document_id, kind=kind.value, error=str(error)))


__all__ = ["CheckScheduler", "SchedulerConfig"]
