"""Tests for :mod:`draftwise.checkers.scheduler`."""

from __future__ import annotations

import asyncio

import pytest

from draftwise.checkers.base import CheckerError, CheckerGates
from draftwise.checkers.scheduler import CheckScheduler, SchedulerConfig
from draftwise.events import CheckerFailed, CheckerResultDiscarded
from draftwise.suggestions.controller import SuggestionController
from draftwise.suggestions.models import SuggestionKind
from tests.helpers import StubAdapter, suggestion_for

TEXT = "Teh cat sat on the mat because of the fact that it was warm."

FAST = SchedulerConfig(spelling_debounce=0.0, grammar_debounce=0.01, clarity_debounce=0.01)


def _teh(text: str):
    if "Teh" not in text:
        return []
    return [suggestion_for(text, "Teh", "The")]


def _clarity(text: str):
    if "because of the fact that" not in text:
        return []
    return [suggestion_for(text, "because of the fact that", "because", kind="clarity")]


class TestSchedulerConfig:
    def test_default_debounces(self) -> None:
        config = SchedulerConfig()
        assert config.debounce_for(SuggestionKind.SPELLING) == 0.0
        assert config.debounce_for(SuggestionKind.GRAMMAR) == 1.5
        assert config.debounce_for(SuggestionKind.CLARITY) == 1.5
        assert config.gates == CheckerGates(grammar_min_chars=10, clarity_min_chars=20)

    def test_negative_debounce_is_clamped(self) -> None:
        assert SchedulerConfig(grammar_debounce=-1).debounce_for(SuggestionKind.GRAMMAR) == 0.0


class TestRunNow:
    """Immediate runs honour gates, readiness and failure isolation."""

    @pytest.mark.asyncio
    async def test_results_are_merged(self) -> None:
        controller = SuggestionController("doc", TEXT)
        scheduler = CheckScheduler(controller, [StubAdapter("spelling", _teh)])

        assert await scheduler.run_now("spelling")

        (suggestion,) = controller.suggestions
        assert suggestion.original_text == "Teh"
        assert suggestion.matches(controller.buffer)

    @pytest.mark.asyncio
    async def test_unknown_kind_is_ignored(self) -> None:
        scheduler = CheckScheduler(SuggestionController("doc", TEXT), [StubAdapter("spelling")])
        assert scheduler.kinds == (SuggestionKind.SPELLING,)
        assert not await scheduler.run_now("grammar")

    @pytest.mark.asyncio
    async def test_grammar_gate_needs_more_than_ten_characters(self) -> None:
        adapter = StubAdapter("grammar")
        controller = SuggestionController("doc", "  0123456789  ")
        scheduler = CheckScheduler(controller, [adapter])

        assert not await scheduler.run_now("grammar")
        assert adapter.seen == []

        controller.on_edit("0123456789a")
        await scheduler.run_now("grammar")
        assert adapter.seen == ["0123456789a"]

    @pytest.mark.asyncio
    async def test_failed_clarity_gate_clears_clarity_suggestions(self) -> None:
        controller = SuggestionController("doc", TEXT)
        adapter = StubAdapter("clarity", _clarity)
        scheduler = CheckScheduler(controller, [adapter, StubAdapter("spelling", _teh)])
        await scheduler.run_all()
        assert len(controller.suggestions.of_kind("clarity")) == 1

        strict = CheckScheduler(
            controller,
            [adapter],
            config=SchedulerConfig(gates=CheckerGates(clarity_min_chars=500)),
        )
        assert not await strict.run_now("clarity")

        assert not controller.suggestions.of_kind("clarity")
        assert len(controller.suggestions.of_kind("spelling")) == 1
        assert adapter.seen == [TEXT]

    @pytest.mark.asyncio
    async def test_adapter_not_ready_is_skipped(self) -> None:
        adapter = StubAdapter("spelling", _teh, ready=False)
        scheduler = CheckScheduler(SuggestionController("doc", TEXT), [adapter])
        assert not await scheduler.run_now("spelling")
        assert adapter.seen == []

    @pytest.mark.asyncio
    async def test_failure_publishes_event_and_spares_other_kinds(self, event_bus, recorded) -> None:
        events = recorded(CheckerFailed)
        controller = SuggestionController("doc", TEXT, event_bus=event_bus)
        scheduler = CheckScheduler(
            controller,
            [
                StubAdapter("grammar", error=CheckerError("linter broke", kind="grammar")),
                StubAdapter("spelling", _teh),
                StubAdapter("clarity", error=RuntimeError("network down")),
            ],
            event_bus=event_bus,
        )

        results = await scheduler.run_all()

        assert results == {
            SuggestionKind.GRAMMAR: False,
            SuggestionKind.SPELLING: True,
            SuggestionKind.CLARITY: False,
        }
        assert [item.kind for item in controller.suggestions] == [SuggestionKind.SPELLING]
        assert [(event.kind, event.error) for event in events] == [
            ("grammar", "linter broke"),
            ("clarity", "network down"),
        ]

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_suggestions_of_kind(self) -> None:
        controller = SuggestionController("doc", TEXT)
        await CheckScheduler(controller, [StubAdapter("spelling", _teh)]).run_now("spelling")

        failing = CheckScheduler(controller, [StubAdapter("spelling", error=RuntimeError("boom"))])
        assert not await failing.run_now("spelling")

        assert len(controller.suggestions) == 1


    @pytest.mark.asyncio
    async def test_results_of_the_wrong_kind_fail_only_that_kind(self, event_bus, recorded) -> None:
        events = recorded(CheckerFailed)
        controller = SuggestionController("doc", TEXT, event_bus=event_bus)
        scheduler = CheckScheduler(
            controller,
            [
                StubAdapter("grammar", _teh),
                StubAdapter("clarity", _clarity),
            ],
            event_bus=event_bus,
        )

        results = await scheduler.run_all()

        assert results == {SuggestionKind.GRAMMAR: False, SuggestionKind.CLARITY: True}
        assert [item.kind for item in controller.suggestions] == [SuggestionKind.CLARITY]
        assert [event.kind for event in events] == ["grammar"]
        assert "spelling" in events[0].error

class TestDebounce:
    """Scheduled runs wait for edits to settle and never apply stale output."""

    @pytest.mark.asyncio
    async def test_rescheduling_cancels_pending_run(self) -> None:
        adapter = StubAdapter("grammar", lambda text: [])
        controller = SuggestionController("doc", TEXT)
        scheduler = CheckScheduler(controller, [adapter], config=FAST)

        scheduler.schedule("grammar")
        assert scheduler.is_pending("grammar")
        scheduler.schedule("grammar")
        scheduler.schedule("grammar")
        await scheduler.drain()

        assert adapter.seen == [TEXT]
        assert not scheduler.is_pending("grammar")

    @pytest.mark.asyncio
    async def test_notify_edit_schedules_every_kind(self) -> None:
        adapters = [StubAdapter(kind) for kind in ("spelling", "grammar", "clarity")]
        scheduler = CheckScheduler(SuggestionController("doc", TEXT), adapters, config=FAST)

        scheduler.notify_edit()
        await scheduler.drain()

        assert all(adapter.seen == [TEXT] for adapter in adapters)

    @pytest.mark.asyncio
    async def test_edit_during_run_discards_result(self, event_bus, recorded) -> None:
        events = recorded(CheckerResultDiscarded)
        gate = asyncio.Event()
        adapter = StubAdapter("spelling", _teh, gate=gate)
        controller = SuggestionController("doc", TEXT, event_bus=event_bus)
        scheduler = CheckScheduler(controller, [adapter], config=FAST)

        scheduler.schedule("spelling")
        await asyncio.wait_for(adapter.started.wait(), timeout=1)
        controller.on_edit("A " + TEXT)
        gate.set()
        await scheduler.drain()

        assert not controller.suggestions
        assert events[0].ticket_version == 1
        assert events[0].current_version == 2

    @pytest.mark.asyncio
    async def test_explicit_delay_overrides_config(self) -> None:
        adapter = StubAdapter("clarity")
        scheduler = CheckScheduler(SuggestionController("doc", TEXT), [adapter])

        scheduler.schedule("clarity", delay=0)
        await scheduler.drain()

        assert adapter.seen == [TEXT]


class TestAclose:
    @pytest.mark.asyncio
    async def test_aclose_cancels_pending_and_closes_adapters(self) -> None:
        adapter = StubAdapter("grammar")
        scheduler = CheckScheduler(
            SuggestionController("doc", TEXT), [adapter], config=SchedulerConfig(grammar_debounce=10)
        )
        scheduler.schedule("grammar")

        await scheduler.aclose()

        assert adapter.closed
        assert adapter.seen == []
        assert not scheduler.is_pending("grammar")

    @pytest.mark.asyncio
    async def test_schedule_after_close_is_ignored(self) -> None:
        adapter = StubAdapter("spelling")
        scheduler = CheckScheduler(SuggestionController("doc", TEXT), [adapter])
        await scheduler.aclose()
        await scheduler.aclose()

        scheduler.schedule("spelling")

        assert not scheduler.is_pending("spelling")
