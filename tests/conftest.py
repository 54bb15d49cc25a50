"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from draftwise.events import EventBus


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user configuration and log files out of the test run."""
    for name in list(os.environ):
        if name.startswith("DRAFTWISE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DRAFTWISE_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded(event_bus: EventBus):
    """Subscribe a recorder to the given event types and return its list."""

    events: list = []

    def _subscribe(*event_types: type) -> list:
        for event_type in event_types:
            event_bus.subscribe(event_type, events.append)
        return events

    return _subscribe


@pytest.fixture
def restore_root_logger():
    """Undo handler changes made by ``setup_logging`` during a test."""

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
