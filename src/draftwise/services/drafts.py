"""Draft persistence and best-effort autosave."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import uuid
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Protocol, runtime_checkable

from ..events import DraftSaved, DraftSaveFailed, EventBus

__all__ = [
    "Draft",
    "DraftAutosaver",
    "DraftNotFoundError",
    "DraftStore",
    "JsonDraftStore",
]

LOGGER = logging.getLogger(__name__)
_DRAFT_VERSION = 1
_DRAFT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
DEFAULT_AUTOSAVE_DELAY = 2.0


class DraftNotFoundError(LookupError):
    """Raised when a draft id has no stored draft."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True, frozen=True)
class Draft:
    """A named, persisted document."""

    id: str
    title: str
    content: str
    created_at: str
    updated_at: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Draft":
        return cls(
            id=str(payload["id"]),
            title=str(payload.get("title") or ""),
            content=str(payload.get("content") or ""),
            created_at=str(payload.get("created_at") or ""),
            updated_at=str(payload.get("updated_at") or ""),
        )


@runtime_checkable
class DraftStore(Protocol):
    """Storage collaborator for drafts; the suggestion core never calls it."""

    def save(self, title: str, content: str, draft_id: str | None = None) -> str:
        ...

    def load(self, draft_id: str) -> Draft:
        ...

    def delete(self, draft_id: str) -> None:
        ...

    def list(self) -> list[Draft]:
        ...


class JsonDraftStore:
    """Keeps one JSON file per draft inside ``directory``."""

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def save(self, title: str, content: str, draft_id: str | None = None) -> str:
        """Create or overwrite a draft and return its id."""

        now = _now()
        if draft_id is None:
            draft = Draft(id=uuid.uuid4().hex, title=title, content=content, created_at=now, updated_at=now)
        else:
            try:
                existing = self.load(draft_id)
            except DraftNotFoundError:
                draft = Draft(id=draft_id, title=title, content=content, created_at=now, updated_at=now)
            else:
                draft = replace(existing, title=title, content=content, updated_at=now)

        payload = asdict(draft)
        payload["version"] = _DRAFT_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
        path = self._path_for(draft.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(path)
        LOGGER.debug("Draft %s saved to %s", draft.id, path)
        return draft.id

    def load(self, draft_id: str) -> Draft:
        path = self._path_for(draft_id)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise DraftNotFoundError(draft_id) from exc
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Draft file {path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, Mapping) or "id" not in payload:
            raise ValueError(f"Draft file {path} is missing required fields")
        return Draft.from_payload(payload)

    def delete(self, draft_id: str) -> None:
        path = self._path_for(draft_id)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise DraftNotFoundError(draft_id) from exc

    def list(self) -> list[Draft]:
        """Return every readable draft, most recently updated first."""

        if not self._directory.exists():
            return []
        drafts: list[Draft] = []
        for path in self._directory.glob("*.json"):
            try:
                drafts.append(self.load(path.stem))
            except (ValueError, DraftNotFoundError) as exc:
                LOGGER.warning("Skipping unreadable draft %s: %s", path, exc)
        drafts.sort(key=lambda draft: draft.updated_at, reverse=True)
        return drafts

    def _path_for(self, draft_id: str) -> Path:
        if not _DRAFT_ID_RE.match(draft_id or ""):
            raise ValueError(f"Invalid draft id: {draft_id!r}")
        return self._directory / f"{draft_id}.json"


class DraftAutosaver:
    """Debounces draft saves and runs them without blocking the caller.

    A request still inside its debounce delay is replaced by a newer one.
    Once a save has reached the store it is never cancelled; later saves
    queue behind it and reuse the draft id it produced.

    Failures are logged and published as :class:`DraftSaveFailed`; they never
    propagate to the code that requested the save.
    """

    def __init__(
        self,
        store: DraftStore,
        *,
        delay: float = DEFAULT_AUTOSAVE_DELAY,
        event_bus: EventBus | None = None,
    ) -> None:
        self._store = store
        self._delay = max(0.0, delay)
        self._bus = event_bus
        self._pending: asyncio.Task[str | None] | None = None
        self._saving: set[asyncio.Task[str | None]] = set()
        self._write_lock = asyncio.Lock()
        self._last_draft_id: str | None = None

    @property
    def last_draft_id(self) -> str | None:
        """Id of the draft written by the most recent successful save."""
        return self._last_draft_id

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._pending is not None or bool(self._saving)

    def schedule(self, title: str, content: str, draft_id: str | None = None) -> None:
        """Save after the debounce delay; a newer request replaces a pending one."""

        if self._pending is not None:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.create_task(self._save_later(title, content, draft_id))

    async def flush(self) -> str | None:
        """Wait for pending and running saves and return the last saved draft id."""

        while self._pending is not None or self._saving:
            tasks = [task for task in (self._pending, *self._saving) if task is not None]
            await asyncio.gather(*tasks, return_exceptions=True)
            if self._pending is not None and self._pending.done():
                self._pending = None
        return self._last_draft_id

    async def aclose(self) -> None:
        """Drop a save still waiting out its delay and finish any running one."""

        pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()
            await asyncio.gather(pending, return_exceptions=True)
        if self._saving:
            await asyncio.gather(*self._saving, return_exceptions=True)

    async def _save_later(self, title: str, content: str, draft_id: str | None) -> str | None:
        if self._delay:
            await asyncio.sleep(self._delay)
        task = asyncio.current_task()
        if self._pending is task:
            self._pending = None
        if task is not None:
            self._saving.add(task)
        try:
            async with self._write_lock:
                target = draft_id if draft_id is not None else self._last_draft_id
                return await self._write(title, content, target)
        finally:
            self._saving.discard(task)

    async def _write(self, title: str, content: str, draft_id: str | None) -> str | None:
        try:
            saved_id = await asyncio.to_thread(self._store.save, title, content, draft_id)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Autosave failed for draft %s: %s", draft_id or "<new>", exc)
            self._publish(DraftSaveFailed(draft_id=draft_id, error=str(exc)))
            return None
        self._last_draft_id = saved_id
        self._publish(DraftSaved(draft_id=saved_id, title=title))
        return saved_id

    def _publish(self, event) -> None:
        if self._bus is not None:
            self._bus.publish(event)
