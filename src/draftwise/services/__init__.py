"""Service layer helpers (settings, draft persistence)."""

from .drafts import Draft, DraftAutosaver, DraftNotFoundError, DraftStore, JsonDraftStore
from .settings import SecretVault, Settings, SettingsStore

__all__ = [
    "Draft",
    "DraftAutosaver",
    "DraftNotFoundError",
    "DraftStore",
    "JsonDraftStore",
    "SecretVault",
    "Settings",
    "SettingsStore",
]
