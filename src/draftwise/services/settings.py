"""Persistent user settings for Draftwise.

Settings live in ``~/.draftwise/settings.json``. The API key never touches
disk in clear text: :class:`SecretVault` encrypts it with a Fernet key kept
beside the settings file. Values can be overridden per run, first by the
command line and then by ``DRAFTWISE_*`` environment variables.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from cryptography.fernet import Fernet, InvalidToken

__all__ = [
    "Settings",
    "SettingsStore",
    "SecretVault",
    "SecretProvider",
    "FernetSecretProvider",
    "default_settings_dir",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".draftwise"
_SETTINGS_VERSION = 1
_CIPHERTEXT_FIELD = "api_key_ciphertext"
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


def _env_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _env_int(value: str) -> int:
    return int(value, 10)


# Environment variable -> (settings field, parser).
_ENV_OVERRIDES: Mapping[str, tuple[str, Callable[[str], Any]]] = {
    "DRAFTWISE_API_KEY": ("api_key", str),
    "DRAFTWISE_BASE_URL": ("base_url", str),
    "DRAFTWISE_MODEL": ("model", str),
    "DRAFTWISE_ORGANIZATION": ("organization", str),
    "DRAFTWISE_LANGUAGE": ("language", str),
    "DRAFTWISE_DEBUG_LOGGING": ("debug_logging", _env_bool),
    "DRAFTWISE_REQUEST_TIMEOUT": ("request_timeout", float),
    "DRAFTWISE_TEMPERATURE": ("temperature", float),
    "DRAFTWISE_GRAMMAR_DEBOUNCE": ("grammar_debounce", float),
    "DRAFTWISE_CLARITY_DEBOUNCE": ("clarity_debounce", float),
    "DRAFTWISE_UNDO_CAPACITY": ("undo_capacity", _env_int),
}


def default_settings_dir() -> Path:
    """Return the directory holding settings, drafts and logs."""

    return _SETTINGS_DIR


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions.

    Checker timing mirrors the editing surface defaults: spelling runs on
    every edit, grammar and clarity wait for typing to pause.
    """

    # Clarity model endpoint
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    organization: str | None = None
    request_timeout: float = 30.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    # Checkers
    language: str = "en"
    custom_words: list[str] = field(default_factory=list)
    enabled_kinds: list[str] = field(default_factory=lambda: ["spelling", "grammar", "clarity"])
    spelling_debounce: float = 0.0
    grammar_debounce: float = 1.5
    clarity_debounce: float = 1.5
    grammar_min_chars: int = 10
    clarity_min_chars: int = 20
    # Lifecycle and persistence
    undo_capacity: int = 10
    autosave_delay: float = 2.0
    drafts_dir: str | None = None
    debug_logging: bool = False

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(item.name for item in fields(cls))


class SecretProvider(ABC):
    """Encrypts and decrypts sensitive strings for storage."""

    name: str = "unknown"

    @abstractmethod
    def encrypt(self, secret: str) -> str:
        """Return a storable token for ``secret``."""

    @abstractmethod
    def decrypt(self, token: str) -> str:
        """Return the plaintext behind ``token``."""


class FernetSecretProvider(SecretProvider):
    """Symmetric Fernet encryption with a key file created on first use."""

    name = "fernet"

    def __init__(self, key_path: Path | None = None) -> None:
        self._key_path = key_path or (_SETTINGS_DIR / "settings.key")
        self._fernet: Fernet | None = None

    @property
    def key_path(self) -> Path:
        return self._key_path

    def encrypt(self, secret: str) -> str:
        return self._cipher().encrypt(secret.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        return self._cipher().decrypt(token.encode("ascii")).decode("utf-8")

    def _cipher(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._read_or_create_key())
        return self._fernet

    def _read_or_create_key(self) -> bytes:
        path = self._key_path
        if path.exists():
            return path.read_bytes().strip()
        path.parent.mkdir(parents=True, exist_ok=True)
        key = Fernet.generate_key()
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(key)
        if os.name != "nt":  # pragma: no cover - depends on OS
            os.chmod(tmp_path, 0o600)
        tmp_path.replace(path)
        LOGGER.debug("Created secret key at %s", path)
        return key


class SecretVault:
    """Wraps a :class:`SecretProvider` and tags tokens with ``<provider>:``."""

    def __init__(
        self,
        *,
        key_path: Path | None = None,
        provider: SecretProvider | None = None,
    ) -> None:
        self._provider = provider or FernetSecretProvider(key_path)

    @property
    def strategy(self) -> str:
        return self._provider.name

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        return f"{self._provider.name}:{self._provider.encrypt(secret)}"

    def decrypt(self, token: str | None) -> str:
        """Return the plaintext for ``token``.

        Tokens minted by another provider are returned unchanged. Raises
        ``ValueError`` when the payload cannot be decrypted.
        """

        if not token:
            return ""
        prefix, sep, payload = token.partition(":")
        if not sep:
            prefix, payload = "", token
        if prefix and prefix != self._provider.name:
            LOGGER.warning("Secret token uses unknown provider %r; leaving it untouched", prefix)
            return token
        try:
            return self._provider.decrypt(payload)
        except InvalidToken as exc:
            raise ValueError(f"Secret token could not be decrypted by {self.strategy}") from exc


class SettingsStore:
    """Reads and writes :class:`Settings` as JSON."""

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or (_SETTINGS_DIR / "settings.json")
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def vault(self) -> SecretVault:
        return self._vault

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Return the stored settings with CLI then environment overrides applied.

        Missing or unreadable files yield defaults. Files written by an older
        release, or holding a plaintext key, are rewritten in the current
        format.
        """

        payload = self._read_payload()
        settings, needs_rewrite = self._settings_from_payload(payload)
        if needs_rewrite:
            try:
                self.save(settings)
            except OSError as exc:
                LOGGER.warning("Could not upgrade settings file %s: %s", self._path, exc)

        if overrides:
            settings = _with_overrides(settings, overrides, source="command line")
        env_overrides = _environment_overrides()
        if env_overrides:
            settings = _with_overrides(settings, env_overrides, source="environment")
        return _clamped(settings)

    def save(self, settings: Settings) -> Path:
        """Write ``settings`` atomically and return the file path."""

        body = json.dumps(self._to_payload(settings), indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _to_payload(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        api_key = data.pop("api_key") or ""
        if api_key:
            try:
                data[_CIPHERTEXT_FIELD] = self._vault.encrypt(api_key)
            except OSError as exc:
                LOGGER.warning("API key not saved; encryption failed: %s", exc)
        data["version"] = _SETTINGS_VERSION
        data["secret_backend"] = self._vault.strategy
        return data

    def _settings_from_payload(self, payload: Dict[str, Any]) -> tuple[Settings, bool]:
        if not payload:
            return Settings(), False

        api_key = ""
        needs_rewrite = payload.get("version") != _SETTINGS_VERSION
        ciphertext = payload.pop(_CIPHERTEXT_FIELD, None)
        legacy_key = payload.pop("api_key", None)
        if ciphertext:
            try:
                api_key = self._vault.decrypt(ciphertext)
            except ValueError as exc:
                LOGGER.warning("Ignoring stored API key: %s", exc)
        elif legacy_key:
            LOGGER.info("Found a plaintext API key; it will be stored encrypted.")
            api_key = str(legacy_key)
            needs_rewrite = True

        known = Settings.field_names() - {"api_key"}
        data = {key: value for key, value in payload.items() if key in known}
        try:
            settings = Settings(**data)
        except TypeError as exc:
            LOGGER.warning("Settings file %s has unexpected values: %s", self._path, exc)
            settings = Settings()
        if api_key:
            settings = replace(settings, api_key=api_key)
        LOGGER.debug("Settings loaded from %s", self._path)
        return settings, needs_rewrite

    def _read_payload(self) -> Dict[str, Any]:
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload


def _with_overrides(settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
    known = Settings.field_names()
    nullable = {item.name for item in fields(Settings) if item.default is None}
    changes = {
        key: value
        for key, value in overrides.items()
        if key in known and (value is not None or key in nullable)
    }
    if not changes:
        return settings
    LOGGER.debug("Applying %s overrides: %s", source, sorted(changes))
    return replace(settings, **changes)


def _clamped(settings: Settings) -> Settings:
    capacity = settings.undo_capacity
    if isinstance(capacity, int) and not isinstance(capacity, bool) and capacity >= 1:
        return settings
    fallback = 1 if isinstance(capacity, int) else Settings().undo_capacity
    LOGGER.warning("undo_capacity must be a positive integer (got %r); using %d", capacity, fallback)
    return replace(settings, undo_capacity=fallback)


def _environment_overrides() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for env_name, (field_name, parse) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        try:
            values[field_name] = parse(raw)
        except ValueError:
            LOGGER.warning("Ignoring %s=%r; expected a %s", env_name, raw, getattr(parse, "__name__", "value"))
    return values


def redact_secret(value: str) -> str:
    """Mask all but the first and last two characters of ``value``."""

    stripped = (value or "").strip()
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"
