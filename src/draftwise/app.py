"""Command line entry point for running Draftwise checks against text files."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .checkers import (
    CheckerAdapter,
    CheckerGates,
    CheckScheduler,
    ClarityChecker,
    ClaritySettings,
    GrammarChecker,
    SchedulerConfig,
    SpellingChecker,
)
from .events import CheckerFailed, EventBus
from .services.drafts import DraftAutosaver, JsonDraftStore
from .services.settings import Settings, SettingsStore, default_settings_dir, redact_secret
from .suggestions import Suggestion, SuggestionController, SuggestionKind
from .utils import logging as logging_utils

_YES = frozenset({"1", "true", "yes", "on", "debug"})
_NO = frozenset({"0", "false", "no", "off", "disabled"})
_LOGGER = logging.getLogger(__name__)
_ALL_KINDS = tuple(kind.value for kind in SuggestionKind)


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure structured logging for the command line tool."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return Settings()


def build_checkers(settings: Settings, kinds: Sequence[SuggestionKind]) -> list[CheckerAdapter]:
    """Construct the checker adapters requested by ``kinds``."""

    adapters: list[CheckerAdapter] = []
    for kind in kinds:
        if kind is SuggestionKind.SPELLING:
            adapters.append(SpellingChecker(language=settings.language, custom_words=settings.custom_words))
        elif kind is SuggestionKind.GRAMMAR:
            adapters.append(GrammarChecker())
        else:
            adapters.append(ClarityChecker(build_clarity_settings(settings)))
    for adapter in adapters:
        if not adapter.is_ready():
            _LOGGER.warning("%s checker unavailable; skipping", adapter.kind.value.capitalize())
    return adapters


def build_clarity_settings(settings: Settings, *, debug_logging: bool = False) -> ClaritySettings:
    return ClaritySettings(
        api_key=settings.api_key,
        base_url=settings.base_url,
        model=settings.model,
        organization=settings.organization,
        temperature=settings.temperature,
        request_timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        retry_min_seconds=settings.retry_min_seconds,
        retry_max_seconds=settings.retry_max_seconds,
        debug_logging=debug_logging or settings.debug_logging,
    )


def build_scheduler_config(settings: Settings) -> SchedulerConfig:
    return SchedulerConfig(
        spelling_debounce=settings.spelling_debounce,
        grammar_debounce=settings.grammar_debounce,
        clarity_debounce=settings.clarity_debounce,
        gates=CheckerGates(
            grammar_min_chars=settings.grammar_min_chars,
            clarity_min_chars=settings.clarity_min_chars,
        ),
    )


def build_draft_store(settings: Settings) -> JsonDraftStore:
    """Return the draft store at ``drafts_dir``, defaulting to ``~/.draftwise/drafts``."""

    directory = Path(settings.drafts_dir).expanduser() if settings.drafts_dir else default_settings_dir() / "drafts"
    return JsonDraftStore(directory)


def build_autosaver(
    settings: Settings,
    *,
    store: JsonDraftStore | None = None,
    event_bus: EventBus | None = None,
) -> DraftAutosaver:
    return DraftAutosaver(
        store or build_draft_store(settings),
        delay=settings.autosave_delay,
        event_bus=event_bus,
    )


async def check_text(
    document_id: str,
    text: str,
    adapters: Sequence[CheckerAdapter],
    *,
    settings: Settings | None = None,
    event_bus: EventBus | None = None,
) -> SuggestionController:
    """Run every adapter once over ``text`` and return the populated controller."""

    active = settings or Settings()
    controller = SuggestionController(
        document_id,
        text,
        event_bus=event_bus,
        undo_capacity=active.undo_capacity,
    )
    scheduler = CheckScheduler(
        controller,
        adapters,
        config=build_scheduler_config(active),
        event_bus=event_bus,
    )
    try:
        await scheduler.run_all()
    finally:
        await scheduler.aclose()
    return controller


def fix_all(controller: SuggestionController) -> int:
    """Apply every suggestion that carries a real replacement, in reading order.

    Suggestions dropped because an earlier fix overlapped them are skipped.
    Returns the number of applied suggestions.
    """

    applied = 0
    for suggestion in controller.suggestions.ordered():
        if suggestion.id not in controller.suggestions:
            continue
        if suggestion.replacement_text == suggestion.original_text:
            continue
        outcome = controller.apply(suggestion.id)
        if outcome.ok:
            applied += 1
        else:
            _LOGGER.debug("Skipped %s: %s", suggestion.id, outcome.message)
    return applied


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `draftwise` console script."""

    args = _parse_cli_args(argv)

    debug = args.debug or bool(_flag_value(os.environ.get("DRAFTWISE_DEBUG", "")))
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("DRAFTWISE_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    if args.command == "settings":
        _dump_settings(settings, settings_store)
        return 0
    if args.command == "drafts":
        return _list_drafts(build_draft_store(settings))

    try:
        kinds = _parse_kinds(args.kinds, default=settings.enabled_kinds)
    except ValueError as exc:
        print(f"Invalid --kinds value: {exc}", file=sys.stderr)
        return 2

    path = Path(args.path).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Unable to read {path}: {exc}", file=sys.stderr)
        return 2

    bus = EventBus()
    failures: list[CheckerFailed] = []
    bus.subscribe(CheckerFailed, failures.append)
    adapters = build_checkers(settings, kinds)
    controller = asyncio.run(check_text(path.name, text, adapters, settings=settings, event_bus=bus))
    for failure in failures:
        print(f"{failure.kind} checker failed: {failure.error}", file=sys.stderr)

    if args.command == "fix":
        return _run_fix(controller, path, in_place=args.in_place)
    return _report(controller, as_json=args.json)


def _run_fix(controller: SuggestionController, path: Path, *, in_place: bool, stream: TextIO | None = None) -> int:
    out = stream or sys.stdout
    applied = fix_all(controller)
    if in_place:
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(controller.buffer, encoding="utf-8")
        tmp_path.replace(path)
        print(f"Applied {applied} fix(es) to {path}", file=sys.stderr)
    else:
        out.write(controller.buffer)
    return 0


def _report(controller: SuggestionController, *, as_json: bool, stream: TextIO | None = None) -> int:
    out = stream or sys.stdout
    suggestions = controller.suggestions
    if as_json:
        payload = {
            "document": controller.document_id,
            "suggestions": suggestions.as_payload(text=controller.buffer),
        }
        out.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
    else:
        for suggestion in suggestions.ordered():
            out.write(_format_suggestion(controller.buffer, suggestion) + "\n")
    return 1 if suggestions else 0


def _format_suggestion(text: str, suggestion: Suggestion) -> str:
    line = text.count("\n", 0, suggestion.start) + 1
    column = suggestion.start - (text.rfind("\n", 0, suggestion.start) + 1) + 1
    return (
        f"{line}:{column} [{suggestion.kind.value}] "
        f"{suggestion.original_text!r} -> {suggestion.replacement_text!r}  {suggestion.explanation}"
    )


def _parse_kinds(raw: str | None, *, default: Sequence[str]) -> list[SuggestionKind]:
    names = [item.strip() for item in raw.split(",")] if raw else list(default)
    kinds: list[SuggestionKind] = []
    for name in names:
        if not name:
            continue
        kind = SuggestionKind.parse(name)
        if kind not in kinds:
            kinds.append(kind)
    if not kinds:
        raise ValueError("at least one kind is required")
    return kinds


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", help="Enable debug logging.")
    common.add_argument(
        "--settings",
        "--settings-path",
        dest="settings_path",
        metavar="PATH",
        help="Override the default ~/.draftwise/settings.json path.",
    )
    common.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )

    parser = argparse.ArgumentParser(
        prog="draftwise",
        description="Check drafts for spelling, grammar and clarity issues.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check", parents=[common], help="List suggestions for a text file.")
    check.add_argument("path", metavar="PATH")
    check.add_argument("--kinds", help=f"Comma-separated subset of {', '.join(_ALL_KINDS)}.")
    check.add_argument("--json", action="store_true", help="Emit suggestions as JSON.")

    fix = subparsers.add_parser("fix", parents=[common], help="Apply suggestions and print the result.")
    fix.add_argument("path", metavar="PATH")
    fix.add_argument("--kinds", default="spelling", help="Kinds to apply (default: spelling).")
    fix.add_argument("--in-place", action="store_true", help="Rewrite PATH instead of printing.")

    subparsers.add_parser("settings", parents=[common], help="Print effective settings (secrets redacted).")
    subparsers.add_parser("drafts", parents=[common], help="List saved drafts, newest first.")
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    """Turn ``KEY=VALUE`` entries into typed :class:`Settings` values."""

    hints = get_type_hints(Settings)
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, sep, raw_value = entry.partition("=")
        key = key.strip()
        if not sep:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in hints:
            raise ValueError(f"Unknown setting '{key}'.")
        overrides[key] = _parse_setting(hints[key], raw_value.strip())
    return overrides


def _parse_setting(hint: Any, raw_value: str) -> Any:
    members = get_args(hint)
    if type(None) in members:
        if raw_value.lower() in {"none", "null"}:
            return None
        hint = next(member for member in members if member is not type(None))
    if get_origin(hint) is list:
        return _parse_list(raw_value)
    parse = _SCALAR_PARSERS.get(hint)
    return parse(raw_value) if parse else raw_value


def _parse_list(raw_value: str) -> list[Any]:
    if not raw_value.startswith("["):
        return [item.strip() for item in raw_value.split(",") if item.strip()]
    try:
        value = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise ValueError("List overrides must be valid JSON arrays") from exc
    if not isinstance(value, list):
        raise ValueError("List overrides must be valid JSON arrays")
    return value


def _parse_bool(raw_value: str) -> bool:
    flag = _flag_value(raw_value)
    if flag is None:
        raise ValueError(f"Cannot coerce '{raw_value}' to a boolean.")
    return flag


def _flag_value(raw_value: str) -> bool | None:
    lowered = raw_value.strip().lower()
    if lowered in _YES:
        return True
    if lowered in _NO:
        return False
    return None


_SCALAR_PARSERS: Dict[Any, Any] = {
    bool: _parse_bool,
    int: lambda raw_value: int(raw_value, 10),
    float: float,
}


def _list_drafts(store: JsonDraftStore, *, stream: TextIO | None = None) -> int:
    out = stream or sys.stdout
    for draft in store.list():
        out.write(f"{draft.id}\t{draft.updated_at}\t{draft.title}\n")
    return 0


def _dump_settings(settings: Settings, store: SettingsStore, *, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    payload["settings_path"] = str(store.path)
    payload["log_path"] = str(logging_utils.get_log_path() or "")
    out.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
