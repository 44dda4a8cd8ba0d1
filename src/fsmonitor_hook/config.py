"""Configuration loading and deterministic merge order.

Two files are read. The user config (``$FSMONITOR_HOOK_CONFIG``, else
``$XDG_CONFIG_HOME/fsmonitor-hook/config.toml``, else
``~/.config/fsmonitor-hook/config.toml``) may set every section. The
work-tree ``fsmonitor-hook.toml`` travels with the repository, so it may only
narrow the query; a ``[watcher]`` or ``[audit]`` section there is rejected.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from fsmonitor_hook.errors import ConfigError
from fsmonitor_hook.watcher import DEFAULT_EXCLUDE_DIRNAMES, DEFAULT_WATCHER_COMMAND

CONFIG_FILENAME = "fsmonitor-hook.toml"
USER_CONFIG_RELATIVE = Path("fsmonitor-hook") / "config.toml"
USER_CONFIG_ENV = "FSMONITOR_HOOK_CONFIG"
WATCHMAN_ENV = "FSMONITOR_HOOK_WATCHMAN"
AUDIT_LOG_ENV = "FSMONITOR_HOOK_AUDIT_LOG"
USER_ONLY_SECTIONS = ("watcher", "audit")


@dataclass(slots=True, frozen=True)
class WatcherConfig:
    """How to reach the watcher and what to ask it."""

    command: tuple[str, ...]
    exclude_dirnames: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class AuditConfig:
    """Optional JSONL audit log; disabled when path is None."""

    path: Path | None


@dataclass(slots=True, frozen=True)
class HookConfig:
    """Fully merged hook configuration."""

    work_tree: Path
    watcher: WatcherConfig
    audit: AuditConfig


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    watchman: str | None = None
    audit_log: Path | None = None


def default_config(work_tree: Path) -> HookConfig:
    """Build default config for a given work tree."""
    return HookConfig(
        work_tree=work_tree,
        watcher=WatcherConfig(
            command=DEFAULT_WATCHER_COMMAND,
            exclude_dirnames=DEFAULT_EXCLUDE_DIRNAMES,
        ),
        audit=AuditConfig(path=None),
    )


def user_config_path(environ: Mapping[str, str]) -> Path:
    """Return where the per-user config file lives."""
    explicit = environ.get(USER_CONFIG_ENV, "").strip()
    if explicit:
        return Path(explicit).expanduser()
    xdg_home = environ.get("XDG_CONFIG_HOME", "").strip()
    if xdg_home:
        return Path(xdg_home) / USER_CONFIG_RELATIVE
    return Path.home() / ".config" / USER_CONFIG_RELATIVE


def load_toml_file(config_path: Path) -> dict[str, object]:
    """Load an optional TOML file; a missing file is an empty table."""
    if not config_path.exists():
        return {}
    try:
        with config_path.open("rb") as handle:
            payload = tomllib.load(handle)
    except tomllib.TOMLDecodeError as error:
        raise ConfigError(f"{config_path.name} is not valid TOML.") from error
    except OSError as error:
        raise ConfigError(f"Couldn't read {config_path}") from error
    if not isinstance(payload, dict):
        raise ConfigError(f"{config_path.name} must contain a top-level table.")
    return payload


def load_config_file(work_tree: Path) -> dict[str, object]:
    """Load optional fsmonitor-hook.toml from the work-tree root."""
    payload = load_toml_file(work_tree / CONFIG_FILENAME)
    for section in USER_ONLY_SECTIONS:
        if section in payload:
            raise ConfigError(
                f"Config section '{section}' is not allowed in {CONFIG_FILENAME}; "
                "set it in the user config instead."
            )
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ConfigError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item:
            raise ConfigError(
                f"Config field '{section}.{field}' must contain only non-empty strings."
            )
        output.append(item)
    return tuple(output)


def _merge_file(base: HookConfig, payload: dict[str, object], relative_to: Path) -> HookConfig:
    watcher_payload = _get_table(payload, "watcher")
    query_payload = _get_table(payload, "query")
    audit_payload = _get_table(payload, "audit")

    command = base.watcher.command
    if "command" in watcher_payload:
        command = _tuple_of_strings(watcher_payload["command"], "watcher", "command")
        if not command:
            raise ConfigError("Config field 'watcher.command' must not be empty.")

    exclude_dirnames = base.watcher.exclude_dirnames
    if "exclude_dirnames" in query_payload:
        exclude_dirnames = _tuple_of_strings(
            query_payload["exclude_dirnames"], "query", "exclude_dirnames"
        )

    audit_path = base.audit.path
    if "path" in audit_payload:
        raw_path = audit_payload["path"]
        if not isinstance(raw_path, str) or not raw_path:
            raise ConfigError("Config field 'audit.path' must be a non-empty string.")
        audit_path = _resolve_under(relative_to, raw_path)

    return HookConfig(
        work_tree=base.work_tree,
        watcher=WatcherConfig(command=command, exclude_dirnames=exclude_dirnames),
        audit=AuditConfig(path=audit_path),
    )


def merge_config(
    base: HookConfig,
    user_payload: dict[str, object],
    user_dir: Path,
    repo_payload: dict[str, object],
    environ: Mapping[str, str],
    overrides: CliOverrides,
) -> HookConfig:
    """Merge defaults, user config, work-tree config, environment, then CLI overrides."""
    merged = _merge_file(base, user_payload, relative_to=user_dir)
    merged = _merge_file(merged, repo_payload, relative_to=base.work_tree)

    command = merged.watcher.command
    watchman = overrides.watchman or environ.get(WATCHMAN_ENV, "").strip() or None
    if watchman is not None:
        command = (watchman, *command[1:])

    audit_path = merged.audit.path
    env_audit_log = environ.get(AUDIT_LOG_ENV, "").strip()
    if env_audit_log:
        audit_path = _resolve_under(base.work_tree, env_audit_log)
    if overrides.audit_log is not None:
        audit_path = _resolve_under(base.work_tree, str(overrides.audit_log))

    return HookConfig(
        work_tree=base.work_tree,
        watcher=WatcherConfig(command=command, exclude_dirnames=merged.watcher.exclude_dirnames),
        audit=AuditConfig(path=audit_path),
    )


def load_effective_config(
    work_tree: Path,
    overrides: CliOverrides | None = None,
    environ: Mapping[str, str] | None = None,
) -> HookConfig:
    """Load effective config: defaults -> user file -> work-tree file -> env -> overrides."""
    env = os.environ if environ is None else environ
    user_path = user_config_path(env)
    return merge_config(
        default_config(work_tree),
        load_toml_file(user_path),
        user_path.parent,
        load_config_file(work_tree),
        env,
        overrides or CliOverrides(),
    )


def _resolve_under(directory: Path, raw_path: str) -> Path:
    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = directory / path
    return path
