"""
aip-reviewer — settings loader.

File: src/aip_reviewer/config/loader.py
Purpose: Load effective reviewer settings from defaults, TOML, env vars and overrides.

Precedence is fixed: overrides > env (``AIP_REVIEWER_``) > file > defaults.
The file is ``aip-reviewer.toml`` in the working directory unless a path is
given; only its ``[reviewer]`` table is read. Unknown keys and values of the
wrong type raise ``ConfigLoadError`` naming the offending source.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Final, Literal

from aip_reviewer.domain.models import RuleCategory
from aip_reviewer.errors import ConfigLoadError

DEFAULT_CONFIG_FILE: Final[str] = "aip-reviewer.toml"
CONFIG_TABLE: Final[str] = "reviewer"
ENV_PREFIX: Final[str] = "AIP_REVIEWER_"

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})

_Kind = Literal["pool_size", "bool", "categories", "str_list", "level", "seconds", "bytes"]


@dataclass(frozen=True, slots=True)
class ReviewerSettings:
    """Effective settings; ``pool_size=None`` means one less than the available CPUs."""

    pool_size: int | None = None
    strict: bool = False
    categories: tuple[RuleCategory, ...] = ()
    skip_rules: tuple[str, ...] = ()
    log_level: str = "INFO"
    log_json: bool = True
    storage_ttl_seconds: float = 3600.0
    fetch_timeout_seconds: float = 30.0
    max_document_bytes: int = 10 * 1024 * 1024

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["categories"] = [category.value for category in self.categories]
        payload["skip_rules"] = list(self.skip_rules)
        return payload


_FIELD_KINDS: Final[dict[str, _Kind]] = {
    "pool_size": "pool_size",
    "strict": "bool",
    "categories": "categories",
    "skip_rules": "str_list",
    "log_level": "level",
    "log_json": "bool",
    "storage_ttl_seconds": "seconds",
    "fetch_timeout_seconds": "seconds",
    "max_document_bytes": "bytes",
}


def load_settings(
    config_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, object] | None = None,
) -> ReviewerSettings:
    """Load settings with deterministic precedence: overrides > env > file > defaults."""

    resolved_path = _resolve_config_path(config_path)
    env_map = os.environ if environ is None else environ

    values: dict[str, Any] = {}
    file_table = _load_table(resolved_path, required=config_path is not None)
    for key, raw in file_table.items():
        values[key] = _coerce(key, raw, source=f"{resolved_path.name}[{CONFIG_TABLE}]")

    for key in _FIELD_KINDS:
        env_name = ENV_PREFIX + key.upper()
        raw_env = env_map.get(env_name)
        if raw_env is None:
            continue
        values[key] = _coerce(key, _parse_env(raw_env, _FIELD_KINDS[key], env_name), source=env_name)

    for key, raw in (overrides or {}).items():
        if raw is None:
            continue
        values[key] = _coerce(key, raw, source="overrides")

    return ReviewerSettings(**values)


def _resolve_config_path(config_path: str | Path | None) -> Path:
    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def _load_table(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            parsed = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    table = parsed.get(CONFIG_TABLE, {})
    if not isinstance(table, dict):
        raise ConfigLoadError(f"[{CONFIG_TABLE}] must be a table in {path}")
    return table


def _parse_env(raw: str, kind: _Kind, env_name: str) -> object:
    value = raw.strip()
    if kind == "bool":
        lowered = value.lower()
        if lowered in _BOOLEAN_TRUE:
            return True
        if lowered in _BOOLEAN_FALSE:
            return False
        raise ConfigLoadError(f"{env_name} must be a boolean (true/false/1/0/yes/no/on/off)")
    if kind in {"categories", "str_list"}:
        return [item.strip() for item in value.split(",") if item.strip()]
    if kind == "pool_size":
        if value.lower() in {"", "auto"}:
            return "auto"
        return _parse_number(value, int, env_name)
    if kind == "bytes":
        return _parse_number(value, int, env_name)
    if kind == "seconds":
        return _parse_number(value, float, env_name)
    return value


def _parse_number(value: str, kind: type[int] | type[float], env_name: str) -> int | float:
    try:
        return kind(value)
    except ValueError as exc:
        raise ConfigLoadError(f"{env_name} must be a number, got {value!r}") from exc


def _coerce(key: str, value: object, *, source: str) -> object:
    kind = _FIELD_KINDS.get(key)
    if kind is None:
        raise ConfigLoadError(f"{source}: unknown setting {key!r}")
    where = f"{source}: {key}"

    if kind == "bool":
        if not isinstance(value, bool):
            raise ConfigLoadError(f"{where} must be a boolean")
        return value

    if kind == "pool_size":
        if value is None or value == "auto":
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigLoadError(f"{where} must be a positive integer or 'auto'")
        return value

    if kind == "bytes":
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigLoadError(f"{where} must be a positive integer")
        return value

    if kind == "seconds":
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigLoadError(f"{where} must be a positive number")
        return float(value)

    if kind == "level":
        if not isinstance(value, str) or not isinstance(logging.getLevelName(value.strip().upper()), int):
            raise ConfigLoadError(f"{where} must be a logging level name")
        return value.strip().upper()

    items = _as_string_list(value, where)
    if kind == "categories":
        try:
            return tuple(RuleCategory(item) for item in items)
        except ValueError as exc:
            allowed = ", ".join(category.value for category in RuleCategory)
            raise ConfigLoadError(f"{where} must only name known categories ({allowed})") from exc
    return tuple(items)


def _as_string_list(value: object, where: str) -> list[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ConfigLoadError(f"{where} must be a list of strings")
    return [item.strip() for item in value if item.strip()]


__all__ = [
    "CONFIG_TABLE",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ReviewerSettings",
    "load_settings",
]
