from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .dialect import DialectError, HostDialect, resolve_dialect


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class CompilerConfig:
    dialect: HostDialect
    warn_unbound: bool = True
    warnings_as_errors: bool = False
    cache: bool = True
    path: Path | None = None


def config_from_dict(raw: dict[str, Any], path: Path | None = None, base_dir: Path | None = None) -> CompilerConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"CONFIG_NOT_OBJECT: {path}")
    dialect_ref = raw.get("dialect", "rust")
    if not isinstance(dialect_ref, str):
        raise ConfigError(f"CONFIG_FIELD_INVALID: {path}: dialect must be a string")
    if dialect_ref.endswith(".json") and base_dir is not None and not Path(dialect_ref).is_absolute():
        dialect_ref = str(base_dir / dialect_ref)
    try:
        dialect = resolve_dialect(dialect_ref)
    except DialectError as exc:
        raise ConfigError(f"CONFIG_DIALECT_INVALID: {path}: {exc}") from exc

    flags: dict[str, bool] = {}
    for key, default in (("warn_unbound", True), ("warnings_as_errors", False), ("cache", True)):
        value = raw.get(key, default)
        if not isinstance(value, bool):
            raise ConfigError(f"CONFIG_FIELD_INVALID: {path}: {key} must be a boolean")
        flags[key] = value

    return CompilerConfig(dialect=dialect, path=path, **flags)


def load_config(path: Path) -> CompilerConfig:
    if not path.exists():
        raise ConfigError(f"CONFIG_NOT_FOUND: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"CONFIG_INVALID_JSON: {path}: {exc}") from exc
    return config_from_dict(raw, path=path, base_dir=path.parent)


def default_config(dialect: str | HostDialect = "rust") -> CompilerConfig:
    return CompilerConfig(dialect=resolve_dialect(dialect))
