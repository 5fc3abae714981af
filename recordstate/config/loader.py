from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import load_dotenv
from jsonschema.exceptions import ValidationError

"""Engine configuration loader.

Responsibilities:
- Load a YAML config file (all keys optional)
- Validate it against the bundled JSON schema (engine_schema.json)
- Apply defaults
- Apply RECORDSTATE_* environment overrides, after loading an optional
  .env file through python-dotenv

Override precedence: environment > YAML file > defaults.
"""

__all__ = [
    "ConfigError",
    "EngineConfig",
    "SCHEMA_PATH",
    "ENV_PREFIX",
    "load_config",
    "apply_env_overrides",
]

SCHEMA_PATH = Path(__file__).parent / "engine_schema.json"
ENV_PREFIX = "RECORDSTATE_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class EngineConfig:
    identity_field: str = "id"  # natural key field used when no identify() is supplied
    placeholder_prefix: str = "new-"  # prefix of keys issued to unsaved rows
    lock_saving_rows: bool = True  # reject edits on rows in the saving state
    persist_delete_errors: bool = True  # store row_error when delete / soft remove fails
    log_level: str = "INFO"
    error_log_dir: str | None = None  # None: errors are logged but not written as JSON Lines


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the data
            fails validation (unknown keys, wrong types, bad log level).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"invalid boolean for {name}: {raw!r}")


def apply_env_overrides(config: EngineConfig, environ: Mapping[str, str] | None = None) -> EngineConfig:
    """Return ``config`` with RECORDSTATE_* environment variables applied."""
    env = os.environ if environ is None else environ
    changes: dict[str, Any] = {}
    for name in ("identity_field", "placeholder_prefix", "log_level", "error_log_dir"):
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            changes[name] = raw.upper() if name == "log_level" else raw
    for name in ("lock_saving_rows", "persist_delete_errors"):
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw != "":
            changes[name] = _parse_bool(ENV_PREFIX + name.upper(), raw)
    if not changes:
        return config
    # 環境変数の値もスキーマで検証する
    merged = {**asdict(config), **changes}
    _validate_config_schema(merged)
    return replace(config, **changes)


def load_config(
    path: Path | None = None,
    env_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Load engine configuration.

    Args:
        path: YAML config file; None means defaults only
        env_file: Optional .env file loaded (without override) before the
            environment is read
        environ: Environment mapping, defaults to os.environ

    Raises:
        ConfigError: Missing file, invalid YAML or schema violation
    """
    data: dict[str, Any] = {}
    if path is not None:
        if not path.exists():
            raise ConfigError(f"config file not found: {path}")
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid yaml: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"config root must be a mapping, got {type(loaded).__name__}")
        data = loaded

    _validate_config_schema(data)

    if env_file is not None and env_file.exists():
        load_dotenv(dotenv_path=env_file, override=False)

    config = EngineConfig(**data)
    return apply_env_overrides(config, environ)
