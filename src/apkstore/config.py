"""
Store configuration.

Settings come from an optional JSON file, overridden by ``APKSTORE_*``
environment variables.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, Dict, Any, Mapping

from common.exceptions import ConfigError, InvalidConfigError
from common.logging_config import parse_level

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "apps"

ENV_VARS = {
    "project_id": "APKSTORE_PROJECT",
    "collection": "APKSTORE_COLLECTION",
    "emulator_host": "FIRESTORE_EMULATOR_HOST",
    "log_level": "APKSTORE_LOG_LEVEL",
    "log_file": "APKSTORE_LOG_FILE",
    "json_logs": "APKSTORE_JSON_LOGS",
    "grid_columns": "APKSTORE_GRID_COLUMNS",
    "image_timeout": "APKSTORE_IMAGE_TIMEOUT",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}
_NULLABLE = {"project_id", "emulator_host", "log_file"}


@dataclass(frozen=True)
class StoreConfig:
    """Runtime settings for the storefront."""
    project_id: Optional[str] = None
    collection: str = DEFAULT_COLLECTION
    emulator_host: Optional[str] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    json_logs: bool = False
    grid_columns: int = 4
    image_timeout: float = 10.0

    def __post_init__(self):
        if not isinstance(self.collection, str) or not self.collection or "/" in self.collection:
            raise InvalidConfigError("collection", self.collection, "must be a top-level collection name")
        if self.grid_columns < 1:
            raise InvalidConfigError("grid_columns", self.grid_columns, "must be at least 1")
        if not math.isfinite(self.image_timeout) or self.image_timeout <= 0:
            raise InvalidConfigError("image_timeout", self.image_timeout, "must be a positive number of seconds")
        try:
            parse_level(self.log_level)
        except ValueError as e:
            raise InvalidConfigError("log_level", self.log_level, str(e))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: Optional["StoreConfig"] = None) -> "StoreConfig":
        """Overlay ``data`` on ``base`` (or the defaults), coercing types."""
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            values[key] = _coerce(key, raw)
        return replace(base or cls(), **values)

    @classmethod
    def from_file(cls, path: Path, base: Optional["StoreConfig"] = None) -> "StoreConfig":
        """Load settings from a JSON object file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}", cause=e)

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        return cls.from_mapping(data, base)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 base: Optional["StoreConfig"] = None) -> "StoreConfig":
        """Read settings from environment variables."""
        environ = os.environ if environ is None else environ
        data = {
            key: environ[var]
            for key, var in ENV_VARS.items()
            if var in environ
        }
        return cls.from_mapping(data, base)

    @classmethod
    def load(cls, path: Optional[Path] = None,
             environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        """File settings (if any), then environment overrides."""
        config = cls.from_file(path) if path else cls()
        return cls.from_env(environ, base=config)

    def apply_emulator(self, environ: Optional[Dict[str, str]] = None):
        """Point the Firestore client at the emulator, if one is configured."""
        if self.emulator_host:
            environ = os.environ if environ is None else environ
            environ["FIRESTORE_EMULATOR_HOST"] = self.emulator_host
            logger.info(f"Using Firestore emulator at {self.emulator_host}")


def _coerce(key: str, raw: Any) -> Any:
    if raw is None and key not in _NULLABLE:
        raise InvalidConfigError(key, raw, "must not be null")

    if key == "json_logs":
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise InvalidConfigError(key, raw, "expected a boolean")

    if key == "grid_columns":
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise InvalidConfigError(key, raw, "expected an integer")

    if key == "image_timeout":
        try:
            return float(raw)
        except (TypeError, ValueError):
            raise InvalidConfigError(key, raw, "expected a number of seconds")

    if key == "log_file":
        return Path(raw) if raw else None

    if key in ("project_id", "emulator_host"):
        return str(raw) if raw else None

    return str(raw)
