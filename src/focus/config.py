"""Configuration management for Focus."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .core.recurrence import RecurrencePolicy

logger = logging.getLogger(__name__)

FOCUS_HOME = Path(os.environ.get("FOCUS_HOME", Path.home() / "focus"))
CONFIG_FILE = FOCUS_HOME / "config" / "focus.conf"
DATA_DIR = FOCUS_HOME / "data"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class Config:
    """Focus configuration."""

    database_path: str = ""
    export_dir: str = ""
    default_context_color: str = "#808080"
    recurrence_policy: RecurrencePolicy = RecurrencePolicy.KEEP
    reject_dependency_cycles: bool = True

    @property
    def db_path(self) -> Path:
        if self.database_path:
            return Path(self.database_path).expanduser()
        return DATA_DIR / "tasks.db"

    @property
    def undo_path(self) -> Path:
        """Undo history lives beside the database it belongs to."""
        db = self.db_path
        return db.with_name(f"{db.stem}-undo.json")

    @property
    def exports_path(self) -> Path:
        if self.export_dir:
            return Path(self.export_dir).expanduser()
        return FOCUS_HOME / "exports"


def _unquote(value: str) -> str:
    """Strip quotes, or an inline " #" comment on unquoted values."""
    for quote in ('"', "'"):
        if value.startswith(quote):
            end_quote = value.find(quote, 1)
            return value[1:end_quote] if end_quote != -1 else value[1:]
    # A bare "#" is kept so hex colors like #ff0000 survive.
    if " #" in value:
        value = value.split(" #")[0].strip()
    return value


def _parse_bool(key: str, value: str, default: bool) -> bool:
    lowered = value.lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    logger.warning(f"Ignoring invalid boolean for {key.upper()}: {value!r}")
    return default


def load_config(path: Path | None = None) -> Config:
    """Load configuration from focus.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        match key:
            case "database_path":
                config.database_path = value
            case "export_dir":
                config.export_dir = value
            case "default_context_color":
                config.default_context_color = value
            case "recurrence_policy":
                try:
                    config.recurrence_policy = RecurrencePolicy(value.lower())
                except ValueError:
                    logger.warning(f"Ignoring unknown RECURRENCE_POLICY: {value!r}")
            case "reject_dependency_cycles":
                config.reject_dependency_cycles = _parse_bool(
                    key, value, config.reject_dependency_cycles
                )
            case _:
                logger.debug(f"Ignoring unknown config key: {key}")

    return config
