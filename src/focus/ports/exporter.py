"""Export destination interface."""

from datetime import datetime
from pathlib import Path
from typing import Protocol


class Exporter(Protocol):
    """Interface for writing exports and database backups."""

    def export(self, filename: str, content: str) -> Path:
        """Write export content and return the path written."""
        ...

    def backup(self, db_path: Path, now: datetime) -> Path:
        """Copy the database to a timestamped backup and return its path."""
        ...
