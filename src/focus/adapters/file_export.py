"""File-based export adapter."""

import shutil
from datetime import datetime
from pathlib import Path


class FileExporter:
    """
    Writes exports and database backups into a directory.

    Implements Exporter protocol.
    """

    def __init__(self, export_dir: Path | str):
        self.export_dir = Path(export_dir).expanduser()
        self.export_dir.mkdir(parents=True, exist_ok=True)

    def export(self, filename: str, content: str) -> Path:
        """Write export content and return the path written."""
        path = self.export_dir / filename
        path.write_text(content, encoding="utf-8")
        return path

    def backup(self, db_path: Path, now: datetime) -> Path:
        """Copy the database to <name>-YYYYmmdd-HHMMSS.db.bak."""
        db_path = Path(db_path)
        if not db_path.exists():
            raise FileNotFoundError(f"Database not found: {db_path}")
        target = self.export_dir / f"{db_path.stem}-{now.strftime('%Y%m%d-%H%M%S')}.db.bak"
        shutil.copy2(db_path, target)
        return target
