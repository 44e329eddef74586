"""
Run transcript handling.

Every real export or import run writes its transcript both to the terminal
and to a timestamped, append-only log file under the logs directory
(`export_log_20250101_120000.log`, `import_log_...`). Dry runs only echo to
the terminal and never create a file.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

LOG_SUFFIX = ".log"


class RunLog:
    def __init__(self, path: Optional[Path] = None, echo: bool = True) -> None:
        self.path = path
        self.echo = echo

    @classmethod
    def create(
        cls,
        logs_dir: str | Path,
        prefix: str,
        echo: bool = True,
        now: Optional[datetime] = None,
    ) -> "RunLog":
        """Creates the logs directory if needed and an empty log file inside it."""
        logs_dir = Path(logs_dir)
        os.makedirs(logs_dir, exist_ok=True)
        stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        path = logs_dir / f"{prefix}_log_{stamp}{LOG_SUFFIX}"
        path.touch()
        return cls(path, echo=echo)

    @classmethod
    def preview(cls, echo: bool = True) -> "RunLog":
        """A transcript that is never written to disk."""
        return cls(None, echo=echo)

    def message(self, text: str = "") -> None:
        if self.echo:
            print(text)
        self._append(text + "\n")

    def append_raw(self, text: str) -> None:
        """Writes captured tool output to the file only."""
        if not text:
            return
        if not text.endswith("\n"):
            text += "\n"
        self._append(text)

    def _append(self, text: str) -> None:
        if self.path is None:
            return
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(text)


def list_logs(logs_dir: str | Path) -> List[Path]:
    """Returns the log files in a logs directory, sorted by name."""
    logs_dir = Path(logs_dir)
    if not logs_dir.is_dir():
        return []
    return sorted(
        p for p in logs_dir.iterdir() if p.is_file() and p.suffix == LOG_SUFFIX
    )


def clean_logs(logs_dir: str | Path) -> List[str]:
    """Deletes every log file in the logs directory and returns their names."""
    removed: List[str] = []
    for path in list_logs(logs_dir):
        path.unlink()
        removed.append(path.name)
    return removed
