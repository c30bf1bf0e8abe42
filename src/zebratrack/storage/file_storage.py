"""JSON file storage shared by the frame and timesheet stores.

Every write replaces the whole file. Stores built on top of this do a
read-modify-write per operation without locking, so only a single writer
process may use a data directory at a time.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class LoadResult(Generic[T]):
    """Outcome of a lossy bulk read: readable records and how many were dropped."""

    records: list[T] = field(default_factory=list)
    skipped: int = 0


class JsonFileStorage:
    """A mapping of id to raw record, persisted as one JSON file."""

    def __init__(self, path: str | Path) -> None:
        """Initialize storage.

        Args:
            path: Path to the JSON file
        """
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> dict[str, Any]:
        """Load the stored mapping.

        Returns:
            Stored mapping, empty if the file is missing or unreadable
        """
        if not self.path.exists():
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read {self.path}: {e}, treating as empty")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Unexpected content in {self.path}, treating as empty")
            return {}
        return data

    def write(self, data: dict[str, Any]) -> None:
        """Replace the stored mapping."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.debug(f"Saved {len(data)} records to {self.path}")


class FileStorageFactory:
    """Hands out JSON storages inside one data directory."""

    FRAMES_FILE = "frames.json"
    CURRENT_FRAME_FILE = "current_frame.json"
    TIMESHEETS_FILE = "timesheets.json"

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir).expanduser()

    def create(self, filename: str) -> JsonFileStorage:
        return JsonFileStorage(self.data_dir / filename)
