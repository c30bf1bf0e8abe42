"""Logging setup: console logging and the structured sync run log.

Every pull or push is recorded as one JSON line in ``<log_dir>/sync.jsonl``.
Lines carry a short run id so the start and completion events of a run can be
matched in the structlog output.
"""

import json
import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import structlog

SYNC_LOG_FILE = "sync.jsonl"

_structlog_configured = False


def configure_structlog() -> None:
    """Route structlog events through stdlib logging as JSON, once per process."""
    global _structlog_configured
    if _structlog_configured:
        return

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _structlog_configured = True


class StructuredLogger:
    """Records pull and push runs as structured events and JSONL lines."""

    def __init__(self, log_dir: str):
        """Initialize the sync run log.

        Args:
            log_dir: Directory for sync.jsonl, created if missing
        """
        self.log_dir = Path(log_dir).expanduser()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / SYNC_LOG_FILE

        configure_structlog()
        self.logger = structlog.get_logger("zebratrack.sync")
        self._runs: dict[str, str] = {}

    def log_sync_start(self, operation: str, time_range: Optional[dict[str, str]] = None) -> None:
        run_id = secrets.token_hex(4)
        self._runs[operation] = run_id
        self.logger.info(
            f"{operation}_started",
            run_id=run_id,
            operation=operation,
            time_range=time_range or {},
        )

    def log_sync_complete(
        self,
        operation: str,
        duration_ms: int,
        results: dict[str, Any],
        time_range: Optional[dict[str, str]] = None,
        status: str = "success",
        error: Optional[str] = None,
    ) -> None:
        """Record the end of a pull or push.

        Args:
            operation: "pull" or "push"
            duration_ms: Run time in milliseconds
            results: Counters of the run, e.g. {"pushed": 3}
            time_range: Business days covered, if any
            status: "success" or "failure"
            error: Error message of a failed run
        """
        entry: dict[str, Any] = {
            "run_id": self._runs.pop(operation, None),
            "operation": operation,
            "status": status,
            "duration_ms": duration_ms,
            "time_range": time_range or {},
            "results": results,
            "finished_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }
        if error:
            entry["error"] = error
            self.logger.error("sync_failed", **entry)
        else:
            self.logger.info(f"{operation}_completed", **entry)

        self._append(entry)

    def recent_runs(self, limit: int = 10) -> list[dict[str, Any]]:
        """Most recent run records, newest last. Unreadable lines are skipped."""
        if not self.log_file.exists():
            return []

        runs: list[dict[str, Any]] = []
        with open(self.log_file, encoding="utf-8") as f:
            for line in f:
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(record, dict):
                    runs.append(record)
        return runs[-limit:] if limit > 0 else runs

    def last_successful_run(self, operation: str) -> Optional[dict[str, Any]]:
        for record in reversed(self.recent_runs(limit=0)):
            if record.get("operation") == operation and record.get("status") == "success":
                return record
        return None

    def _append(self, entry: dict[str, Any]) -> None:
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logging.getLogger(__name__).warning(f"Failed to write to sync log {self.log_file}: {e}")


def setup_console_logging(level: str, log_file: Optional[str] = None) -> None:
    """Configure root logging to the console and, optionally, a file.

    Args:
        level: Console level name, e.g. "INFO"
        log_file: Path of a file receiving all records at DEBUG level
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    console_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.DEBUG)
    else:
        root_logger.setLevel(console_level)
