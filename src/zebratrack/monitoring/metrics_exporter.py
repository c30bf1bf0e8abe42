"""Prometheus metrics exporter for sync runs."""

import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from prometheus_client import CollectorRegistry, Gauge, Info, write_to_textfile

from .. import __version__


class MetricsExporter:
    """Export sync metrics to Prometheus text files, one file per operation."""

    def __init__(self, metrics_dir: str = "/metrics"):
        self.metrics_dir = Path(metrics_dir).expanduser()
        self.metrics_dir.mkdir(parents=True, exist_ok=True)

    def metrics_file(self, operation: str) -> Path:
        return self.metrics_dir / f"zebratrack_{operation}.prom"

    def export_sync_metrics(
        self,
        operation: str,
        results: dict[str, int],
        duration_ms: int,
        status: str = "success",
        error: Optional[str] = None,
    ) -> None:
        """Export the result of one pull or push."""
        registry = CollectorRegistry()

        Gauge(
            "zebratrack_sync_duration_seconds",
            "Duration of sync operation in seconds",
            ["operation"],
            registry=registry,
        ).labels(operation=operation).set(duration_ms / 1000.0)

        timesheets = Gauge(
            "zebratrack_sync_timesheets",
            "Timesheets handled by the last sync operation",
            ["operation", "result"],
            registry=registry,
        )
        for result, count in results.items():
            timesheets.labels(operation=operation, result=result).set(count)

        Gauge(
            "zebratrack_last_sync_timestamp",
            "Timestamp of last sync operation",
            ["operation"],
            registry=registry,
        ).labels(operation=operation).set(datetime.now().timestamp())

        Gauge(
            "zebratrack_sync_success",
            "Whether last sync was successful (1=success, 0=failure)",
            ["operation"],
            registry=registry,
        ).labels(operation=operation).set(1 if status == "success" else 0)

        Info("zebratrack_build", "Build information", registry=registry).info(
            {
                "version": os.getenv("APP_VERSION", __version__),
                "status": status,
                "error": error or "",
            }
        )

        write_to_textfile(str(self.metrics_file(operation)), registry)
