"""Tests for structured sync logs, metrics export and service wiring."""

import json
from unittest.mock import Mock, patch

import pytest
from rich.console import Console

from zebratrack.cli.progress import SyncConsole
from zebratrack.config import AppConfig, StorageConfig, SyncConfig, UserConfig, ZebraConfig
from zebratrack.exceptions import ConfigurationError
from zebratrack.factories.service_factory import ServiceFactory
from zebratrack.monitoring.metrics_exporter import MetricsExporter
from zebratrack.sync.engine import PushResult, TimesheetSyncEngine
from zebratrack.track.tracker import Track
from zebratrack.utils.logging import StructuredLogger


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        zebra=ZebraConfig(base_uri="https://zebra.example.com", token="token"),
        storage=StorageConfig(data_dir=str(tmp_path / "data"), log_dir=str(tmp_path / "logs")),
        user=UserConfig(default_role_id=7, roles=[{"id": 7, "name": "Developer"}]),
        sync=SyncConfig(metrics_dir=str(tmp_path / "metrics")),
    )


class TestStructuredLogger:
    """Test the JSONL sync log."""

    def test_writes_completed_operation(self, tmp_path):
        """Completed operations are appended to sync.jsonl."""
        structured_logger = StructuredLogger(str(tmp_path / "logs"))
        structured_logger.log_sync_complete(
            "pull", 120, {"changed": 2}, time_range={"from": "2024-03-01", "to": "2024-03-02"}
        )
        structured_logger.log_sync_complete("push", 50, {"pushed": 0}, status="failure", error="down")

        lines = (tmp_path / "logs" / "sync.jsonl").read_text(encoding="utf-8").splitlines()
        first, second = (json.loads(line) for line in lines)
        assert first["operation"] == "pull"
        assert first["results"] == {"changed": 2}
        assert "error" not in first
        assert second["status"] == "failure"
        assert second["error"] == "down"

    def test_recent_runs(self, tmp_path):
        """Run records are read back, skipping unreadable lines."""
        structured_logger = StructuredLogger(str(tmp_path))
        structured_logger.log_sync_start("pull")
        structured_logger.log_sync_complete("pull", 10, {"changed": 1})
        with open(structured_logger.log_file, "a", encoding="utf-8") as f:
            f.write("not json\n")
        structured_logger.log_sync_complete("pull", 10, {}, status="failure", error="down")

        runs = structured_logger.recent_runs()
        assert [run["status"] for run in runs] == ["success", "failure"]
        assert runs[0]["run_id"] is not None
        assert runs[1]["run_id"] is None
        assert structured_logger.last_successful_run("pull") == runs[0]
        assert structured_logger.last_successful_run("push") is None


class TestMetricsExporter:
    """Test Prometheus text file export."""

    def test_export_writes_prom_file(self, tmp_path):
        """Metrics are written per operation."""
        exporter = MetricsExporter(str(tmp_path))
        exporter.export_sync_metrics("push", {"pushed": 3, "skipped": 1}, 1500)

        content = exporter.metrics_file("push").read_text(encoding="utf-8")
        assert 'zebratrack_sync_timesheets{operation="push",result="pushed"} 3.0' in content
        assert 'zebratrack_sync_success{operation="push"} 1.0' in content
        assert 'zebratrack_sync_duration_seconds{operation="push"} 1.5' in content


class TestServiceFactory:
    """Test service creation from configuration."""

    def test_missing_token(self, app_config):
        """A Zebra client needs URI and token."""
        app_config.zebra.token = ""
        with pytest.raises(ConfigurationError):
            ServiceFactory.create_zebra_client(app_config)

    def test_create_track(self, app_config):
        """The tracker uses the configured default role."""
        track = ServiceFactory.create_track(app_config)
        assert isinstance(track, Track)
        assert track.role_provider.get_current_user_default_role().name == "Developer"

    def test_create_timesheet_aggregator(self, app_config):
        """The aggregator shares the data directory with the tracker."""
        aggregator = ServiceFactory.create_timesheet_aggregator(app_config)
        track = ServiceFactory.create_track(app_config)
        assert aggregator.frame_store.storage.path == track.frame_store.storage.path

    def test_create_sync_engine(self, app_config):
        """The sync engine gets a catalog, a structured logger and metrics."""
        client = Mock()
        client.get_projects.return_value = []

        engine = ServiceFactory.create_sync_engine(app_config, client)

        assert isinstance(engine, TimesheetSyncEngine)
        assert engine.structured_logger is not None
        assert engine.metrics_exporter is not None
        client.get_projects.assert_called_once()


class TestSyncConsole:
    """Test console helpers."""

    def test_format_hours(self):
        """Decimal hours are shown as hours and minutes."""
        assert SyncConsole.format_hours(0) == "0m"
        assert SyncConsole.format_hours(0.25) == "15m"
        assert SyncConsole.format_hours(2) == "2h"
        assert SyncConsole.format_hours(1.5) == "1h 30m"

    def test_resolve_update(self):
        """Confirmed updates are applied, declined ones cancelled."""
        cli = SyncConsole(Console(record=True))
        pending = Mock()
        pending.timesheet.zebra_id = 5
        pending.timesheet.time = 1.0

        with patch.object(cli, "ask_confirmation", return_value=True):
            assert cli.resolve_update(pending) is pending.confirm.return_value
        with patch.object(cli, "ask_confirmation", return_value=False):
            assert cli.resolve_update(pending) is None
        pending.cancel.assert_called_once()

    def test_complete_sync_summary(self):
        """The summary counts pulled and pushed timesheets."""
        console = Console(record=True, width=140)
        cli = SyncConsole(console)
        cli.start_sync("2024-03-01 to 2024-03-08")
        cli.complete_sync("2024-03-01 to 2024-03-08", [], PushResult())
        assert "up-to-date" in console.export_text()
