"""Factory for creating clients, stores and services from configuration."""

from ..api.zebra_client import ZebraClient
from ..catalog import ProjectCatalog
from ..config import AppConfig
from ..exceptions import ConfigurationError
from ..frames.store import FrameStore
from ..monitoring.metrics_exporter import MetricsExporter
from ..report.aggregator import ReportAggregator
from ..storage.file_storage import FileStorageFactory
from ..sync.engine import TimesheetSyncEngine
from ..timesheets.aggregation import TimesheetAggregator
from ..timesheets.gateway import ZebraTimesheetGateway
from ..timesheets.store import LocalTimesheetStore
from ..track.tracker import Track
from ..user.roles import ConfiguredRoleProvider
from ..utils.logging import StructuredLogger


class ServiceFactory:
    """Factory for creating services with configuration."""

    @staticmethod
    def create_zebra_client(config: AppConfig) -> ZebraClient:
        """Create Zebra API client."""
        if not config.zebra.base_uri:
            raise ConfigurationError("ZEBRA_BASE_URI is required")
        if not config.zebra.token:
            raise ConfigurationError("ZEBRA_TOKEN is required")
        return ZebraClient(config.zebra.base_uri, config.zebra.token, config.zebra.timeout)

    @staticmethod
    def create_storage_factory(config: AppConfig) -> FileStorageFactory:
        if not config.storage.data_dir:
            raise ConfigurationError("storage.data_dir is required")
        return FileStorageFactory(config.storage.data_dir)

    @staticmethod
    def create_track(config: AppConfig) -> Track:
        """Create frame tracker on the configured data directory."""
        storage_factory = ServiceFactory.create_storage_factory(config)
        return Track(
            FrameStore.from_factory(storage_factory),
            ConfiguredRoleProvider(config.user),
        )

    @staticmethod
    def create_timesheet_aggregator(config: AppConfig) -> TimesheetAggregator:
        storage_factory = ServiceFactory.create_storage_factory(config)
        return TimesheetAggregator(
            FrameStore.from_factory(storage_factory),
            LocalTimesheetStore.from_factory(storage_factory),
            ReportAggregator(),
        )

    @staticmethod
    def create_sync_engine(config: AppConfig, client: ZebraClient) -> TimesheetSyncEngine:
        """Create sync engine with project catalog loaded from Zebra."""
        storage_factory = ServiceFactory.create_storage_factory(config)
        gateway = ZebraTimesheetGateway(
            client,
            ProjectCatalog.from_client(client),
            ConfiguredRoleProvider(config.user),
        )
        metrics_exporter = (
            MetricsExporter(config.sync.metrics_dir) if config.sync.metrics_dir else None
        )
        return TimesheetSyncEngine(
            LocalTimesheetStore.from_factory(storage_factory),
            gateway,
            structured_logger=StructuredLogger(config.storage.log_dir),
            metrics_exporter=metrics_exporter,
        )
