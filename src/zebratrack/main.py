#!/usr/bin/env python3
"""Entry point for syncing local timesheets with Zebra."""

import logging
import sys
from datetime import timedelta
from pathlib import Path

from .cli.progress import SyncConsole
from .config import load_config
from .exceptions import ConfigurationError, RemoteSyncError
from .factories.service_factory import ServiceFactory
from .utils.logging import setup_console_logging
from .utils.timezone import to_business_date, utcnow

logger = logging.getLogger(__name__)

LOG_FILE = "zebratrack.log"


def main() -> None:
    """Pull the recent days from Zebra, then push every unsynced timesheet."""
    cli = SyncConsole()

    try:
        config = load_config()
    except ConfigurationError as e:
        cli.show_error(str(e))
        sys.exit(1)

    setup_console_logging(
        config.sync.log_level, log_file=str(Path(config.storage.log_dir).expanduser() / LOG_FILE)
    )
    cli.show_banner()

    is_valid, errors = config.validate()
    if not cli.validate_config(errors) or not is_valid:
        sys.exit(1)

    today = to_business_date(utcnow())
    from_date = today - timedelta(days=config.sync.days_back)
    time_range = f"{from_date.isoformat()} to {today.isoformat()}"

    try:
        client = ServiceFactory.create_zebra_client(config)
        with cli.progress_spinner("Loading Zebra projects..."):
            engine = ServiceFactory.create_sync_engine(config, client)
        if engine.structured_logger is not None:
            cli.show_last_run(engine.structured_logger.last_successful_run("pull"))

        cli.start_sync(time_range)
        with cli.progress_spinner("Pulling timesheets..."):
            pulled = engine.pull_from_zebra(from_date, today)
        with cli.progress_spinner("Pushing timesheets..."):
            push_result = engine.push_unsynced()
    except ConfigurationError as e:
        cli.show_error(str(e))
        sys.exit(1)
    except RemoteSyncError as e:
        logger.error(f"Sync failed: {e}")
        cli.show_error(str(e))
        sys.exit(1)

    cli.complete_sync(time_range, pulled, push_result)


if __name__ == "__main__":
    main()
