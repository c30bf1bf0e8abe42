"""Bidirectional timesheet sync between the local store and Zebra.

Conflicts are resolved last-writer-wins on ``updated_at`` (seconds), local
winning ties. Remote-driven replacements always keep the local-only fields
``uuid``, ``frame_uuids`` and ``do_not_sync``.

Updates and deletes of pushed timesheets are never silent: they go through
a pending operation that the caller must confirm. A RemoteSyncError aborts
the running operation without retry; local writes made before the failure
stay in place.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional, Union

from ..domain.timesheet import Timesheet
from ..exceptions import RemoteSyncError, StateConflictError, ValidationError
from ..monitoring.metrics_exporter import MetricsExporter
from ..timesheets.gateway import ZebraTimesheetGateway
from ..timesheets.store import LocalTimesheetStore
from ..utils.logging import StructuredLogger
from ..utils.timezone import InstantLike, to_business_date, to_timestamp

logger = logging.getLogger(__name__)

DateLike = Union[date, InstantLike]
ConfirmCallback = Callable[[Timesheet], bool]


def _seconds(timesheet: Timesheet) -> int:
    return to_timestamp(timesheet.updated_at) if timesheet.updated_at else 0


@dataclass(frozen=True)
class PushResult:
    """Outcome of a batch push."""

    pushed: list[Timesheet] = field(default_factory=list)
    skipped: list[Timesheet] = field(default_factory=list)


class _PendingOperation:
    """A remote change waiting for the caller's decision."""

    def __init__(self, engine: "TimesheetSyncEngine", timesheet: Timesheet) -> None:
        self.engine = engine
        self.timesheet = timesheet
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    def _ensure_pending(self) -> None:
        if self._resolved:
            raise StateConflictError(
                f"Pending operation for timesheet {self.timesheet.uuid} was already resolved"
            )

    def cancel(self) -> None:
        """Drop the operation. Nothing is changed locally or remotely."""
        self._ensure_pending()
        self._resolved = True
        logger.info(f"Cancelled pending change of timesheet {self.timesheet.uuid}")


class PendingUpdate(_PendingOperation):
    """Update of a pushed timesheet, applied only on ``confirm()``.

    A failed confirmation leaves the update pending so the caller may retry.
    """

    def confirm(self) -> Timesheet:
        """Push the update and store the merged remote version locally.

        Raises:
            StateConflictError: If already confirmed or cancelled
            RemoteSyncError: If Zebra rejects the update
        """
        self._ensure_pending()
        result = self.engine._apply_update(self.timesheet)
        self._resolved = True
        return result


class PendingDelete(_PendingOperation):
    """Deletion of a timesheet, applied only on ``confirm()``."""

    def confirm(self) -> None:
        """Delete the timesheet in Zebra (if pushed) and locally.

        Raises:
            StateConflictError: If already confirmed or cancelled
            RemoteSyncError: If Zebra rejects the deletion
        """
        self._ensure_pending()
        self.engine._apply_delete(self.timesheet)
        self._resolved = True


class TimesheetSyncEngine:
    """Reconciles the local timesheet store with Zebra."""

    def __init__(
        self,
        local_store: LocalTimesheetStore,
        gateway: ZebraTimesheetGateway,
        structured_logger: Optional[StructuredLogger] = None,
        metrics_exporter: Optional[MetricsExporter] = None,
    ) -> None:
        """Initialize sync engine.

        Args:
            local_store: Local timesheet storage
            gateway: Remote timesheet gateway
            structured_logger: Optional JSON log of sync operations
            metrics_exporter: Optional Prometheus text-file exporter
        """
        self.local_store = local_store
        self.gateway = gateway
        self.structured_logger = structured_logger
        self.metrics_exporter = metrics_exporter

    def push_local_to_zebra(
        self, timesheet: Timesheet, confirm: Optional[ConfirmCallback] = None
    ) -> Optional[Timesheet]:
        """Push one timesheet to Zebra.

        Unpushed timesheets are created without confirmation. Pushed ones
        are updated only if ``confirm`` is given and returns True.

        Args:
            timesheet: Timesheet to push
            confirm: Called with the timesheet before an update

        Returns:
            The merged local timesheet, or None if the update was not confirmed
        """
        if timesheet.zebra_id is None:
            return self._create_remote(timesheet)

        if confirm is None:
            logger.info(f"Update of timesheet {timesheet.uuid} skipped: no confirmation")
            return None

        pending = self.request_update(timesheet)
        if not confirm(timesheet):
            pending.cancel()
            return None
        return pending.confirm()

    def request_update(self, timesheet: Timesheet) -> PendingUpdate:
        """Prepare the update of a pushed timesheet.

        Raises:
            ValidationError: If the timesheet has not been pushed yet
        """
        if timesheet.zebra_id is None:
            raise ValidationError(f"Timesheet {timesheet.uuid} has not been pushed to Zebra")
        return PendingUpdate(self, timesheet)

    def request_delete(self, timesheet: Timesheet) -> PendingDelete:
        """Prepare the deletion of a timesheet."""
        return PendingDelete(self, timesheet)

    def pull_from_zebra(
        self, from_date: DateLike, to_date: Optional[DateLike] = None
    ) -> list[Timesheet]:
        """Bring Zebra timesheets of a date range into the local store.

        Args:
            from_date: First business-zone day (inclusive)
            to_date: Last business-zone day (inclusive, default: from_date)

        Returns:
            Timesheets that were created or updated locally
        """
        start = to_business_date(from_date)
        end = to_business_date(to_date) if to_date is not None else start
        time_range = {"from": start.isoformat(), "to": end.isoformat()}
        started = time.monotonic()
        self._log_start("pull", time_range)

        created = 0
        changed: list[Timesheet] = []
        try:
            for remote in self.gateway.fetch_by_date_range(start, end):
                local = (
                    self.local_store.get_by_zebra_id(remote.zebra_id)
                    if remote.zebra_id is not None
                    else None
                )
                if local is None:
                    self.local_store.save(remote)
                    changed.append(remote)
                    created += 1
                    continue

                if _seconds(remote) > _seconds(local):
                    merged = local.merge_remote(remote)
                    self.local_store.update(merged)
                    changed.append(merged)
        except RemoteSyncError as e:
            self._log_complete("pull", started, {"changed": len(changed)}, time_range, e)
            raise

        results = {"created": created, "updated": len(changed) - created, "changed": len(changed)}
        self._log_complete("pull", started, results, time_range)
        logger.info(f"Pulled {len(changed)} changed timesheets for {start}..{end}")
        return changed

    def push_unsynced(self, day: Optional[DateLike] = None) -> PushResult:
        """Create every unpushed timesheet in Zebra.

        Timesheets flagged ``do_not_sync`` are skipped.

        Args:
            day: Only push timesheets of this business-zone day
        """
        candidates = self.local_store.get_unsynced()
        if day is not None:
            wanted = to_business_date(day)
            candidates = [timesheet for timesheet in candidates if timesheet.date == wanted]

        started = time.monotonic()
        self._log_start("push")
        pushed: list[Timesheet] = []
        skipped: list[Timesheet] = []
        try:
            for timesheet in candidates:
                if timesheet.do_not_sync:
                    logger.debug(f"Skipping timesheet {timesheet.uuid}: marked do-not-sync")
                    skipped.append(timesheet)
                    continue
                pushed.append(self._create_remote(timesheet))
        except RemoteSyncError as e:
            self._log_complete("push", started, {"pushed": len(pushed)}, None, e)
            raise

        self._log_complete("push", started, {"pushed": len(pushed), "skipped": len(skipped)})
        return PushResult(pushed=pushed, skipped=skipped)

    def _create_remote(self, timesheet: Timesheet) -> Timesheet:
        remote = self.gateway.create(timesheet)
        merged = timesheet.merge_remote(remote)
        self.local_store.save(merged)
        logger.info(f"Created timesheet {merged.uuid} in Zebra as {merged.zebra_id}")
        return merged

    def _apply_update(self, timesheet: Timesheet) -> Timesheet:
        remote = self.gateway.update(timesheet)
        merged = timesheet.merge_remote(remote)
        self.local_store.update(merged)
        logger.info(f"Updated timesheet {merged.uuid} in Zebra ({merged.zebra_id})")
        return merged

    def _apply_delete(self, timesheet: Timesheet) -> None:
        if timesheet.zebra_id is not None:
            self.gateway.delete(timesheet.zebra_id)
            logger.info(f"Deleted timesheet {timesheet.zebra_id} in Zebra")
        if self.local_store.get(timesheet.uuid) is not None:
            self.local_store.remove(timesheet.uuid)

    def _log_start(self, operation: str, time_range: Optional[dict[str, str]] = None) -> None:
        if self.structured_logger:
            self.structured_logger.log_sync_start(operation, time_range)

    def _log_complete(
        self,
        operation: str,
        started: float,
        results: dict[str, int],
        time_range: Optional[dict[str, str]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        duration_ms = int((time.monotonic() - started) * 1000)
        status = "failure" if error else "success"

        if self.structured_logger:
            self.structured_logger.log_sync_complete(
                operation,
                duration_ms,
                results,
                time_range=time_range,
                status=status,
                error=str(error) if error else None,
            )
        if self.metrics_exporter:
            self.metrics_exporter.export_sync_metrics(
                operation, results, duration_ms, status, str(error) if error else None
            )
