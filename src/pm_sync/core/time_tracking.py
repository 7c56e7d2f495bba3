"""Time log controller and summary aggregation."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from pm_sync.api.resources import BackendAPI
from pm_sync.core.state import OperationResult, StateController
from pm_sync.exceptions import PMSyncError
from pm_sync.models import RecordId, TimeLog, parse_record, parse_records
from pm_sync.utils.logging import get_logger
from pm_sync.utils.validation import validate_time_log

logger = get_logger(__name__)

FETCH_CHANNEL = "time_logs"


@dataclass
class TimeSummary:
    total_hours: float = 0.0
    billable_hours: float = 0.0
    by_project: dict[str, float] = field(default_factory=dict)
    by_day: dict[str, float] = field(default_factory=dict)

    @property
    def average_per_day(self) -> float:
        return self.total_hours / len(self.by_day) if self.by_day else 0.0


def summarize(logs: list[TimeLog]) -> TimeSummary:
    """Aggregate hours overall, billable, per project and per day.

    Keys of ``by_project`` are stringified project ids (``"unassigned"`` when
    missing); keys of ``by_day`` are ISO dates.
    """
    by_project: dict[str, float] = defaultdict(float)
    by_day: dict[str, float] = defaultdict(float)
    total = 0.0
    billable = 0.0

    for log in logs:
        hours = log.hours_spent or 0.0
        total += hours
        if log.billable:
            billable += hours
        project_key = str(log.project_id) if log.project_id is not None else "unassigned"
        by_project[project_key] += hours
        if log.date is not None:
            by_day[log.date.isoformat()] += hours

    return TimeSummary(
        total_hours=round(total, 2),
        billable_hours=round(billable, 2),
        by_project={k: round(v, 2) for k, v in by_project.items()},
        by_day={k: round(v, 2) for k, v in sorted(by_day.items())},
    )


class TimeTrackingController(StateController):
    name = "time_tracking"

    def __init__(self, api: BackendAPI) -> None:
        super().__init__()
        self.api = api
        self.time_logs: list[TimeLog] = []

    async def fetch_time_logs(self, **params: Any) -> None:
        ticket = self._sequencer.next(FETCH_CHANNEL)
        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.time_logs.get_all(params or None)
        except PMSyncError as e:
            if self._is_stale(FETCH_CHANNEL, ticket):
                return
            self._fail("fetch_time_logs", e, "Failed to load time logs")
            self.time_logs = []
            self._set_loading(False)
            return

        if self._is_stale(FETCH_CHANNEL, ticket):
            return

        self.time_logs = parse_records(TimeLog, response.items("timeLogs", "time_logs"))
        self._set_loading(False)

    async def log_time(self, data: dict[str, Any]) -> OperationResult[TimeLog]:
        """Record time against a task after validating the entry locally."""
        field_errors = validate_time_log(data)
        if field_errors:
            return OperationResult.invalid(field_errors)

        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.time_logs.create(data)
        except PMSyncError as e:
            message = self._fail("log_time", e, "Failed to log time")
            self._set_loading(False)
            return OperationResult.fail(message)

        entry = parse_record(TimeLog, response.data)
        if entry is not None:
            self.time_logs = [entry, *self.time_logs]
        self._set_loading(False)
        return OperationResult.ok(entry)

    async def update_time_log(self, log_id: RecordId, data: dict[str, Any]) -> OperationResult[TimeLog]:
        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.time_logs.update(log_id, data)
        except PMSyncError as e:
            message = self._fail("update_time_log", e, "Failed to update time log")
            self._set_loading(False)
            return OperationResult.fail(message)

        entry = parse_record(TimeLog, response.data)
        if entry is not None:
            self.time_logs = [entry if log.id == log_id else log for log in self.time_logs]
        self._set_loading(False)
        return OperationResult.ok(entry)

    async def delete_time_log(self, log_id: RecordId) -> OperationResult[None]:
        self.error = None
        self._set_loading(True)
        try:
            await self.api.time_logs.delete(log_id)
        except PMSyncError as e:
            message = self._fail("delete_time_log", e, "Failed to delete time log")
            self._set_loading(False)
            return OperationResult.fail(message)

        self.time_logs = [log for log in self.time_logs if log.id != log_id]
        self._set_loading(False)
        return OperationResult.ok()

    async def get_task_time_logs(self, task_id: RecordId) -> list[TimeLog]:
        try:
            response = await self.api.time_logs.get_by_task(task_id)
        except PMSyncError as e:
            logger.warning("task_time_logs_fetch_failed", task_id=task_id, error=str(e))
            return []
        return parse_records(TimeLog, response.items("timeLogs", "time_logs"))

    def summary(self) -> TimeSummary:
        return summarize(self.time_logs)
