"""Calendar event controller with a local cache and degraded fallback."""

from datetime import datetime, time, timedelta, timezone
from enum import Enum
from typing import Any

import aiosqlite

from pm_sync.api.client import unwrap_list
from pm_sync.api.resources import BackendAPI
from pm_sync.core.state import OperationResult, StateController
from pm_sync.exceptions import EnvelopeError, PMSyncError
from pm_sync.models import CalendarEvent, RecordId, parse_record, parse_records
from pm_sync.storage.local_store import CALENDAR_EVENTS_KEY, KeyValueStore
from pm_sync.utils.logging import get_logger
from pm_sync.utils.metrics import get_metrics
from pm_sync.utils.validation import parse_date, validate_event_form

logger = get_logger(__name__)
metrics = get_metrics()

FETCH_CHANNEL = "events"

TIME_FORMATS = ("%H:%M", "%I:%M %p", "%I:%M%p")


class CalendarMode(str, Enum):
    """Where the current event list came from."""

    ONLINE = "online"
    CACHED = "cached"
    DEGRADED = "degraded"


def mock_events(now: datetime | None = None) -> list[CalendarEvent]:
    """Fixed placeholder events shown when the backend is unreachable."""
    now = now or datetime.now(timezone.utc)
    return [
        CalendarEvent(
            id=1,
            title="Project Review Meeting",
            type="meeting",
            date=now + timedelta(days=2),
            time="10:00 AM",
            duration=60,
            attendees=["John Doe", "Jane Smith"],
            project="Website Redesign",
        ),
        CalendarEvent(
            id=2,
            title="Milestone Deadline",
            type="deadline",
            date=now + timedelta(days=5),
            time="5:00 PM",
            project="Mobile App Development",
        ),
        CalendarEvent(
            id=3,
            title="Client Presentation",
            type="presentation",
            date=now + timedelta(days=1),
            time="2:00 PM",
            duration=90,
            attendees=["Client Team", "Development Team"],
            project="E-commerce Platform",
        ),
    ]


def parse_time(value: Any) -> time | None:
    """Parse "14:00" or "2:00 PM" style times."""
    if not isinstance(value, str):
        return None
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(value.strip().upper(), fmt).time()
        except ValueError:
            continue
    return None


def combine_date_time(date_value: Any, time_value: Any) -> datetime | None:
    day = parse_date(date_value)
    if day is None:
        return None
    return datetime.combine(day, parse_time(time_value) or time())


class CalendarController(StateController):
    """Calendar events, mirrored to the local store after every change.

    When the backend cannot be reached the controller switches to
    ``CalendarMode.DEGRADED``: fetches fall back to placeholder events and
    new events are kept locally so the calendar is never blank.
    """

    name = "calendar"

    def __init__(self, api: BackendAPI, store: KeyValueStore) -> None:
        super().__init__()
        self.api = api
        self.store = store
        self.events: list[CalendarEvent] = []
        self.mode = CalendarMode.ONLINE

    def _set_mode(self, mode: CalendarMode) -> None:
        if mode != self.mode:
            logger.info("calendar_mode_changed", previous=self.mode.value, mode=mode.value)
        self.mode = mode
        metrics.calendar_mode.set(1 if mode == CalendarMode.DEGRADED else 0)

    async def _set_events(self, events: list[CalendarEvent]) -> None:
        self.events = events
        self._notify()
        await self.persist()

    async def persist(self) -> None:
        """Write the current event list to the local store."""
        payload = [event.model_dump(mode="json", exclude_none=True) for event in self.events]
        try:
            await self.store.set_json(CALENDAR_EVENTS_KEY, payload)
        except (OSError, ValueError, aiosqlite.Error) as e:
            logger.error("calendar_cache_write_failed", error=str(e))

    async def load_cached(self) -> int:
        """Restore events saved by a previous run.

        Returns:
            Number of events restored
        """
        try:
            cached = await self.store.get_json(CALENDAR_EVENTS_KEY)
        except (OSError, ValueError, aiosqlite.Error) as e:
            logger.error("calendar_cache_read_failed", error=str(e))
            return 0

        if not isinstance(cached, list) or not cached:
            return 0

        self.events = parse_records(CalendarEvent, cached)
        self._set_mode(CalendarMode.CACHED)
        self._notify()
        logger.info("calendar_cache_loaded", count=len(self.events))
        return len(self.events)

    async def fetch_events(self, **params: Any) -> None:
        """Replace the event list from the server.

        A payload that is not a list empties the calendar and sets an error.
        Transport and HTTP failures switch to placeholder events instead.
        """
        ticket = self._sequencer.next(FETCH_CHANNEL)
        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.events.get_all(params or None)
        except PMSyncError as e:
            if self._is_stale(FETCH_CHANNEL, ticket):
                return
            logger.warning("calendar_fetch_failed_using_fallback", error=str(e))
            self._set_mode(CalendarMode.DEGRADED)
            self.loading = False
            await self._set_events(mock_events())
            return

        if self._is_stale(FETCH_CHANNEL, ticket):
            return

        self.loading = False
        try:
            items = unwrap_list(response.body, "events")
        except EnvelopeError as e:
            logger.error("calendar_invalid_payload", received=e.received_type)
            metrics.unexpected_shapes_total.labels(resource="events").inc()
            self.error = "Invalid data format received"
            await self._set_events([])
            return

        self._set_mode(CalendarMode.ONLINE)
        await self._set_events(parse_records(CalendarEvent, items))

    async def create_event(self, data: dict[str, Any]) -> OperationResult[CalendarEvent]:
        """Create an event; on backend failure keep it locally.

        The local fallback still reports success so the event appears in the
        calendar. Its id is derived from the current timestamp.
        """
        field_errors = validate_event_form(data)
        if field_errors:
            return OperationResult.invalid(field_errors)

        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.events.create(data)
            event = parse_record(CalendarEvent, response.data)
        except PMSyncError as e:
            logger.warning("calendar_create_failed_kept_locally", error=str(e))
            event = self._fallback_event(data)
            self._set_mode(CalendarMode.DEGRADED)

        self.loading = False
        if event is None:
            return OperationResult.fail("Failed to create event")
        await self._set_events([*self.events, event])
        return OperationResult.ok(event)

    @staticmethod
    def _fallback_event(data: dict[str, Any]) -> CalendarEvent:
        now = datetime.now(timezone.utc)
        return CalendarEvent.model_validate(
            {
                **data,
                "id": int(now.timestamp() * 1000),
                "date": combine_date_time(data.get("date"), data.get("time")),
                "created_at": now,
            }
        )

    async def update_event(self, event_id: RecordId, data: dict[str, Any]) -> OperationResult[CalendarEvent]:
        self.error = None
        self._set_loading(True)
        try:
            response = await self.api.events.update(event_id, data)
        except PMSyncError as e:
            message = self._fail("update_event", e, "Failed to update event")
            self._set_loading(False)
            return OperationResult.fail(message)

        updated = parse_record(CalendarEvent, response.data)
        self.loading = False
        if updated is not None:
            await self._set_events([updated if e.id == event_id else e for e in self.events])
        return OperationResult.ok(updated)

    async def delete_event(self, event_id: RecordId) -> OperationResult[None]:
        self.error = None
        self._set_loading(True)
        try:
            await self.api.events.delete(event_id)
        except PMSyncError as e:
            message = self._fail("delete_event", e, "Failed to delete event")
            self._set_loading(False)
            return OperationResult.fail(message)

        self.loading = False
        await self._set_events([e for e in self.events if e.id != event_id])
        return OperationResult.ok()

    async def get_event_by_id(self, event_id: RecordId) -> CalendarEvent | None:
        try:
            response = await self.api.events.get_by_id(event_id)
        except PMSyncError as e:
            logger.warning("event_fetch_failed", event_id=event_id, error=str(e))
            return None
        return parse_record(CalendarEvent, response.data)

    async def get_events_by_project(self, project_id: RecordId) -> list[CalendarEvent]:
        return await self._query("project", self.api.events.get_by_project(project_id))

    async def get_events_by_date(self, day: str) -> list[CalendarEvent]:
        return await self._query("date", self.api.events.get_by_date(day))

    async def get_upcoming_events(self) -> list[CalendarEvent]:
        return await self._query("upcoming", self.api.events.get_upcoming())

    async def get_today_events(self) -> list[CalendarEvent]:
        return await self._query("today", self.api.events.get_today())

    async def _query(self, label: str, pending: Any) -> list[CalendarEvent]:
        try:
            response = await pending
        except PMSyncError as e:
            logger.warning("event_query_failed", query=label, error=str(e))
            return []
        return parse_records(CalendarEvent, response.items("events"))
