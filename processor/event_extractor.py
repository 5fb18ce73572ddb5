"""Event extractor for turning parsed calendar components into feed events."""
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Mapping, Optional, Tuple

from processor.models import (
    AttendeeValue,
    DateValue,
    NormalizedEvent,
    RawAttendee,
    RawCalendarComponent,
    StructuredValue,
)

logger = logging.getLogger(__name__)


class EventExtractor:
    """Selects, normalizes and orders the events of a parsed calendar."""
    
    EVENT_TYPE = 'VEVENT'
    PAST_WINDOW_DAYS = 30
    FUTURE_WINDOW_DAYS = 365
    MAX_EVENTS = 100
    
    def __init__(
        self,
        past_window_days: Optional[int] = None,
        future_window_days: Optional[int] = None,
        max_events: Optional[int] = None
    ):
        """
        Initialize the extractor.
        
        Args:
            past_window_days: Days before the reference time to keep
                (default: PAST_WINDOW_DAYS)
            future_window_days: Days after the reference time to keep
                (default: FUTURE_WINDOW_DAYS)
            max_events: Maximum number of events returned
                (default: MAX_EVENTS)
        """
        self.past_window = timedelta(
            days=self.PAST_WINDOW_DAYS if past_window_days is None
            else past_window_days
        )
        self.future_window = timedelta(
            days=self.FUTURE_WINDOW_DAYS if future_window_days is None
            else future_window_days
        )
        self.max_events = self.MAX_EVENTS if max_events is None else max_events
    
    def extract(
        self,
        components: Mapping[str, RawCalendarComponent],
        reference_time: datetime
    ) -> List[NormalizedEvent]:
        """
        Extract the events to publish, most recent start first.
        
        Args:
            components: Parsed components keyed by component id
            reference_time: Time the window is centred on
            
        Returns:
            At most max_events NormalizedEvent objects sorted descending
            by start
        """
        reference_time = _ensure_aware(reference_time)
        window_start = reference_time - self.past_window
        window_end = reference_time + self.future_window
        
        events = []
        for component in components.values():
            if component.type != self.EVENT_TYPE:
                continue
            
            event = self.normalize(component)
            if event.start is None:
                logger.debug(f"Skipping event without start: {event.uid}")
                continue
            if not window_start <= event.start <= window_end:
                continue
            events.append(event)
        
        # sorted() is stable, so equal starts keep calendar order
        events = sorted(events, key=lambda e: e.start, reverse=True)
        limited = events[:self.max_events]
        
        logger.info(
            f"Extracted {len(limited)} events out of {len(components)} "
            f"components ({len(events)} within window)"
        )
        return limited
    
    def normalize(self, component: RawCalendarComponent) -> NormalizedEvent:
        """
        Build a NormalizedEvent from a raw component.
        
        Args:
            component: Raw VEVENT component
            
        Returns:
            NormalizedEvent
        """
        start, all_day = _to_timestamp(component.start)
        end, _ = _to_timestamp(component.end)
        created, _ = _to_timestamp(component.created)
        last_modified, _ = _to_timestamp(component.last_modified)
        
        organizer = None
        if component.organizer is not None:
            organizer = _display_name(component.organizer) or None
        
        return NormalizedEvent(
            summary=component.summary,
            description=component.description,
            start=start,
            end=end,
            all_day=all_day,
            location=component.location,
            url=component.url,
            uid=component.uid,
            organizer=organizer,
            attendees=normalize_attendees(component.attendee),
            created=created,
            last_modified=last_modified
        )


def normalize_attendees(attendee: RawAttendee) -> Tuple[str, ...]:
    """
    Resolve the attendee property into display strings.
    
    Args:
        attendee: None, a single value, or a list of values
        
    Returns:
        Display strings in calendar order
    """
    if attendee is None:
        return ()
    if isinstance(attendee, (str, StructuredValue)):
        return (_display_name(attendee),)
    return tuple(_display_name(item) for item in attendee)


def _display_name(value: AttendeeValue) -> str:
    if isinstance(value, str):
        return value
    return value.value or value.params.get('CN') or ''


def _to_timestamp(value: Optional[DateValue]) -> Tuple[Optional[datetime], bool]:
    """Convert a date or datetime to an aware datetime and an all-day flag."""
    if value is None:
        return None, False
    if isinstance(value, datetime):
        return _ensure_aware(value), False
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc), True
    return None, False


def _ensure_aware(value: datetime) -> datetime:
    # Floating times carry no zone; treat them as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
