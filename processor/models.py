"""Data models for calendar conversion."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple, Union


@dataclass
class StructuredValue:
    """Property value carrying parameters (e.g. an attendee with CN)."""
    value: Optional[str]
    params: Dict[str, str] = field(default_factory=dict)


AttendeeValue = Union[str, StructuredValue]
RawAttendee = Union[None, AttendeeValue, List[AttendeeValue]]
DateValue = Union[date, datetime]


@dataclass
class RawCalendarComponent:
    """Component record produced by the ICS parser."""
    type: str
    summary: Optional[str] = None
    description: Optional[str] = None
    start: Optional[DateValue] = None
    end: Optional[DateValue] = None
    location: Optional[str] = None
    url: Optional[str] = None
    uid: Optional[str] = None
    organizer: Optional[AttendeeValue] = None
    attendee: RawAttendee = None
    created: Optional[DateValue] = None
    last_modified: Optional[DateValue] = None


@dataclass
class CalendarMetadata:
    """Calendar-level properties."""
    name: Optional[str] = None
    description: Optional[str] = None


@dataclass
class ParsedCalendar:
    """Parser output: calendar metadata plus components keyed by id."""
    metadata: CalendarMetadata
    components: Dict[str, RawCalendarComponent]


@dataclass(frozen=True)
class NormalizedEvent:
    """Event ready for rendering."""
    summary: Optional[str] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    all_day: bool = False
    location: Optional[str] = None
    url: Optional[str] = None
    uid: Optional[str] = None
    organizer: Optional[str] = None
    attendees: Tuple[str, ...] = ()
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
