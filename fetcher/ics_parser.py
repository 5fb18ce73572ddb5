"""ICS parsing on top of the icalendar library.

Turns calendar text into :class:`ParsedCalendar`: calendar-level metadata
kept apart from the component records it contains.
"""
import logging
from typing import Any, Dict, List, Optional

from icalendar import Calendar, vCalAddress

from processor.errors import CalendarParseError
from processor.models import (
    AttendeeValue,
    CalendarMetadata,
    ParsedCalendar,
    RawAttendee,
    RawCalendarComponent,
    StructuredValue,
)

logger = logging.getLogger(__name__)


def parse_calendar(text: str) -> ParsedCalendar:
    """
    Parse ICS text into calendar metadata and component records.
    
    Args:
        text: Raw calendar text
        
    Returns:
        ParsedCalendar with components keyed by id
        
    Raises:
        CalendarParseError: If the text is not a parseable calendar
    """
    try:
        calendars = Calendar.from_ical(text, multiple=True)
    except Exception as e:
        raise CalendarParseError(f"Invalid calendar data: {e}") from e
    
    calendars = [cal for cal in calendars if cal.name == 'VCALENDAR']
    if not calendars:
        raise CalendarParseError('No VCALENDAR found in calendar data')
    
    metadata = _parse_metadata(calendars[0])
    components: Dict[str, RawCalendarComponent] = {}
    
    for calendar in calendars:
        for subcomponent in calendar.subcomponents:
            try:
                record = _parse_component(subcomponent)
            except Exception as e:
                raise CalendarParseError(
                    f"Invalid {subcomponent.name} component: {e}"
                ) from e
            components[_component_id(record, components)] = record
    
    logger.info(
        f"Parsed calendar '{metadata.name}' with {len(components)} components"
    )
    return ParsedCalendar(metadata=metadata, components=components)


def _parse_metadata(calendar: Calendar) -> CalendarMetadata:
    return CalendarMetadata(
        name=_text(calendar.get('X-WR-CALNAME')),
        description=_text(calendar.get('X-WR-CALDESC'))
    )


def _parse_component(component) -> RawCalendarComponent:
    """
    Map an icalendar component onto a RawCalendarComponent.
    
    Args:
        component: icalendar Component
        
    Returns:
        RawCalendarComponent
    """
    start = _decoded(component.get('DTSTART'))
    end = _decoded(component.get('DTEND'))
    if end is None and start is not None:
        duration = _decoded(component.get('DURATION'))
        if duration is not None:
            end = start + duration
    
    return RawCalendarComponent(
        type=component.name,
        summary=_text(component.get('SUMMARY')),
        description=_text(component.get('DESCRIPTION')),
        start=start,
        end=end,
        location=_text(component.get('LOCATION')),
        url=_text(component.get('URL')),
        uid=_text(component.get('UID')),
        organizer=_address(component.get('ORGANIZER')),
        attendee=_attendees(component.get('ATTENDEE')),
        created=_decoded(component.get('CREATED')),
        last_modified=_decoded(component.get('LAST-MODIFIED'))
    )


def _component_id(
    record: RawCalendarComponent,
    existing: Dict[str, RawCalendarComponent]
) -> str:
    """Use the UID as id, suffixed when a UID repeats (recurrence overrides)."""
    base = record.uid or f"component-{len(existing)}"
    component_id = base
    suffix = 1
    while component_id in existing:
        component_id = f"{base}#{suffix}"
        suffix += 1
    return component_id


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0] if value else None
        if value is None:
            return None
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8', errors='replace')
    if not isinstance(value, str):
        return None
    return str(value)


def _decoded(value: Any) -> Any:
    """Return the Python value of a date/time/duration property."""
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0] if value else None
    return getattr(value, 'dt', None)


def _address(value: Any) -> Optional[AttendeeValue]:
    if value is None:
        return None
    if isinstance(value, list):
        value = value[0] if value else None
        if value is None:
            return None
    if isinstance(value, vCalAddress):
        params = {
            str(key).upper(): str(param)
            for key, param in value.params.items()
        }
        return StructuredValue(value=str(value) or None, params=params)
    return _text(value)


def _attendees(value: Any) -> RawAttendee:
    if value is None:
        return None
    if isinstance(value, list):
        attendees: List[AttendeeValue] = []
        for item in value:
            address = _address(item)
            if address is not None:
                attendees.append(address)
        return attendees
    return _address(value)
