"""RSS 2.0 rendering for calendar events."""
import logging
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Any, List, Optional, Sequence
from xml.sax.saxutils import escape

from processor.models import NormalizedEvent

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_TITLE = "Calendar Feed"
UNTITLED_EVENT = "Untitled Event"
CATEGORY = "Calendar Event"
GENERATOR = "caltorss"

CALENDAR_EMOJI = "\U0001F4C5"
LOCATION_EMOJI = "\U0001F4CD"
ORGANIZER_EMOJI = "\U0001F464"
ATTENDEES_EMOJI = "\U0001F465"

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(text: str) -> str:
    """Escape &, <, >, " and ' for XML text nodes and attribute values."""
    return escape(text, _XML_ENTITIES)


def wrap_cdata(text: str) -> str:
    """Wrap text in a CDATA section. An embedded ']]>' is not split."""
    return f"<![CDATA[{text}]]>"


def resolve_channel_title(name: Any) -> str:
    """Return the calendar name, or the default title if it is unusable."""
    if isinstance(name, str) and name:
        return name
    return DEFAULT_CHANNEL_TITLE


def format_rss_date(value: datetime) -> str:
    """Format a datetime as an RFC 2822 date in GMT."""
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def format_iso(value: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with milliseconds, e.g. 2026-10-20T09:00:00.000Z."""
    utc = value.astimezone(timezone.utc)
    return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}Z"


def format_date(value: datetime) -> str:
    """Format as 'Tue, Oct 20, 2026'."""
    return f"{value:%a}, {value:%b} {value.day}, {value.year}"


def format_time(value: datetime) -> str:
    """Format as 12-hour clock time, e.g. '9:05 AM'."""
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {meridiem}"


def format_timestamp(value: datetime, all_day: bool = False) -> str:
    """Format as '10/20/2026, 9:05:00 AM', or the date alone for all-day events."""
    date_part = f"{value.month}/{value.day}/{value.year}"
    if all_day:
        return date_part
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{date_part}, {hour}:{value.minute:02d}:{value.second:02d} {meridiem}"


def format_duration(start: datetime, end: datetime) -> str:
    """
    Format the time between start and end.
    
    Args:
        start: Event start
        end: Event end
        
    Returns:
        '1h30m', '2h', '45m', or '' when the duration is under a minute
        or negative
    """
    delta = end - start
    if delta <= timedelta(0):
        return ""
    total_minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours and minutes:
        return f"{hours}h{minutes}m"
    if hours:
        return f"{hours}h"
    if minutes:
        return f"{minutes}m"
    return ""


class RssRenderer:
    """Renders normalized events as an RSS 2.0 document."""
    
    def __init__(self, generator: str = GENERATOR):
        """
        Initialize the renderer.
        
        Args:
            generator: Value of the channel generator element
        """
        self.generator = generator
    
    def render(
        self,
        channel_title: str,
        channel_link: str,
        build_time: datetime,
        events: Sequence[NormalizedEvent],
        source_url: str = "",
        channel_description: Optional[str] = None
    ) -> str:
        """
        Render a complete RSS 2.0 document.
        
        Args:
            channel_title: Channel title, usually the calendar name
            channel_link: Canonical URL of the feed request
            build_time: Value of lastBuildDate
            events: Events in the order they should appear
            source_url: Calendar URL, used for guids of events without uid
            channel_description: Channel description (default: derived
                from the title)
            
        Returns:
            XML text
        """
        title = resolve_channel_title(channel_title)
        if channel_description is None:
            channel_description = f"RSS feed generated from {title} calendar"
        
        items = "".join(self.render_item(event, source_url) for event in events)
        
        xml = (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<rss version="2.0" '
            'xmlns:content="http://purl.org/rss/1.0/modules/content/" '
            'xmlns:dc="http://purl.org/dc/elements/1.1/">\n'
            '  <channel>\n'
            f'    <title>{escape_xml(title)}</title>\n'
            f'    <description>{escape_xml(channel_description)}</description>\n'
            f'    <link>{escape_xml(channel_link)}</link>\n'
            f'    <lastBuildDate>{format_rss_date(build_time)}</lastBuildDate>\n'
            f'    <generator>{escape_xml(self.generator)}</generator>\n'
            f'{items}'
            '  </channel>\n'
            '</rss>'
        )
        logger.info(f"Rendered RSS feed '{title}' with {len(events)} items")
        return xml
    
    def render_item(self, event: NormalizedEvent, source_url: str = "") -> str:
        """
        Render a single <item> element.
        
        Args:
            event: Event to render
            source_url: Calendar URL, used for the fallback guid
            
        Returns:
            Indented item XML ending in a newline
        """
        lines = ["    <item>"]
        lines.append(f"      <title>{escape_xml(self.item_title(event))}</title>")
        
        if event.url:
            lines.append(f"      <link>{escape_xml(event.url)}</link>")
        
        guid = event.uid
        if not guid:
            start_iso = format_iso(event.start) if event.start else ""
            guid = f"{source_url}#{start_iso}"
        lines.append(f'      <guid isPermaLink="false">{escape_xml(guid)}</guid>')
        
        if event.start:
            lines.append(f"      <pubDate>{format_rss_date(event.start)}</pubDate>")
        
        description = self.item_description(event)
        if description:
            lines.append(
                f"      <description>{wrap_cdata(description)}</description>"
            )
        
        lines.append(f"      <category>{CATEGORY}</category>")
        lines.append("    </item>")
        return "\n".join(lines) + "\n"
    
    def item_title(self, event: NormalizedEvent) -> str:
        """Build 'Tue, Oct 20, 2026 at 9:00 AM: Summary', or just the summary without a start."""
        summary = event.summary or UNTITLED_EVENT
        if event.start:
            heading = format_date(event.start)
            if not event.all_day:
                heading = f"{heading} at {format_time(event.start)}"
            summary = f"{heading}: {summary}"
        return summary
    
    def item_description(self, event: NormalizedEvent) -> str:
        """Build the plain-text detail block; empty when nothing to show."""
        parts: List[str] = []
        
        if event.description:
            parts.append(f"{event.description}\n\n")
        
        if event.start:
            line = f"{CALENDAR_EMOJI} {format_timestamp(event.start, event.all_day)}"
            if event.end:
                duration = format_duration(event.start, event.end)
                if duration:
                    line += f" ({duration})"
            parts.append(f"{line}\n")
        
        if event.location:
            parts.append(f"{LOCATION_EMOJI} {event.location}\n")
        
        if event.organizer:
            parts.append(f"{ORGANIZER_EMOJI} Organizer: {event.organizer}\n")
        
        if event.attendees:
            parts.append(
                f"{ATTENDEES_EMOJI} Attendees: {', '.join(event.attendees)}\n"
            )
        
        return "".join(parts).strip()
