"""Unit tests for RssRenderer."""
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone

import pytest

from processor.models import NormalizedEvent
from renderer.rss_renderer import (
    RssRenderer,
    escape_xml,
    format_duration,
    format_iso,
    format_rss_date,
    resolve_channel_title,
    wrap_cdata,
)

BUILD_TIME = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
START = datetime(2026, 10, 20, 9, 5, tzinfo=timezone.utc)
SOURCE_URL = "https://calendar.example.com/team.ics"
FEED_URL = "https://caltorss.example.com/api/convert?url=x"


def render(events, title="Team Calendar"):
    return RssRenderer().render(
        channel_title=title,
        channel_link=FEED_URL,
        build_time=BUILD_TIME,
        events=events,
        source_url=SOURCE_URL
    )


def parse(xml_text):
    return ET.fromstring(xml_text.encode('utf-8'))


class TestHelpers:
    """Test cases for formatting helpers."""
    
    def test_escape_xml(self):
        assert escape_xml('a & b < c > d "e" \'f\'') == (
            'a &amp; b &lt; c &gt; d &quot;e&quot; &apos;f&apos;'
        )
    
    def test_wrap_cdata(self):
        assert wrap_cdata('<b>hi</b>') == '<![CDATA[<b>hi</b>]]>'
    
    def test_format_rss_date(self):
        assert format_rss_date(START) == 'Tue, 20 Oct 2026 09:05:00 GMT'
    
    def test_format_rss_date_converts_to_gmt(self):
        eastern = timezone(timedelta(hours=-4))
        value = datetime(2026, 10, 20, 5, 5, tzinfo=eastern)
        assert format_rss_date(value) == 'Tue, 20 Oct 2026 09:05:00 GMT'
    
    def test_format_iso(self):
        assert format_iso(START) == '2026-10-20T09:05:00.000Z'
    
    @pytest.mark.parametrize('duration,expected', [
        (timedelta(hours=1), '1h'),
        (timedelta(hours=1, minutes=30), '1h30m'),
        (timedelta(minutes=45), '45m'),
        (timedelta(hours=26, minutes=5), '26h5m'),
        (timedelta(0), ''),
        (timedelta(seconds=30), ''),
        (timedelta(hours=-1), ''),
    ])
    def test_format_duration(self, duration, expected):
        assert format_duration(START, START + duration) == expected
    
    @pytest.mark.parametrize('name,expected', [
        ('My Calendar', 'My Calendar'),
        (None, 'Calendar Feed'),
        ('', 'Calendar Feed'),
        (42, 'Calendar Feed'),
    ])
    def test_resolve_channel_title(self, name, expected):
        assert resolve_channel_title(name) == expected


class TestRssRenderer:
    """Test cases for RssRenderer class."""
    
    def test_render_channel(self):
        """Test the channel carries the required metadata."""
        xml = render([])
        
        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        assert 'xmlns:content="http://purl.org/rss/1.0/modules/content/"' in xml
        assert 'xmlns:dc="http://purl.org/dc/elements/1.1/"' in xml
        
        root = parse(xml)
        assert root.tag == 'rss'
        assert root.get('version') == '2.0'
        channel = root.find('channel')
        assert channel.findtext('title') == 'Team Calendar'
        assert channel.findtext('description') == (
            'RSS feed generated from Team Calendar calendar'
        )
        assert channel.findtext('link') == FEED_URL
        assert channel.findtext('lastBuildDate') == 'Mon, 19 Oct 2026 12:00:00 GMT'
        assert channel.findtext('generator') == 'caltorss'
        assert channel.findall('item') == []
    
    def test_render_default_channel_title(self):
        """Test the default title is used without a calendar name."""
        channel = parse(render([], title=None)).find('channel')
        
        assert channel.findtext('title') == 'Calendar Feed'
        assert channel.findtext('description') == (
            'RSS feed generated from Calendar Feed calendar'
        )
    
    def test_render_calendar_description(self):
        """Test a calendar description replaces the generated one."""
        xml = RssRenderer().render(
            channel_title='Team Calendar',
            channel_link=FEED_URL,
            build_time=BUILD_TIME,
            events=[],
            channel_description='Standups & planning'
        )

        assert '<description>Standups &amp; planning</description>' in xml
        assert parse(xml).find('channel').findtext('description') == 'Standups & planning'

    def test_render_escapes_channel_fields(self):
        """Test channel text and link are escaped."""
        xml = RssRenderer().render(
            channel_title='R&D <Team>',
            channel_link='https://example.com/api/convert?url=a&b=c',
            build_time=BUILD_TIME,
            events=[]
        )
        
        assert '<title>R&amp;D &lt;Team&gt;</title>' in xml
        assert '<link>https://example.com/api/convert?url=a&amp;b=c</link>' in xml
    
    def test_render_full_item(self):
        """Test every item element is rendered in order."""
        event = NormalizedEvent(
            summary='Team Sync',
            description='Weekly sync',
            start=START,
            end=START + timedelta(hours=1, minutes=30),
            location='Room 2',
            url='https://example.com/events/sync',
            uid='sync-1@example.com',
            organizer='mailto:olivia@example.com',
            attendees=('mailto:alice@example.com', 'Bob')
        )
        
        xml = render([event])
        item = parse(xml).find('channel/item')
        
        assert [child.tag for child in item] == [
            'title', 'link', 'guid', 'pubDate', 'description', 'category'
        ]
        assert item.findtext('title') == 'Tue, Oct 20, 2026 at 9:05 AM: Team Sync'
        assert item.findtext('link') == 'https://example.com/events/sync'
        assert item.find('guid').get('isPermaLink') == 'false'
        assert item.findtext('guid') == 'sync-1@example.com'
        assert item.findtext('pubDate') == 'Tue, 20 Oct 2026 09:05:00 GMT'
        assert item.findtext('category') == 'Calendar Event'
        assert item.findtext('description') == (
            'Weekly sync\n'
            '\n'
            '\U0001F4C5 10/20/2026, 9:05:00 AM (1h30m)\n'
            '\U0001F4CD Room 2\n'
            '\U0001F464 Organizer: mailto:olivia@example.com\n'
            '\U0001F465 Attendees: mailto:alice@example.com, Bob'
        )
    
    def test_render_minimal_item(self):
        """Test optional elements are omitted when data is missing."""
        event = NormalizedEvent(start=START)
        
        item = parse(render([event])).find('channel/item')
        
        assert item.find('link') is None
        assert item.findtext('title') == 'Tue, Oct 20, 2026 at 9:05 AM: Untitled Event'
        assert item.findtext('guid') == f'{SOURCE_URL}#2026-10-20T09:05:00.000Z'
        assert item.findtext('description') == '\U0001F4C5 10/20/2026, 9:05:00 AM'
    
    def test_render_item_without_start(self):
        """Test an item without start has no pubDate or description."""
        event = NormalizedEvent(summary='Floating', uid='f1')
        
        item = parse(render([event])).find('channel/item')
        
        assert item.find('pubDate') is None
        assert item.find('description') is None
        assert item.findtext('title') == 'Floating'
        assert item.findtext('category') == 'Calendar Event'
    
    def test_render_afternoon_time(self):
        """Test 12-hour times with zero-padded minutes."""
        renderer = RssRenderer()
        
        assert renderer.item_title(
            NormalizedEvent(summary='Lunch', start=START.replace(hour=12, minute=0))
        ) == 'Tue, Oct 20, 2026 at 12:00 PM: Lunch'
        assert renderer.item_title(
            NormalizedEvent(summary='Late', start=START.replace(hour=0, minute=7))
        ) == 'Tue, Oct 20, 2026 at 12:07 AM: Late'
        assert renderer.item_title(
            NormalizedEvent(summary='Dinner', start=START.replace(hour=19, minute=30))
        ) == 'Tue, Oct 20, 2026 at 7:30 PM: Dinner'
    
    def test_render_all_day_item(self):
        """Test all-day events have no time of day."""
        start = datetime(2026, 12, 24, tzinfo=timezone.utc)
        event = NormalizedEvent(
            summary='Holiday',
            start=start,
            end=start + timedelta(days=1),
            all_day=True
        )
        
        item = parse(render([event])).find('channel/item')
        
        assert item.findtext('title') == 'Thu, Dec 24, 2026: Holiday'
        assert item.findtext('description') == '\U0001F4C5 12/24/2026 (24h)'
    
    def test_render_zero_duration_omitted(self):
        """Test a zero-length event has no duration."""
        event = NormalizedEvent(start=START, end=START)
        
        description = RssRenderer().item_description(event)
        
        assert description == '\U0001F4C5 10/20/2026, 9:05:00 AM'
        assert '(' not in description
    
    def test_render_escapes_title(self):
        """Test special characters in the summary are escaped."""
        event = NormalizedEvent(summary='Q&A <live> "now"', start=START)
        
        xml = render([event])
        
        assert (
            '<title>Tue, Oct 20, 2026 at 9:05 AM: Q&amp;A &lt;live&gt; '
            '&quot;now&quot;</title>'
        ) in xml
        assert parse(xml).find('channel/item').findtext('title').endswith(
            'Q&A <live> "now"'
        )
    
    def test_render_escapes_link_and_guid(self):
        """Test URL and uid text are escaped."""
        event = NormalizedEvent(
            start=START,
            url='https://example.com/?a=1&b=2',
            uid='<uid>&1'
        )
        
        xml = render([event])
        
        assert '<link>https://example.com/?a=1&amp;b=2</link>' in xml
        assert '<guid isPermaLink="false">&lt;uid&gt;&amp;1</guid>' in xml
    
    def test_render_description_in_cdata(self):
        """Test description text is kept verbatim inside CDATA."""
        event = NormalizedEvent(
            description='<script>alert("x & y")</script>',
            start=START
        )
        
        xml = render([event])
        
        assert '<description><![CDATA[<script>alert("x & y")</script>\n\n' in xml
        assert '&lt;script&gt;' not in xml
    
    def test_render_empty_attendees_omitted(self):
        """Test the attendees line needs at least one attendee."""
        event = NormalizedEvent(start=START, attendees=())
        
        assert 'Attendees' not in RssRenderer().item_description(event)
    
    def test_render_preserves_order(self):
        """Test items follow the given event order."""
        events = [
            NormalizedEvent(uid='t3', start=START + timedelta(days=2)),
            NormalizedEvent(uid='t2', start=START + timedelta(days=1)),
            NormalizedEvent(uid='t1', start=START),
        ]
        
        items = parse(render(events)).findall('channel/item')
        
        assert [item.findtext('guid') for item in items] == ['t3', 't2', 't1']
    
    def test_render_custom_generator(self):
        """Test the generator element can be overridden."""
        xml = RssRenderer(generator='custom').render(
            channel_title='T',
            channel_link=FEED_URL,
            build_time=BUILD_TIME,
            events=[]
        )
        
        assert '<generator>custom</generator>' in xml
