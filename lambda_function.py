"""AWS Lambda handler for the ICS to RSS conversion service."""
import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Dict, Any, Mapping, Optional
from urllib.parse import urlencode

from codec.url_codec import decode
from fetcher.calendar_fetcher import CalendarFetcher
from fetcher.ics_parser import parse_calendar
from processor.errors import ConversionError, InputError, UpstreamError
from processor.event_extractor import EventExtractor
from renderer.preview_page import render_preview_page
from renderer.rss_renderer import RssRenderer, resolve_channel_title


CONVERT_PATH = '/api/convert'
RSS_CONTENT_TYPE = 'application/rss+xml; charset=utf-8'
HTML_CONTENT_TYPE = 'text/html; charset=utf-8'
JSON_CONTENT_TYPE = 'application/json'
CACHE_CONTROL = 'max-age=600, s-maxage=600'

# Attributes every LogRecord has; anything else came in through `extra`.
_RESERVED_LOG_ATTRS = set(
    logging.LogRecord('', 0, '', 0, '', (), None).__dict__
) | {'message', 'asctime'}


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including fields passed via extra."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


logger = logging.getLogger(__name__)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for API Gateway proxy requests.

    Routes GET /api/convert to the conversion pipeline and GET / to the
    preview page.

    Args:
        event: API Gateway proxy event (REST or HTTP API payload)
        context: Lambda context object

    Returns:
        Response dict with statusCode, headers and body
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    setup_logging(log_level)

    method = _request_method(event)
    path = _request_path(event)

    if method != 'GET':
        return _json_response(405, {'error': 'Method not allowed'})

    if path in ('', '/'):
        return {
            'statusCode': 200,
            'headers': {'Content-Type': HTML_CONTENT_TYPE},
            'body': render_preview_page()
        }

    if path.rstrip('/').endswith(CONVERT_PATH):
        return convert_handler(event)

    return _json_response(404, {'error': 'Not found'})


def convert_handler(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert the requested calendar to RSS.

    Args:
        event: API Gateway proxy event for GET /api/convert

    Returns:
        RSS response, or a JSON error response
    """
    timeout = os.environ.get('FETCH_TIMEOUT_SECONDS')
    user_agent = os.environ.get('USER_AGENT', CalendarFetcher.DEFAULT_USER_AGENT)
    past_days = int(os.environ.get('PAST_WINDOW_DAYS', EventExtractor.PAST_WINDOW_DAYS))
    future_days = int(os.environ.get('FUTURE_WINDOW_DAYS', EventExtractor.FUTURE_WINDOW_DAYS))
    max_events = int(os.environ.get('MAX_EVENTS', EventExtractor.MAX_EVENTS))

    start_time = time.time()
    params = event.get('queryStringParameters') or {}

    try:
        ics_url = resolve_calendar_url(params)
    except InputError as e:
        logger.warning(
            f"Rejected conversion request: {e}",
            extra={'error_type': type(e).__name__}
        )
        return _json_response(e.status_code, {'error': e.public_message})

    logger.info(
        "Conversion started",
        extra={'ics_url': ics_url, 'compressed': bool(params.get('ics'))}
    )

    try:
        fetcher = CalendarFetcher(
            timeout=float(timeout) if timeout else None,
            user_agent=user_agent
        )
        extractor = EventExtractor(
            past_window_days=past_days,
            future_window_days=future_days,
            max_events=max_events
        )
        renderer = RssRenderer()

        # Fetch and parse; both count as upstream failures
        try:
            raw_calendar = fetcher.fetch(ics_url)
            calendar = parse_calendar(raw_calendar)
        except UpstreamError as e:
            logger.error(
                f"Error converting ICS to RSS: {e}",
                extra={'error_type': type(e).__name__, 'ics_url': ics_url},
                exc_info=True
            )
            return _json_response(e.status_code, {'error': e.public_message})

        now = datetime.now(timezone.utc)
        events = extractor.extract(calendar.components, now)
        xml = renderer.render(
            channel_title=resolve_channel_title(calendar.metadata.name),
            channel_link=request_url(event),
            build_time=now,
            events=events,
            source_url=ics_url,
            channel_description=calendar.metadata.description or None
        )

        duration = time.time() - start_time
        logger.info(
            "Conversion completed successfully",
            extra={
                'ics_url': ics_url,
                'components': len(calendar.components),
                'items': len(events),
                'duration_seconds': round(duration, 2)
            }
        )

        return {
            'statusCode': 200,
            'headers': {
                'Content-Type': RSS_CONTENT_TYPE,
                'Cache-Control': CACHE_CONTROL
            },
            'body': xml
        }

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Conversion failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _json_response(
            ConversionError.status_code,
            {'error': ConversionError.public_message}
        )


def resolve_calendar_url(params: Mapping[str, Optional[str]]) -> str:
    """
    Work out the calendar URL from the query parameters.

    A compressed ``ics`` token takes precedence over a plain ``url``.

    Args:
        params: Query string parameters

    Returns:
        Calendar URL

    Raises:
        DecodeError: If ``ics`` is present but undecodable
        InputError: If neither parameter is present
    """
    token = params.get('ics')
    if token:
        return decode(token)

    url = params.get('url') or ''
    if not url:
        raise InputError('No ICS URL provided')
    return url


def request_url(event: Dict[str, Any]) -> str:
    """
    Rebuild the URL the client requested.

    Args:
        event: API Gateway proxy event

    Returns:
        Absolute URL when the host is known, otherwise path and query
    """
    headers = {k.lower(): v for k, v in (event.get('headers') or {}).items()}
    request_context = event.get('requestContext') or {}

    host = headers.get('host') or request_context.get('domainName')
    scheme = headers.get('x-forwarded-proto', 'https').split(',')[0].strip()
    path = _request_path(event) or '/'

    query = event.get('rawQueryString')
    if query is None:
        multi = event.get('multiValueQueryStringParameters')
        if multi:
            query = urlencode(
                [(key, value) for key, values in multi.items() for value in values]
            )
        else:
            query = urlencode(event.get('queryStringParameters') or {})

    url = f"{scheme}://{host}{path}" if host else path
    return f"{url}?{query}" if query else url


def _request_method(event: Dict[str, Any]) -> str:
    method = event.get('httpMethod')
    if not method:
        method = (event.get('requestContext') or {}).get('http', {}).get('method')
    return (method or 'GET').upper()


def _request_path(event: Dict[str, Any]) -> str:
    return event.get('rawPath') or event.get('path') or '/'


def _json_response(status_code: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': JSON_CONTENT_TYPE},
        'body': json.dumps(payload, separators=(',', ':'))
    }
