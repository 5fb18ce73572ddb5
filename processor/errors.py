"""Error taxonomy for the conversion pipeline.

Each error carries the HTTP status and the message exposed to clients.
Upstream details stay in the exception (and the logs), never in the
response body.
"""
from enum import Enum
from typing import Optional


class ConversionError(Exception):
    """Base class for errors that terminate a conversion request."""

    status_code = 500
    public_message = 'Failed to convert ICS to RSS'


class InputError(ConversionError):
    """Missing or invalid request parameters."""

    status_code = 400
    public_message = 'No ICS URL provided'


class DecodeError(InputError):
    """Compressed ICS token could not be decoded."""

    public_message = 'Invalid compressed ICS parameter'


class UpstreamError(ConversionError):
    """Fetching or parsing the remote calendar failed."""


class FetchFailureReason(Enum):
    NETWORK_ERROR = 'network_error'
    HTTP_STATUS = 'http_status'


class FetchError(UpstreamError):
    """Calendar could not be retrieved."""

    def __init__(
        self,
        url: str,
        reason: FetchFailureReason,
        status_code: Optional[int] = None,
        detail: str = ''
    ):
        self.url = url
        self.reason = reason
        self.upstream_status = status_code
        self.detail = detail
        if reason is FetchFailureReason.HTTP_STATUS:
            message = f"HTTP {status_code} fetching {url}"
        else:
            message = f"Network error fetching {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CalendarParseError(UpstreamError):
    """Calendar text could not be parsed."""
