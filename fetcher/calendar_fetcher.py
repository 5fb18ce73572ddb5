"""HTTP fetcher for remote ICS calendars."""
import logging
from typing import Optional

import requests

from processor.errors import FetchError, FetchFailureReason

logger = logging.getLogger(__name__)


class CalendarFetcher:
    """Retrieves raw calendar text over HTTP."""
    
    DEFAULT_USER_AGENT = "caltorss/1.0"
    
    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the calendar fetcher.
        
        Args:
            timeout: HTTP request timeout in seconds (default: None, the
                client's own default)
            user_agent: Value sent in the User-Agent header
            session: Optional requests session to issue the request with
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session
    
    def fetch(self, url: str) -> str:
        """
        Fetch calendar text with a single GET request.
        
        Args:
            url: Calendar URL
            
        Returns:
            Calendar text
            
        Raises:
            FetchError: On transport failure or a non-2xx response
        """
        logger.info(f"Fetching calendar from {url}")
        http = self.session or requests
        
        try:
            response = http.get(
                url,
                headers={'User-Agent': self.user_agent},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Network error fetching calendar {url}: {e}")
            raise FetchError(
                url,
                FetchFailureReason.NETWORK_ERROR,
                detail=str(e)
            ) from e
        
        if not 200 <= response.status_code < 300:
            logger.warning(
                f"Calendar request to {url} returned HTTP {response.status_code}"
            )
            raise FetchError(
                url,
                FetchFailureReason.HTTP_STATUS,
                status_code=response.status_code,
                detail=response.reason or ''
            )
        
        # RFC 5545 calendars are UTF-8; requests guesses ISO-8859-1 for
        # text/* responses without a charset.
        if 'charset' not in response.headers.get('Content-Type', '').lower():
            response.encoding = 'utf-8'
        
        text = response.text
        logger.info(f"Fetched {len(text)} characters from {url}")
        return text
