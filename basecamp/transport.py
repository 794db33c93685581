"""HTTP transport with bounded exponential-backoff retry."""
import logging
import time
from typing import Optional

import requests

from processor.errors import ErrorKind, SyncError

logger = logging.getLogger(__name__)


class RetryingTransport:
    """Sends HTTP requests, retrying server errors and network failures."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: int = 1000,
        timeout: int = 30,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the transport.

        Args:
            max_attempts: Attempts before giving up; 0 sends once without retry
            base_delay: Delay before the first retry in milliseconds
            timeout: HTTP request timeout in seconds
            session: Optional requests session to send through
        """
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Send a request, retrying on 5xx responses and request exceptions.

        4xx responses are returned to the caller without retrying.

        Args:
            method: HTTP method
            url: Request URL
            **kwargs: Passed through to requests

        Returns:
            The first 2xx or 4xx response

        Raises:
            SyncError: RETRY_EXHAUSTED once every attempt has failed
        """
        kwargs.setdefault('timeout', self.timeout)

        if self.max_attempts <= 0:
            return self.session.request(method, url, **kwargs)

        last_error = None

        for attempt in range(self.max_attempts):
            try:
                response = self.session.request(method, url, **kwargs)
            except requests.RequestException as e:
                last_error = str(e)
            else:
                if response.status_code < 400:
                    return response

                if response.status_code < 500:
                    logger.warning(
                        f"Attempt {attempt + 1} failed but not retrying: "
                        f"{response.status_code} {response.text}"
                    )
                    return response

                last_error = f"{response.status_code} {response.text}"

            logger.warning(
                f"Request failed (attempt {attempt + 1}/{self.max_attempts}): {last_error}"
            )

            if attempt < self.max_attempts - 1:
                # Exponential backoff in milliseconds
                delay = self.base_delay * (2 ** attempt)
                time.sleep(delay / 1000)

        logger.error(
            f"All {self.max_attempts} attempts failed for {method.upper()} {url}. "
            f"Last error: {last_error}"
        )
        raise SyncError(
            ErrorKind.RETRY_EXHAUSTED,
            f"Failed after {self.max_attempts} attempts: {last_error}"
        )
