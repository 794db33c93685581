"""Basecamp 3 API client."""
import logging
from typing import List, Optional

import requests

from basecamp.transport import RetryingTransport
from processor.errors import ErrorKind, SyncError

logger = logging.getLogger(__name__)


class BasecampClient:
    """Thin JSON client for a single Basecamp project."""

    API_URL = "https://3.basecampapi.com"
    AUTH_CHECK_URL = "https://launchpad.37signals.com/authorization.json"
    USER_AGENT = "Onestop Basecamp Sync"
    UNAUTHORIZED_STATUS = 401

    def __init__(
        self,
        account_id: str,
        project_id: str,
        access_token: str,
        transport: Optional[RetryingTransport] = None
    ):
        """
        Initialize the Basecamp client.

        Args:
            account_id: Basecamp account id
            project_id: Basecamp project (bucket) id
            access_token: OAuth access token
            transport: Transport used to send requests
        """
        self.account_id = account_id
        self.project_id = project_id
        self.access_token = access_token
        self.transport = transport or RetryingTransport()

    @property
    def account_url(self) -> str:
        return f"{self.API_URL}/{self.account_id}"

    @property
    def project_url(self) -> str:
        return f"{self.account_url}/buckets/{self.project_id}"

    def _headers(self) -> dict:
        return {
            'Authorization': f"Bearer {self.access_token}",
            'User-Agent': self.USER_AGENT,
            'Content-Type': 'application/json'
        }

    def verify_authorization(self) -> None:
        """
        Check that the access token is accepted by Basecamp.

        Raises:
            SyncError: UNAUTHORIZED if the token is missing or rejected
        """
        if not self.access_token:
            raise SyncError(ErrorKind.UNAUTHORIZED, "Basecamp access token is not configured")

        response = self._send('get', self.AUTH_CHECK_URL)
        logger.info(f"Basecamp authorization verified (status {response.status_code})")

    def post(self, url: str, payload: dict) -> dict:
        """Send a POST request and return the decoded JSON body."""
        return self._json(self._send('post', url, json=payload))

    def put(self, url: str, payload: dict) -> dict:
        """Send a PUT request and return the decoded JSON body, if any."""
        return self._json(self._send('put', url, json=payload))

    def get_paginated(self, url: str) -> List[dict]:
        """
        Fetch every page of a collection by following the Link header.

        Args:
            url: URL of the first page

        Returns:
            Concatenated items of all pages
        """
        items = []
        next_url = url

        while next_url:
            response = self._send('get', next_url)
            items.extend(self._json(response) or [])
            next_url = response.links.get('next', {}).get('url')

        return items

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.transport.send(method, url, headers=self._headers(), **kwargs)
        except requests.RequestException as e:
            raise SyncError(ErrorKind.REQUEST_FAILED, f"{method.upper()} {url} failed: {e}") from e

        if response.status_code == self.UNAUTHORIZED_STATUS:
            raise SyncError(ErrorKind.UNAUTHORIZED, "Basecamp not authenticated. Please try again.")

        if response.status_code >= 400:
            raise SyncError(
                ErrorKind.REQUEST_FAILED,
                f"{method.upper()} {url} returned {response.status_code} {response.text}"
            )

        return response

    @staticmethod
    def _json(response: requests.Response):
        if not response.content:
            return {}
        return response.json()
