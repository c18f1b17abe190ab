"""
Remote Atom feed / CAP alert retrieval.

Used by the ``captn`` command to pull a published feed (by default the
National Weather Service national feed) and follow entry links to the
CAP 1.1 alerts they reference.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import httpx

from capship.app.atom.models import Feed, Link, parse_feed
from capship.app.cap.models import Alert11, parse_alert11
from capship.app.core.errors import ExternalServiceError

NWS_NATIONAL_ATOM_FEED_URL = "https://alerts.weather.gov/cap/us.php?x=1"
DEFAULT_TIMEOUT = 30.0


def handle_http_response(url: str, response: httpx.Response) -> bytes:
    """Return the body of a successful, non-empty response."""
    if response.status_code != 200:
        raise ExternalServiceError(
            url, f"HTTP status code: {response.status_code}",
            status_code=response.status_code,
        )
    if not response.content:
        raise ExternalServiceError(url, "No content")
    return response.content


class FeedClient:
    """
    Small HTTP client for Atom feeds and the CAP alerts they link to.

    Usage:
        with FeedClient(logger=log) as client:
            feed, raw = client.get_feed()
            alert, raw = client.get_alert(feed.entries[0].link[0])
    """

    def __init__(
        self,
        logger: logging.Logger,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.logger = logger
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
            headers={"Accept": "application/atom+xml, application/cap+xml, application/xml"},
        )

    def __enter__(self) -> "FeedClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _get(self, url: str) -> bytes:
        self.logger.debug("GET %s", url)
        try:
            response = self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ExternalServiceError(url, f"Get {url}: {exc}") from exc
        return handle_http_response(url, response)

    def get_feed(self, url: str = NWS_NATIONAL_ATOM_FEED_URL) -> Tuple[Feed, bytes]:
        """Retrieve and parse the Atom feed at ``url``."""
        body = self._get(url)
        return parse_feed(body), body

    def get_alert(self, link: Link) -> Tuple[Alert11, bytes]:
        """Retrieve the CAP 1.1 alert a feed entry links to."""
        body = self._get(link.href)
        return parse_alert11(body), body
