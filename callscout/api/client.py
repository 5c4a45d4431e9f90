"""Async HTTP clients for the transcript source and the insight service.

WHY: A session makes exactly two kinds of network calls — one transcript
fetch at start-up and one insight request per completed segment. This
module keeps both behind small client classes so the session, the CLI,
and the tests never deal with HTTP details.

HOW: Both clients wrap httpx.AsyncClient and are async context managers
— enter to open the connection pool, exit to close it. Failures are
raised as typed exceptions that the session and the dispatcher catch at
their boundaries.

RULES:
- Always use the async context manager (async with InsightClient() as c:)
- The transcript is fetched with Cache-Control: no-cache
- Non-2xx or malformed insight responses raise InsightAPIError
- Transport failures on the transcript fetch raise TranscriptFetchError
- No retries; the caller decides what a failure means
- transport= is accepted for tests (httpx.MockTransport)
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from callscout.api.models import InsightRequest, InsightResponse
from callscout.config import INSIGHT_BASE_URL, INSIGHT_ENDPOINT

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


class TranscriptFetchError(Exception):
    """Raised when the transcript cannot be downloaded.

    RULES:
    - status_code is None for transport-level failures
    """

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        self.url = url
        self.status_code = status_code
        self.message = message
        super().__init__("Failed to fetch transcript from {}: {}".format(url, message))


class InsightAPIError(Exception):
    """Raised when the insight service answers with an error or garbage.

    RULES:
    - status_code is the HTTP status (0 for transport failures)
    - message is the response body text or a summary
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__("Insight API error {}: {}".format(status_code, message))


class _AsyncHTTPClient:
    """Shared context-manager plumbing for the two clients."""

    def __init__(
        self,
        base_url: str = "",
        timeout: httpx.Timeout = _DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "{name} must be used as an async context manager: "
                "async with {name}() as client: ...".format(name=type(self).__name__)
            )
        return self._client


class TranscriptClient(_AsyncHTTPClient):
    """Fetches a line-delimited transcript blob once per session."""

    async def fetch_transcript(self, url: str) -> str:
        """Download the full transcript text.

        RULES:
        - Bypasses caches (the source may be updated after a live call)
        - Raises TranscriptFetchError on non-2xx or transport errors

        Args:
            url: Absolute URL of the .jsonl transcript.

        Returns:
            The response body as text.
        """
        client = self._ensure_client()
        try:
            resp = await client.get(url, headers={"Cache-Control": "no-cache"})
        except httpx.HTTPError as exc:
            raise TranscriptFetchError(url, str(exc)) from exc

        if resp.status_code != 200:
            raise TranscriptFetchError(
                url,
                resp.reason_phrase or "HTTP {}".format(resp.status_code),
                status_code=resp.status_code,
            )

        logger.info("Fetched transcript from %s (%d bytes)", url, len(resp.content))
        return resp.text


class InsightClient(_AsyncHTTPClient):
    """Client for the insight service's generate-insight endpoint.

    HOW: Posts the request as camelCase JSON and parses the response into
    an InsightResponse. Usable directly as the dispatcher's oracle.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: httpx.Timeout = _DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(base_url or INSIGHT_BASE_URL, timeout, transport)

    async def generate_insight(self, request: InsightRequest) -> InsightResponse:
        """Ask the service for commentary on one completed segment.

        Returns:
            InsightResponse; its insight is None for "nothing worth saying".

        Raises:
            InsightAPIError: on transport failure, non-2xx status, or a body
                that is not a valid response.
        """
        client = self._ensure_client()
        try:
            resp = await client.post(INSIGHT_ENDPOINT, json=request.to_dict())
        except httpx.HTTPError as exc:
            raise InsightAPIError(0, str(exc)) from exc

        if resp.status_code != 200:
            raise InsightAPIError(resp.status_code, resp.text)

        try:
            return InsightResponse.from_dict(resp.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise InsightAPIError(resp.status_code, "Malformed response: {}".format(exc)) from exc
