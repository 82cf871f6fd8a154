"""Shared plumbing for outbound HTTP calls."""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..exceptions import UpstreamError

logger = logging.getLogger(__name__)


def status_line(response: httpx.Response) -> str:
    """Format ``<code> <reason>`` the way HTTP status lines read."""
    return f"{response.status_code} {response.reason_phrase}".strip()


def build_async_client(
    verify_tls: bool = True,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the httpx client for one upstream with its TLS policy."""
    return httpx.AsyncClient(verify=verify_tls, transport=transport, follow_redirects=False)


class UpstreamClient:
    """
    Minimal HTTP client bound to one upstream with its own TLS policy.

    Every call is bounded by ``asyncio.wait_for``, so ``timeout`` limits the
    whole exchange (connect, headers and body) and not each socket read.
    """

    error_class = UpstreamError
    transport_prefix = "do request"

    def __init__(
        self,
        verify_tls: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        label: str = "upstream",
    ):
        """
        Initialize the client.

        Args:
            verify_tls: Verify the upstream's TLS certificate
            transport: httpx transport to send through (the network by default)
            label: Name used in log messages
        """
        self.verify_tls = verify_tls
        self.client = build_async_client(verify_tls, transport)
        self.label = label

        if not verify_tls:
            logger.warning(f"TLS certificate verification disabled for {label}")

    async def aclose(self):
        await self.client.aclose()

    def _redact(self, text: str) -> str:
        """Hide credentials that may appear in URLs or error text."""
        return text

    def _status_message(self, response: httpx.Response) -> str:
        return f"bad status: {status_line(response)}"

    def _transport_message(self, detail: str) -> str:
        return self._redact(f"{self.transport_prefix}: {detail}")

    async def _send(
        self,
        method: str,
        url: str,
        expected_status: int,
        timeout: float,
        headers: Optional[Dict[str, str]] = None,
        json: Optional[Any] = None,
    ) -> httpx.Response:
        """
        Send one request and require an exact status code.

        Raises:
            UpstreamError: With cause "request", "transport" or "status"
        """
        shown_url = self._redact(url)
        logger.info(f"[CALL] {method} {shown_url}")

        try:
            request = self.client.build_request(
                method, url, headers=headers, json=json, timeout=timeout
            )
            if request.url.scheme not in ("http", "https"):
                raise httpx.UnsupportedProtocol(
                    f"Request URL {shown_url!r} is missing an 'http://' or 'https://' protocol."
                )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            message = self._redact(f"create request: {e}")
            logger.error(f"{self.label}: could not build request for {shown_url}: {message}")
            raise self.error_class(message, cause="request")

        try:
            response = await asyncio.wait_for(self.client.send(request), timeout)
        except asyncio.TimeoutError:
            message = self._transport_message(f"no complete response within {timeout:g}s")
            logger.error(f"{self.label}: timed out calling {shown_url}: {message}")
            raise self.error_class(message, cause="transport")
        except httpx.HTTPError as e:
            message = self._transport_message(str(e) or type(e).__name__)
            logger.error(f"{self.label}: transport error calling {shown_url}: {message}")
            raise self.error_class(message, cause="transport")

        if response.status_code != expected_status:
            logger.error(
                f"{self.label}: {method} {shown_url} returned {status_line(response)}, "
                f"expected {expected_status}"
            )
            raise self.error_class(
                self._status_message(response),
                cause="status",
                status_code=response.status_code,
            )
        return response
