# enigma/utils/http_client.py
import asyncio
import logging
from typing import Any, Literal, Optional
from urllib.parse import urlsplit

import aiohttp
import backoff

logger = logging.getLogger(__name__)


def backoff_hdlr(details):
    """Logs retry attempts."""
    logger.warning(
        "Backing off {wait:0.1f}s after {tries} tries calling function {target.__name__} due to {exception}".format(
            **details
        )
    )


def _is_client_error(e: Exception) -> bool:
    return isinstance(e, aiohttp.ClientResponseError) and 400 <= e.status < 500


class HTTPClient:
    """
    Wrapper around aiohttp.ClientSession that centralizes
    timeouts, retries and headers for outbound requests.
    """

    def __init__(self, total_timeout: float = 10.0, connect_timeout: float = 3.0):
        self.total_timeout = total_timeout
        self.connect_timeout = connect_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Lazily creates the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=30,
                ttl_dns_cache=300,
            )
            timeout = aiohttp.ClientTimeout(total=self.total_timeout, connect=self.connect_timeout)
            self._session = aiohttp.ClientSession(connector=connector, timeout=timeout)
        return self._session

    @backoff.on_exception(
        backoff.expo,
        (aiohttp.ClientError, asyncio.TimeoutError),
        max_tries=2,
        giveup=_is_client_error,
        on_backoff=backoff_hdlr,
    )
    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        response_type: Literal["json", "text"] = "json",
        timeout: float | None = None,
    ) -> Any:
        """
        Performs a GET request with retries.

        Network errors and timeouts propagate after the last retry.
        """
        session = await self._get_session()

        request_headers = {"User-Agent": "enigma-gate/1.0"}
        if headers:
            request_headers.update(headers)

        aio_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        try:
            async with session.get(
                url, params=params, headers=request_headers, timeout=aio_timeout
            ) as response:
                response.raise_for_status()
                if response_type == "json":
                    return await response.json(content_type=None)
                return await response.text()

        except aiohttp.ClientResponseError as e:
            logger.error(
                f"Request to {urlsplit(url).netloc} failed with status {e.status}, message='{e.message}'"
            )
            raise
        except asyncio.TimeoutError:
            logger.error(f"Request to {urlsplit(url).netloc} timed out.")
            raise

    async def close(self):
        """Closes the session on shutdown."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info("HTTP client session closed.")
