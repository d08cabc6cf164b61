"""aiohttp implementation of the raw file fetch client."""
import logging
from typing import Dict, Optional
import aiohttp
from publiccode_crawler.domain.fetch_interface import IFetchClient
from publiccode_crawler.domain.models import FetchResponse


logger = logging.getLogger(__name__)

USER_AGENT = "publiccode-crawler"


class AiohttpFetchClient(IFetchClient):
    """Fetches files over a shared aiohttp session.

    There is no retry here: a failed fetch is final for that repository.
    """

    def __init__(self, timeout_seconds: Optional[float] = None):
        """Initialize fetch client.

        Args:
            timeout_seconds: Total timeout per request; None waits indefinitely
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _init_session(self) -> aiohttp.ClientSession:
        """Initialize the HTTP session (lazy initialization)."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={"User-Agent": USER_AGENT}
            )
        return self._session

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> FetchResponse:
        session = await self._init_session()
        async with session.get(url, headers=headers or {}) as resp:
            body = await resp.read()
            logger.debug(f"GET {url} -> {resp.status} ({len(body)} bytes)")
            return FetchResponse(status=resp.status, body=body)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
