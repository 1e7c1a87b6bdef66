"""
Source Loader
=============

Resolves IronScript blocks to their raw text, either from inline element
content or by fetching a remote source over HTTP with caching disabled.
"""

from typing import Any, Dict, Optional
from urllib.parse import urljoin
import asyncio

import aiohttp

from iron_runner.config.logging import get_logger
from iron_runner.config.settings import get_settings

logger = get_logger(__name__)


NO_CACHE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}


class SourceLoadError(Exception):
    """Exception raised when a remote source cannot be loaded."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class SourceLoader:
    """Loads IronScript source text for script elements."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.settings = get_settings()
        self.base_url = base_url or self.settings.base_url
        self.timeout = timeout if timeout is not None else self.settings.fetch_timeout
        self.logger: Any = logger.bind(component="source_loader")  # structlog.BoundLoggerBase
        self._session = session
        self._own_session = session is None

    async def __aenter__(self) -> "SourceLoader":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._own_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this loader created it."""
        if self._own_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def resolve(self, url: str) -> str:
        """Resolve a possibly relative source URL against the base URL."""
        if self.base_url:
            return urljoin(self.base_url, url)
        return url

    async def load_inline(self, element: Any) -> str:
        """
        Read an inline script element's literal text.

        Args:
            element: Element handle exposing ``text_content()``

        Returns:
            The element's text, or "" when it has none
        """
        text = await element.text_content()
        return text or ""

    async def fetch_text(self, url: str) -> str:
        """
        Fetch remote source text, bypassing caches.

        Args:
            url: Absolute or base-relative source URL

        Returns:
            Response body as text

        Raises:
            SourceLoadError: On a non-success status or transport failure
        """
        resolved = self.resolve(url)
        try:
            session = await self._get_session()
            async with session.get(resolved, headers=NO_CACHE_HEADERS) as response:
                if not 200 <= response.status < 300:
                    raise SourceLoadError(
                        f"HTTP {response.status} {response.reason or ''}".rstrip(),
                        status=response.status,
                    )
                return await response.text()
        except SourceLoadError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise SourceLoadError(f"Request to {resolved} failed: {str(e) or type(e).__name__}") from e

    async def fetch(self, url: str) -> Optional[str]:
        """
        Fetch remote source text, logging and swallowing failures.

        Args:
            url: Absolute or base-relative source URL

        Returns:
            Source text, or None if loading failed
        """
        try:
            text = await self.fetch_text(url)
        except SourceLoadError as e:
            if e.status is not None:
                self.logger.warning("Failed to load IronScript", url=url, status=e.status, error=str(e))
            else:
                self.logger.error("Failed to load IronScript", url=url, error=str(e))
            return None

        self.logger.debug("Loaded IronScript", url=url, length=len(text))
        return text
