"""
Document Host
=============

Playwright-based hosting of HTML documents that embed IronScript blocks.
Manages the browser instance, loads documents, and starts the sequencer
once the document's structure has been parsed.
"""

from typing import Any, AsyncGenerator, Optional
from contextlib import asynccontextmanager

import aiohttp
from playwright.async_api import async_playwright, Browser, Page, Playwright

from iron_runner.config.logging import get_logger
from iron_runner.config.settings import get_settings
from iron_runner.core.runtime.executor import PlaywrightExecutor
from iron_runner.core.runtime.loader import SourceLoader
from iron_runner.core.runtime.page_api import PageApi, get_page_api
from iron_runner.core.runtime.runner import IronRuntime
from iron_runner.core.runtime.sequencer import ScriptSequencer
from iron_runner.models.schemas import RunReport

logger = get_logger(__name__)


class BrowserHostError(Exception):
    """Exception raised when the browser cannot be started."""

    pass


class BrowserHost:
    """Owns a Chromium instance and hands out isolated pages."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.browser: Optional[Browser] = None
        self._playwright: Optional[Playwright] = None
        self.logger: Any = logger.bind(component="browser_host")  # structlog.BoundLoggerBase

    async def __aenter__(self) -> "BrowserHost":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def initialize(self) -> None:
        """Start Playwright and launch the browser."""
        try:
            self._playwright = await async_playwright().start()
            self.browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                ],
            )
            self.logger.info("Browser host initialized", headless=self.settings.playwright_headless)
        except Exception as e:
            self.logger.error("Failed to initialize browser host", error=str(e))
            await self.close()
            raise BrowserHostError(f"Browser host initialization failed: {e}")

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self.browser:
            await self.browser.close()
            self.browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Browser host closed")

    @asynccontextmanager
    async def new_page(self) -> AsyncGenerator[Page, None]:
        """Open a page in a fresh browser context."""
        if not self.browser:
            raise BrowserHostError("Browser host not initialized")

        context = await self.browser.new_context()
        try:
            page = await context.new_page()
            page.set_default_timeout(self.settings.playwright_timeout)
            yield page
        finally:
            await context.close()


async def install_api(page: Page) -> PageApi:
    """
    Define ``window.iron`` in the page.

    Publishes the shared ``context`` object and the ``transpileIS``,
    ``runIS`` and ``runISFromUrl`` functions. The functions are served only
    while a runtime is activated on the returned holder.
    """
    api = get_page_api(page)
    await api.expose(page)
    return api


async def _document_base_url(page: Page) -> Optional[str]:
    # baseURI honors a <base href> element
    url = await page.evaluate("document.baseURI")
    if isinstance(url, str) and url.startswith(("http://", "https://", "file://")):
        return url
    return None


async def run_in_page(
    page: Page,
    base_url: Optional[str] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> RunReport:
    """
    Run every IronScript block of an already loaded page.

    Waits for the document's structural parse before discovering blocks, and
    for detached blocks and in-page API calls before returning. Console
    forwarding set up for the run is removed again when it ends.

    Args:
        page: Page holding the document
        base_url: Base for relative ``src`` URLs, defaults to the document base URL
        session: Optional aiohttp session to fetch remote sources with

    Returns:
        RunReport over the page's script units
    """
    await page.wait_for_load_state("domcontentloaded")
    api = await install_api(page)
    base_url = base_url or await _document_base_url(page)

    executor = PlaywrightExecutor(page)
    try:
        async with SourceLoader(base_url=base_url, session=session) as loader:
            runtime = IronRuntime(executor, loader)
            api.activate(runtime)
            try:
                sequencer = ScriptSequencer(page, runtime)
                return await sequencer.run(wait_for_detached=True)
            finally:
                await api.deactivate()
    finally:
        executor.detach()


async def run_document(
    html: str,
    base_url: Optional[str] = None,
    host: Optional[BrowserHost] = None,
) -> RunReport:
    """
    Load an HTML document into a browser page and run its IronScript blocks.

    Args:
        html: Document markup
        base_url: Base for relative ``src`` URLs
        host: Optional running browser host; a temporary one is started if omitted

    Returns:
        RunReport over the document's script units
    """
    own_host = host is None
    if host is None:
        host = BrowserHost()
        await host.initialize()

    try:
        async with host.new_page() as page:
            await page.set_content(html, wait_until="domcontentloaded")
            return await run_in_page(page, base_url=base_url)
    finally:
        if own_host:
            await host.close()
