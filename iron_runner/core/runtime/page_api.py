"""
In-Page API
===========

Publishes ``window.iron.transpileIS``, ``window.iron.runIS`` and
``window.iron.runISFromUrl`` so page code and IronScript units can transpile
and run IronScript themselves. Each function forwards to the runtime of the
run currently active on the page and returns a Promise.
"""

import asyncio
import weakref
from typing import Any, Awaitable, Optional, Set

from playwright.async_api import Page

from iron_runner.config.logging import get_logger
from iron_runner.core.runtime.runner import IronRuntime

logger = get_logger(__name__)


TRANSPILE_BINDING = "__ironTranspile"
RUN_BINDING = "__ironRun"
RUN_FROM_URL_BINDING = "__ironRunFromUrl"

INSTALL_API_SCRIPT = """
() => {
    const iron = (window.iron = window.iron || {});
    iron.context = iron.context || {};
    iron.transpileIS = (code) => window.__ironTranspile(code);
    iron.runIS = (code) => window.__ironRun(code);
    iron.runISFromUrl = (url) => window.__ironRunFromUrl(url);
}
"""

# Bindings outlive a single run, so one holder is kept per page. Holders keep
# no reference to their page.
_page_apis: "weakref.WeakKeyDictionary[Page, PageApi]" = weakref.WeakKeyDictionary()


class PageApiError(Exception):
    """Exception raised when the in-page API is called outside a run."""

    pass


class PageApi:
    """Routes in-page API calls to the active IronScript runtime."""

    def __init__(self) -> None:
        self.runtime: Optional[IronRuntime] = None
        self._exposed = False
        self._calls: Set["asyncio.Task[Any]"] = set()
        self.logger: Any = logger.bind(component="page_api")  # structlog.BoundLoggerBase

    @property
    def in_flight(self) -> int:
        return len(self._calls)

    async def expose(self, page: Page) -> None:
        """Register the Python bindings once and (re)define ``window.iron``."""
        if not self._exposed:
            await page.expose_function(TRANSPILE_BINDING, self._transpile)
            await page.expose_function(RUN_BINDING, self._run)
            await page.expose_function(RUN_FROM_URL_BINDING, self._run_from_url)
            self._exposed = True
            self.logger.debug("In-page API bindings exposed")

        await page.evaluate(INSTALL_API_SCRIPT)

    def activate(self, runtime: IronRuntime) -> None:
        self.runtime = runtime

    async def deactivate(self) -> None:
        """Wait for calls already in progress, then reject new ones."""
        await self.wait_idle()
        self.runtime = None

    async def wait_idle(self) -> None:
        while self._calls:
            await asyncio.gather(*list(self._calls), return_exceptions=True)

    def _active_runtime(self, operation: str) -> IronRuntime:
        if self.runtime is None:
            self.logger.warning("In-page API called outside a run", operation=operation)
            raise PageApiError(f"iron.{operation} called while no IronScript run is active")
        return self.runtime

    async def _track(self, work: Awaitable[bool]) -> bool:
        task = asyncio.ensure_future(work)
        self._calls.add(task)
        task.add_done_callback(self._calls.discard)
        return await task

    async def _transpile(self, code: Any) -> str:
        return self._active_runtime("transpileIS").transpile(code)

    async def _run(self, code: Any) -> bool:
        runtime = self._active_runtime("runIS")
        return await self._track(runtime.run(code, "iron.runIS"))

    async def _run_from_url(self, url: str) -> bool:
        runtime = self._active_runtime("runISFromUrl")
        return await self._track(runtime.load_and_run_remote(url))


def get_page_api(page: Page) -> PageApi:
    """Return the API holder of a page, creating it on first use."""
    api = _page_apis.get(page)
    if api is None:
        api = PageApi()
        _page_apis[page] = api
    return api
