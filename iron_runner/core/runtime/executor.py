"""
Script Executor
===============

Compile-and-run boundary for transpiled IronScript.

The executor is the only place where execution errors are contained: a unit
that throws is logged together with its origin and never disturbs the caller.
"""

from typing import Any, Optional
from abc import ABC, abstractmethod

from playwright.async_api import ConsoleMessage, Page

from iron_runner.config.logging import get_logger

logger = get_logger(__name__)


# Compiles the unit as a parameterless function body so it runs at top level
# with page-global visibility and may declare any name. The shared execution
# context is reached through the namespace as `iron.context`.
INVOKE_SCRIPT = """
(code) => {
    const iron = (window.iron = window.iron || {});
    iron.context = iron.context || {};
    new Function(code)();
}
"""


class BaseExecutor(ABC):
    """Abstract base class for JavaScript executors."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="executor")  # structlog.BoundLoggerBase

    @abstractmethod
    async def invoke(self, host_text: str) -> None:
        """Compile and run JavaScript, raising on any failure."""
        pass

    async def run(self, host_text: str, origin_info: Optional[str] = None) -> bool:
        """
        Compile and run JavaScript without letting errors escape.

        Args:
            host_text: JavaScript source produced by the rewriter
            origin_info: Identifies the script unit the source came from

        Returns:
            True if the code ran to completion, False if it raised
        """
        try:
            await self.invoke(host_text)
            return True
        except Exception as e:
            self.logger.error(
                "Error executing transpiled IronScript",
                origin=origin_info or "",
                error=str(e),
                error_type=type(e).__name__,
            )
            return False


class PlaywrightExecutor(BaseExecutor):
    """Executor running code in a Playwright page's JavaScript context."""

    def __init__(self, page: Page, forward_console: bool = True) -> None:
        super().__init__()
        self.page = page
        self.logger = logger.bind(component="executor", executor="playwright")
        self.forwarding = False

        if forward_console:
            page.on("console", self._on_console)
            page.on("pageerror", self._on_page_error)
            self.forwarding = True

    def detach(self) -> None:
        """Stop forwarding the page's console and error events."""
        if self.forwarding:
            self.page.remove_listener("console", self._on_console)
            self.page.remove_listener("pageerror", self._on_page_error)
            self.forwarding = False

    async def invoke(self, host_text: str) -> None:
        await self.page.evaluate(INVOKE_SCRIPT, host_text)

    def _on_console(self, message: ConsoleMessage) -> None:
        """Forward browser console output into the structured log."""
        if message.type == "error":
            self.logger.error("Browser console", console_type=message.type, text=message.text)
        else:
            self.logger.info("Browser console", console_type=message.type, text=message.text)

    def _on_page_error(self, error: Any) -> None:
        """Log errors thrown outside a unit's synchronous body, e.g. by event handlers."""
        self.logger.error("Uncaught page error", error=str(error))
