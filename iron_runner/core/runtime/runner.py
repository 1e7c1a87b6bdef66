"""
IronScript Runtime
==================

Programmatic entry points binding the rewriter, a source loader and an
executor together: transpile text, run IronScript, or fetch and run a remote
script. None of the run operations raise; failures are logged.
"""

from typing import Any, Optional

from iron_runner.config.logging import get_logger
from iron_runner.core.runtime.executor import BaseExecutor
from iron_runner.core.runtime.loader import SourceLoader
from iron_runner.core.transpiler.rewriter import Rewriter, get_rewriter
from iron_runner.models.schemas import ScriptStage, ScriptUnit, UnitStatus

logger = get_logger(__name__)


class IronRuntime:
    """Transpile-and-run API over an executor and a source loader."""

    def __init__(
        self,
        executor: BaseExecutor,
        loader: Optional[SourceLoader] = None,
        rewriter: Optional[Rewriter] = None,
    ) -> None:
        self.executor = executor
        self.loader = loader or SourceLoader()
        self.rewriter = rewriter or get_rewriter()
        self.logger: Any = logger.bind(component="runtime")  # structlog.BoundLoggerBase

    def transpile(self, text: object) -> str:
        """Rewrite IronScript into JavaScript."""
        return self.rewriter.transpile(text)

    async def run(self, code: str, origin_info: Optional[str] = None) -> bool:
        """
        Transpile and execute IronScript.

        Args:
            code: IronScript source
            origin_info: Identifies where the source came from in diagnostics

        Returns:
            True if the script ran to completion
        """
        try:
            host_text = self.transpile(code)
        except Exception as e:
            self.logger.error("Error transpiling IronScript", origin=origin_info or "", error=str(e))
            return False
        return await self.executor.run(host_text, origin_info)

    async def load_and_run_remote(self, url: str) -> bool:
        """
        Fetch IronScript from ``url`` and run it.

        Returns:
            True if the script was loaded and ran to completion
        """
        text = await self.loader.fetch(url)
        if text is None:
            return False
        return await self.run(text, url)

    async def process_unit(self, unit: ScriptUnit) -> ScriptUnit:
        """
        Drive one script unit through load, transpile and execute.

        The unit's status records how far it got. Load and execution failures
        are logged by the loader and executor; nothing is retried.
        """
        if unit.is_remote:
            source = await self.loader.fetch(unit.origin or "")
            if source is None:
                unit.fail(ScriptStage.LOAD, f"Could not load {unit.origin}")
                return unit
        else:
            source = await self.loader.load_inline(unit.element)
        unit.source = source
        unit.advance(UnitStatus.LOADED)

        try:
            host_text = self.transpile(source)
        except Exception as e:
            self.logger.error("Error transpiling IronScript", origin=unit.origin_info, error=str(e))
            unit.fail(ScriptStage.TRANSPILE, str(e))
            return unit
        unit.advance(UnitStatus.TRANSPILED)

        if await self.executor.run(host_text, unit.origin_info):
            unit.advance(UnitStatus.EXECUTED)
        else:
            unit.fail(ScriptStage.EXECUTE, "Execution raised an error")
        return unit
