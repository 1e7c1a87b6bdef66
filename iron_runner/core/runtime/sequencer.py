"""
Script Sequencer
================

Discovers IronScript blocks in a hosting document and runs them in document
order. Remote blocks are awaited in place unless marked detached, in which
case they are started in the background and the sequence moves on.
"""

from typing import Any, List, Optional, Set
import asyncio

from iron_runner.config.logging import get_logger
from iron_runner.config.settings import Settings, get_settings
from iron_runner.core.runtime.runner import IronRuntime
from iron_runner.models.schemas import ExecutionMode, RunReport, ScriptStage, ScriptUnit

logger = get_logger(__name__)


class ScriptSequencer:
    """Single-cursor controller over the document's IronScript blocks."""

    def __init__(self, page: Any, runtime: IronRuntime, settings: Optional[Settings] = None) -> None:
        self.page = page
        self.runtime = runtime
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="sequencer")  # structlog.BoundLoggerBase
        self._detached: Set["asyncio.Task[None]"] = set()

    @property
    def selector(self) -> str:
        return f'script[type="{self.settings.script_type}"]'

    @property
    def pending_detached(self) -> int:
        return len(self._detached)

    async def discover(self) -> List[ScriptUnit]:
        """
        Snapshot the document's script blocks in document order.

        Elements added to the document afterwards are not picked up.

        Returns:
            One pending ScriptUnit per tagged element
        """
        elements = await self.page.query_selector_all(self.selector)
        units: List[ScriptUnit] = []

        for index, element in enumerate(elements):
            unit = ScriptUnit(index=index, element=element)
            try:
                src = await element.get_attribute(self.settings.src_attribute)
                if src:
                    unit.origin = src
                    detached = await element.get_attribute(self.settings.detached_attribute)
                    if detached is not None:
                        unit.mode = ExecutionMode.DETACHED
            except Exception as e:
                self.logger.error("Error reading IronScript element", index=index, error=str(e))
                unit.fail(ScriptStage.LOAD, str(e))
            units.append(unit)

        self.logger.info(
            "Discovered IronScript blocks",
            total=len(units),
            remote=sum(1 for unit in units if unit.is_remote),
            detached=sum(1 for unit in units if unit.is_detached),
        )
        return units

    async def run(self, wait_for_detached: bool = False) -> RunReport:
        """
        Discover and run every block.

        Args:
            wait_for_detached: Also wait for background blocks before returning

        Returns:
            RunReport over the discovered units
        """
        units = await self.discover()
        report = RunReport(units=units)

        for unit in units:
            if unit.is_finished:
                continue
            if unit.is_detached:
                self._spawn(unit)
            else:
                await self._process(unit)

        if wait_for_detached:
            await self.wait_detached()

        self.logger.info(
            "IronScript sequence finished",
            executed=report.executed,
            failed=report.failed,
            pending=report.pending,
        )
        return report

    async def wait_detached(self) -> None:
        """Wait for every background block started so far."""
        while self._detached:
            await asyncio.gather(*list(self._detached), return_exceptions=True)

    def _spawn(self, unit: ScriptUnit) -> None:
        task = asyncio.create_task(self._process(unit))
        self._detached.add(task)
        task.add_done_callback(self._detached.discard)
        self.logger.debug("Started detached IronScript block", index=unit.index, origin=unit.origin)

    async def _process(self, unit: ScriptUnit) -> None:
        """Run one unit, containing any error at the unit boundary."""
        try:
            await self.runtime.process_unit(unit)
        except Exception as e:
            self.logger.error(
                "Error processing IronScript block",
                index=unit.index,
                origin=unit.origin_info,
                element=repr(unit.element),
                error=str(e),
            )
            if not unit.is_finished:
                unit.fail(unit.next_stage, str(e))
