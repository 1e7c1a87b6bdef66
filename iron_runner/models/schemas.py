"""
Pydantic Models and Schemas
===========================

Data models for discovered script units and controller run reports.
"""

from typing import Optional, List, Any
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


INLINE_ORIGIN = 'inline <script type="iron">'


# Enums
class ExecutionMode(str, Enum):
    """Sequencing mode of a script unit."""
    ORDERED = "ordered"
    DETACHED = "detached"


class UnitStatus(str, Enum):
    """Lifecycle status of a script unit."""
    PENDING = "pending"
    LOADED = "loaded"
    TRANSPILED = "transpiled"
    EXECUTED = "executed"
    FAILED = "failed"


class ScriptStage(str, Enum):
    """Pipeline stage in which a unit failed."""
    LOAD = "load"
    TRANSPILE = "transpile"
    EXECUTE = "execute"


_STATUS_ORDER = [
    UnitStatus.PENDING,
    UnitStatus.LOADED,
    UnitStatus.TRANSPILED,
    UnitStatus.EXECUTED,
]


class ScriptUnit(BaseModel):
    """One DSL script element found in the host document."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    index: int = Field(..., ge=0, description="Position in document order")
    origin: Optional[str] = Field(None, description="Remote source URL, None for inline")
    mode: ExecutionMode = Field(default=ExecutionMode.ORDERED)
    status: UnitStatus = Field(default=UnitStatus.PENDING)
    source: Optional[str] = Field(None, description="Raw DSL text once loaded")
    failed_stage: Optional[ScriptStage] = None
    error: Optional[str] = None
    element: Any = Field(default=None, exclude=True, repr=False)

    @property
    def is_remote(self) -> bool:
        return self.origin is not None

    @property
    def is_detached(self) -> bool:
        return self.mode == ExecutionMode.DETACHED

    @property
    def is_finished(self) -> bool:
        return self.status in (UnitStatus.EXECUTED, UnitStatus.FAILED)

    @property
    def origin_info(self) -> str:
        """Name used for this unit in diagnostics."""
        return self.origin if self.origin is not None else INLINE_ORIGIN

    @property
    def next_stage(self) -> ScriptStage:
        """Stage the unit would run next, used to attribute unexpected failures."""
        if self.status == UnitStatus.PENDING:
            return ScriptStage.LOAD
        if self.status == UnitStatus.LOADED:
            return ScriptStage.TRANSPILE
        return ScriptStage.EXECUTE

    def advance(self, status: UnitStatus) -> None:
        """Move the unit forward to ``status``; finished units never change."""
        if self.is_finished:
            raise ValueError(f"Unit {self.index} already finished as {self.status.value}")
        if _STATUS_ORDER.index(status) <= _STATUS_ORDER.index(self.status):
            raise ValueError(
                f"Unit {self.index} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status

    def fail(self, stage: ScriptStage, error: Optional[str] = None) -> None:
        """Mark the unit failed at ``stage``."""
        if self.is_finished:
            raise ValueError(f"Unit {self.index} already finished as {self.status.value}")
        self.status = UnitStatus.FAILED
        self.failed_stage = stage
        self.error = error


class RunReport(BaseModel):
    """Outcome of one sequencing pass over a document."""

    units: List[ScriptUnit] = Field(default_factory=list)

    @property
    def executed(self) -> int:
        return sum(1 for unit in self.units if unit.status == UnitStatus.EXECUTED)

    @property
    def failed(self) -> int:
        return sum(1 for unit in self.units if unit.status == UnitStatus.FAILED)

    @property
    def pending(self) -> int:
        return sum(1 for unit in self.units if not unit.is_finished)
