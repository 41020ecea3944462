"""
Workflow state values.

Each run state is an immutable value; the controller replaces its current
state only through named transitions. A run in progress (Simulating,
Analyzing) is a distinct variant from Idle, so a second start is rejected.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from llm_optimizer.core.models import SimulationData, StrategyReport, record_to_dict


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    SIMULATING = "simulating"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class Idle:
    status = WorkflowStatus.IDLE


@dataclass(frozen=True)
class Simulating:
    keyword: str
    status = WorkflowStatus.SIMULATING


@dataclass(frozen=True)
class Analyzing:
    keyword: str
    simulation: SimulationData
    status = WorkflowStatus.ANALYZING


@dataclass(frozen=True)
class Complete:
    keyword: str
    simulation: SimulationData
    report: StrategyReport
    status = WorkflowStatus.COMPLETE


@dataclass(frozen=True)
class Failed:
    keyword: str
    message: str
    stage: str
    # Kept for internal inspection only; never exposed through a snapshot.
    partial_simulation: Optional[SimulationData] = None
    status = WorkflowStatus.ERROR


IN_PROGRESS = (Simulating, Analyzing)


@dataclass(frozen=True)
class WorkflowSnapshot:
    """Read-only view handed to presentation."""
    status: WorkflowStatus
    keyword: Optional[str] = None
    simulation: Optional[SimulationData] = None
    report: Optional[StrategyReport] = None
    error: Optional[str] = None

    @property
    def is_busy(self) -> bool:
        return self.status in (WorkflowStatus.SIMULATING, WorkflowStatus.ANALYZING)

    @classmethod
    def of(cls, state) -> "WorkflowSnapshot":
        if isinstance(state, Idle):
            return cls(status=state.status)
        if isinstance(state, Simulating):
            return cls(status=state.status, keyword=state.keyword)
        if isinstance(state, Analyzing):
            return cls(status=state.status, keyword=state.keyword, simulation=state.simulation)
        if isinstance(state, Complete):
            return cls(status=state.status, keyword=state.keyword,
                       simulation=state.simulation, report=state.report)
        if isinstance(state, Failed):
            return cls(status=state.status, keyword=state.keyword, error=state.message)
        raise TypeError(f"Unknown workflow state: {state!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "keyword": self.keyword,
            "simulation": record_to_dict(self.simulation) if self.simulation is not None else None,
            "report": record_to_dict(self.report) if self.report is not None else None,
            "error": self.error,
        }
