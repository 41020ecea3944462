"""
LLM-Optimizer

Simulates the internal search traffic of AI assistants for a keyword and
turns it into an LLM-SEO strategy report.
"""
from .core.errors import (
    AnalysisError,
    ContractViolation,
    InvalidInput,
    InvalidTransition,
    ModelError,
    SimulationError,
)
from .core.models import SimulationData, StrategyReport
from .stages import AnalysisStage, SimulationStage
from .workflow import WorkflowController, WorkflowSnapshot, WorkflowStatus

__all__ = [
    "AnalysisError",
    "AnalysisStage",
    "ContractViolation",
    "InvalidInput",
    "InvalidTransition",
    "ModelError",
    "SimulationData",
    "SimulationError",
    "SimulationStage",
    "StrategyReport",
    "WorkflowController",
    "WorkflowSnapshot",
    "WorkflowStatus",
]
