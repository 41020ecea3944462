from .controller import WorkflowController
from .states import (
    Analyzing,
    Complete,
    Failed,
    Idle,
    Simulating,
    WorkflowSnapshot,
    WorkflowStatus,
)

__all__ = [
    "WorkflowController",
    "WorkflowSnapshot",
    "WorkflowStatus",
    "Idle",
    "Simulating",
    "Analyzing",
    "Complete",
    "Failed",
]
