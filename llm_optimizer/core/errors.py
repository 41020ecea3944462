"""
Exception hierarchy for the simulate-then-analyze workflow.

Stage errors carry a fixed, localized ``user_message`` that is safe to show;
the underlying cause is logged and chained, never displayed.
"""
from typing import Optional


class LLMOptimizerError(Exception):
    """Base class for all workflow errors."""


class InvalidInput(LLMOptimizerError):
    """Keyword is empty or whitespace-only."""


class ModelError(LLMOptimizerError):
    """The model capability call failed (network, auth, quota, SDK error)."""


class ContractViolation(LLMOptimizerError):
    """A parsed response does not satisfy its structured-output contract."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


class StageError(LLMOptimizerError):
    """A stage failed; ``user_message`` is what presentation shows."""

    stage = "stage"

    def __init__(self, user_message: str):
        super().__init__(user_message)
        self.user_message = user_message


class SimulationError(StageError):
    stage = "simulation"


class AnalysisError(StageError):
    stage = "analysis"


class InvalidTransition(LLMOptimizerError):
    """A controller operation was called from a state that does not accept it."""

    def __init__(self, operation: str, status: str):
        super().__init__(f"Cannot {operation} while workflow is {status}")
        self.operation = operation
        self.status = status
