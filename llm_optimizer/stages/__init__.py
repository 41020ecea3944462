from .analysis import AnalysisStage
from .base import BaseStage, parse_json_response
from .simulation import SimulationStage

__all__ = [
    "AnalysisStage",
    "BaseStage",
    "SimulationStage",
    "parse_json_response",
]
