from .errors import (
    AnalysisError,
    ContractViolation,
    InvalidInput,
    InvalidTransition,
    LLMOptimizerError,
    ModelError,
    SimulationError,
    StageError,
)
from .models import (
    DEFAULT_METADATA,
    PROVIDER_NAMES,
    UNKNOWN_INTENT,
    ActionItem,
    KeywordCluster,
    ProviderInsight,
    RankingFactor,
    SimulationContract,
    SimulationData,
    StrategyReport,
)
from .telemetry import RunTelemetry, StageOutcome, StageSpan
