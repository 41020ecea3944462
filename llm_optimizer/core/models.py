from datetime import datetime
from typing import Any, Dict, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Simulated sources whose internal queries are fabricated by the model
PROVIDER_NAMES = ("ChatGPT", "Gemini", "Perplexity")
ProviderName = Literal["ChatGPT", "Gemini", "Perplexity"]

PRIORITY_LITERAL = Literal["High", "Medium", "Low"]
EFFORT_LITERAL = Literal["Easy", "Medium", "Hard"]

INTERCEPTED_STATUS = "intercepted"
UNKNOWN_INTENT = "unknown"

# Filled in for any metadata signal the model leaves out
DEFAULT_METADATA: Dict[str, Union[str, int, float]] = {
    "priceSensitivity": "Medium",
    "technicalDepth": "Low",
    "reviewImportance": 50,
}

MetadataValue = Union[str, int, float]


class CamelModel(BaseModel):
    """Immutable model serialized with camelCase keys on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ==========================
# Simulation contract (what the model must return)
# ==========================
class SimulatedProvider(CamelModel):
    name: ProviderName = Field(
        ...,
        description="The simulated AI search provider. MUST be exactly one of: ChatGPT, Gemini, Perplexity."
    )
    intercepted_queries: List[str] = Field(
        default_factory=list,
        description="Hypothetical internal sub-queries this provider would issue while researching the keyword."
    )


class SimulationMetadata(CamelModel):
    price_sensitivity: str = Field(..., description="Price sensitivity of the searcher (Low, Medium, High).")
    technical_depth: str = Field(..., description="Technical depth expected by the searcher (Low, Medium, High).")
    review_importance: float = Field(..., ge=0, le=100, description="Importance of reviews and ratings (0-100).")


class SimulationContract(CamelModel):
    """Structured output of the simulation call"""
    providers: List[SimulatedProvider] = Field(
        ..., description="One entry per simulated provider with its intercepted queries."
    )
    detected_intent: str = Field(
        ..., description="The detected user intent, e.g. Transactional, Informational, Commercial."
    )
    metadata: SimulationMetadata = Field(
        ..., description="Qualitative signals the provider evaluates for this keyword."
    )


# ==========================
# Simulation record (what the stage produces)
# ==========================
class ProviderInsight(CamelModel):
    name: ProviderName
    intercepted_queries: Tuple[str, ...] = ()
    status: Literal["intercepted"] = INTERCEPTED_STATUS
    latency: int = Field(..., ge=0, description="Synthesized latency in milliseconds.")


class SimulationData(CamelModel):
    target_keyword: str
    timestamp: datetime
    providers: Tuple[ProviderInsight, ...] = ()
    detected_intent: str = UNKNOWN_INTENT
    metadata: Dict[str, MetadataValue] = Field(default_factory=lambda: dict(DEFAULT_METADATA))

    def all_queries(self) -> List[str]:
        """Every provider's intercepted queries, flattened in provider order."""
        return [q for provider in self.providers for q in provider.intercepted_queries]


# ==========================
# Analysis contract / StrategyReport
# ==========================
class RankingFactor(CamelModel):
    name: str = Field(..., description="Name of the ranking factor.")
    score: float = Field(..., ge=0, le=100, description="Weight of the factor for this keyword (0-100).")
    description: str = Field(..., description="Why this factor matters for ranking in AI answers.")


class KeywordCluster(CamelModel):
    topic: str = Field(..., description="Topic of the cluster.")
    keywords: Tuple[str, ...] = Field(..., description="Terms belonging to this topic.")


class ActionItem(CamelModel):
    title: str = Field(..., description="Short title of the action.")
    description: str = Field(..., description="What to do and how.")
    priority: PRIORITY_LITERAL = Field(..., description="MUST be exactly one of: High, Medium, Low.")
    effort: EFFORT_LITERAL = Field(..., description="MUST be exactly one of: Easy, Medium, Hard.")


class StrategyReport(CamelModel):
    """Structured output of the analysis call"""
    executive_summary: str = Field(..., min_length=1, description="Summary of the recommended strategy.")
    ranking_factors: Tuple[RankingFactor, ...] = Field(
        ..., description="5-7 signals that decide ranking in AI answers, each with a score."
    )
    keyword_clusters: Tuple[KeywordCluster, ...] = Field(
        ..., description="Discovered terms grouped into topic clusters."
    )
    action_plan: Tuple[ActionItem, ...] = Field(
        ..., description="Prioritized, actionable measures."
    )


def record_to_dict(value: Any) -> Any:
    """
    Convert a record to JSON-compatible data with camelCase keys.

    Works on models built with ``model_construct`` too, where nested values
    may still be raw dicts and required fields may be missing.
    """
    if isinstance(value, BaseModel):
        fields = type(value).model_fields
        result = {}
        for name, item in value.__dict__.items():
            field = fields.get(name)
            key = field.alias if field is not None and field.alias else name
            result[key] = record_to_dict(item)
        return result
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: record_to_dict(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [record_to_dict(v) for v in value]
    return value
