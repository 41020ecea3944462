import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from llm_optimizer.config import BaseStructuredLLM
from llm_optimizer.core.errors import InvalidInput, SimulationError
from llm_optimizer.core.models import (
    DEFAULT_METADATA,
    PROVIDER_NAMES,
    UNKNOWN_INTENT,
    MetadataValue,
    ProviderInsight,
    SimulatedProvider,
    SimulationContract,
    SimulationData,
)
from llm_optimizer.prompts import DEFAULT_LANGUAGE, simulation_failed_message, simulation_prompt

from .base import BaseStage, parse_json_response

logger = logging.getLogger(__name__)

DEFAULT_LATENCY_RANGE = (100, 499)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SimulationStage(BaseStage):
    """
    Stage 1: synthesize intercepted provider queries for a keyword.

    The model only supplies providers, queries, intent and metadata. The
    timestamp, latencies and status tags are assigned here, and every
    missing or malformed top-level field is replaced by its default.
    """

    name = "simulation"

    def __init__(
        self,
        llm: BaseStructuredLLM,
        temperature: float = 0.7,
        language: str = DEFAULT_LANGUAGE,
        providers: Sequence[str] = PROVIDER_NAMES,
        latency_range: Tuple[int, int] = DEFAULT_LATENCY_RANGE,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(llm, temperature, language)
        unknown = [p for p in providers if p not in PROVIDER_NAMES]
        if unknown or not providers:
            raise ValueError(f"Providers must be a non-empty subset of {PROVIDER_NAMES}, got {list(providers)}")
        low, high = latency_range
        if low < 0 or high < low:
            raise ValueError(f"Invalid latency range: {latency_range}")
        self.providers = tuple(providers)
        self.latency_range = (int(low), int(high))
        self._rng = rng or random.Random()
        self._clock = clock or _utcnow

    def build_prompt(self, keyword: str) -> str:
        return simulation_prompt(self.language).format(
            keyword=keyword,
            providers=", ".join(self.providers),
        )

    async def simulate(self, keyword: str) -> SimulationData:
        keyword = (keyword or "").strip()
        if not keyword:
            raise InvalidInput("Keyword must not be empty")

        prompt = self.build_prompt(keyword)
        try:
            raw = await self.llm.generate(prompt, SimulationContract, self.temperature)
            parsed = parse_json_response(raw)
        except Exception as e:
            logger.error(f"Simulation error for '{keyword}': {e}")
            raise SimulationError(simulation_failed_message(self.language)) from e

        data = self.normalize(keyword, parsed)
        logger.info(
            f"Simulated {len(data.providers)} provider(s), "
            f"{len(data.all_queries())} queries, intent '{data.detected_intent}'"
        )
        return data

    # ----------------------------------------------------------------
    # Normalization
    # ----------------------------------------------------------------

    def normalize(self, keyword: str, parsed: Dict[str, Any]) -> SimulationData:
        return SimulationData(
            target_keyword=keyword,
            timestamp=self._clock(),
            providers=tuple(self._normalize_providers(parsed.get("providers"))),
            detected_intent=self._normalize_intent(parsed.get("detectedIntent")),
            metadata=self._normalize_metadata(parsed.get("metadata")),
        )

    def _synthesize_latency(self) -> int:
        low, high = self.latency_range
        return self._rng.randint(low, high)

    def _normalize_providers(self, raw: Any) -> List[ProviderInsight]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning(f"Malformed 'providers' ({type(raw).__name__}), using empty list")
            return []

        insights = []
        for entry in raw:
            try:
                provider = SimulatedProvider.model_validate(entry)
            except ValidationError as e:
                # Contract violation: an unknown name is dropped, never renamed.
                logger.warning(f"Dropping provider entry that violates the contract: {entry!r} ({e.error_count()} error(s))")
                continue
            insights.append(ProviderInsight(
                name=provider.name,
                intercepted_queries=tuple(provider.intercepted_queries),
                latency=self._synthesize_latency(),
            ))
        return insights

    @staticmethod
    def _normalize_intent(raw: Any) -> str:
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
        return UNKNOWN_INTENT

    @staticmethod
    def _normalize_metadata(raw: Any) -> Dict[str, MetadataValue]:
        metadata = dict(DEFAULT_METADATA)
        if raw is None:
            return metadata
        if not isinstance(raw, dict):
            logger.warning(f"Malformed 'metadata' ({type(raw).__name__}), using defaults")
            return metadata

        for key, value in raw.items():
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                continue
            if isinstance(value, str) and not value.strip():
                continue
            metadata[key] = value
        return metadata
