import json
import logging

from pydantic import ValidationError

from llm_optimizer.config import BaseStructuredLLM
from llm_optimizer.core.errors import AnalysisError, ContractViolation
from llm_optimizer.core.models import SimulationData, StrategyReport
from llm_optimizer.prompts import DEFAULT_LANGUAGE, analysis_failed_message, analysis_prompt

from .base import BaseStage, parse_json_response

logger = logging.getLogger(__name__)


class AnalysisStage(BaseStage):
    """
    Stage 2: turn a completed SimulationData into a StrategyReport.

    No field-level defaulting happens here. With ``validate_contract`` off
    (the default) a response that does not satisfy the report contract is
    logged and passed through unchecked; with it on, the violation fails
    the stage.
    """

    name = "analysis"

    def __init__(
        self,
        llm: BaseStructuredLLM,
        temperature: float = 0.5,
        language: str = DEFAULT_LANGUAGE,
        validate_contract: bool = False,
    ):
        super().__init__(llm, temperature, language)
        self.validate_contract = validate_contract

    def build_prompt(self, simulation: SimulationData) -> str:
        return analysis_prompt(self.language).format(
            keyword=simulation.target_keyword,
            queries=json.dumps(simulation.all_queries(), ensure_ascii=False),
            metadata=json.dumps(simulation.metadata, ensure_ascii=False),
        )

    async def analyze(self, simulation: SimulationData) -> StrategyReport:
        if not isinstance(simulation, SimulationData):
            raise TypeError("analyze() requires a completed SimulationData")

        prompt = self.build_prompt(simulation)
        try:
            raw = await self.llm.generate(prompt, StrategyReport, self.temperature)
            parsed = parse_json_response(raw)
        except Exception as e:
            logger.error(f"Analysis error for '{simulation.target_keyword}': {e}")
            raise AnalysisError(analysis_failed_message(self.language)) from e

        return self._to_report(parsed)

    def _to_report(self, parsed: dict) -> StrategyReport:
        try:
            report = StrategyReport.model_validate(parsed)
        except ValidationError as e:
            violation = ContractViolation(
                f"Strategy report violates its contract ({e.error_count()} error(s))",
                errors=e.errors(),
            )
            violation.__cause__ = e
            if self.validate_contract:
                logger.error(str(violation))
                raise AnalysisError(analysis_failed_message(self.language)) from violation
            logger.warning(f"{violation}; passing the response through unchecked")
            return StrategyReport.model_construct(**parsed)

        logger.info(
            f"Report ready: {len(report.ranking_factors)} ranking factor(s), "
            f"{len(report.keyword_clusters)} cluster(s), {len(report.action_plan)} action(s)"
        )
        return report
