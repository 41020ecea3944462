"""
Workflow controller: sequences Simulation -> Analysis for one keyword.

States: Idle -> Simulating -> Analyzing -> Complete, with Error reachable
from either running state and reset() leading back to Idle. At most one
model call is outstanding at any time; Analysis only ever runs on the
SimulationData produced earlier in the same run.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, TypeVar

from llm_optimizer.config import (
    DEFAULT_CONFIG_PATH,
    BaseStructuredLLM,
    LLMTask,
    get_analysis_config,
    get_llm_from_config,
    get_task_temperature,
    get_workflow_config,
    load_config,
)
from llm_optimizer.core.errors import InvalidTransition, StageError
from llm_optimizer.core.models import PROVIDER_NAMES
from llm_optimizer.core.telemetry import RunTelemetry, StageOutcome, StageSpan
from llm_optimizer.prompts import DEFAULT_LANGUAGE, unknown_error_message
from llm_optimizer.stages import AnalysisStage, SimulationStage
from llm_optimizer.stages.simulation import DEFAULT_LATENCY_RANGE

from .states import IN_PROGRESS, Analyzing, Complete, Failed, Idle, Simulating, WorkflowSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")
Listener = Callable[[WorkflowSnapshot], None]


class WorkflowController:
    def __init__(self, simulation_stage: SimulationStage, analysis_stage: AnalysisStage):
        self.simulation_stage = simulation_stage
        self.analysis_stage = analysis_stage
        self.language = simulation_stage.language
        self.telemetry = RunTelemetry()
        self._state = Idle()
        self._listeners: List[Listener] = []

    @classmethod
    def from_config(
        cls,
        config_path: str = DEFAULT_CONFIG_PATH,
        llm: Optional[BaseStructuredLLM] = None,
        language: Optional[str] = None,
    ) -> "WorkflowController":
        """Build both stages from config.yaml; ``llm`` overrides the configured provider."""
        config = load_config(config_path)
        workflow_config = get_workflow_config(config)
        analysis_config = get_analysis_config(config)

        llm = llm or get_llm_from_config(config_path)
        language = language or workflow_config.get('language', DEFAULT_LANGUAGE)
        latency_range = (
            workflow_config.get('latency_min_ms', DEFAULT_LATENCY_RANGE[0]),
            workflow_config.get('latency_max_ms', DEFAULT_LATENCY_RANGE[1]),
        )

        simulation_stage = SimulationStage(
            llm,
            temperature=get_task_temperature(config, LLMTask.SIMULATION),
            language=language,
            providers=workflow_config.get('providers') or PROVIDER_NAMES,
            latency_range=latency_range,
        )
        analysis_stage = AnalysisStage(
            llm,
            temperature=get_task_temperature(config, LLMTask.ANALYSIS),
            language=language,
            validate_contract=bool(analysis_config.get('validate_contract', False)),
        )
        return cls(simulation_stage, analysis_stage)

    # ----------------------------------------------------------------
    # Read-only access
    # ----------------------------------------------------------------

    @property
    def state(self):
        return self._state

    @property
    def snapshot(self) -> WorkflowSnapshot:
        return WorkflowSnapshot.of(self._state)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot after every transition. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ----------------------------------------------------------------
    # Transitions
    # ----------------------------------------------------------------

    def _transition(self, new_state) -> None:
        logger.info(f"Workflow: {self._state.status.value} -> {new_state.status.value}")
        self._state = new_state
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Workflow listener {listener!r} failed")

    async def _timed(self, stage: str, call: Awaitable[T]) -> T:
        started = time.perf_counter()
        try:
            result = await call
        except Exception as e:
            self.telemetry.record(StageSpan(
                stage=stage,
                outcome=StageOutcome.FAILED,
                duration_ms=(time.perf_counter() - started) * 1000,
                error_message=str(e),
            ))
            raise
        self.telemetry.record(StageSpan(
            stage=stage,
            outcome=StageOutcome.SUCCESS,
            duration_ms=(time.perf_counter() - started) * 1000,
        ))
        return result

    def _fail(self, keyword: str, stage: str, error: Exception, partial_simulation=None) -> None:
        if isinstance(error, StageError):
            message = error.user_message
        else:
            logger.exception(f"Unexpected error during {stage}")
            message = unknown_error_message(self.language)
        self._transition(Failed(
            keyword=keyword,
            message=message,
            stage=stage,
            partial_simulation=partial_simulation,
        ))

    async def start(self, keyword: str) -> WorkflowSnapshot:
        """
        Run one keyword through Simulation then Analysis.

        An empty or whitespace-only keyword is a no-op. Starting from any
        state other than Idle raises InvalidTransition; call reset() first.
        Stage failures end the run in the Error state rather than raising.
        """
        keyword = (keyword or "").strip()
        if not keyword:
            logger.debug("Ignoring start with empty keyword")
            return self.snapshot
        if not isinstance(self._state, Idle):
            raise InvalidTransition("start", self._state.status.value)

        self.telemetry = RunTelemetry(keyword)
        self._transition(Simulating(keyword=keyword))

        try:
            simulation = await self._timed(
                self.simulation_stage.name, self.simulation_stage.simulate(keyword)
            )
        except Exception as e:
            self._fail(keyword, self.simulation_stage.name, e)
            return self.snapshot

        self._transition(Analyzing(keyword=keyword, simulation=simulation))

        try:
            report = await self._timed(
                self.analysis_stage.name, self.analysis_stage.analyze(simulation)
            )
        except Exception as e:
            self._fail(keyword, self.analysis_stage.name, e, partial_simulation=simulation)
            return self.snapshot

        self._transition(Complete(keyword=keyword, simulation=simulation, report=report))
        return self.snapshot

    def run(self, keyword: str) -> WorkflowSnapshot:
        """Synchronous entry point for scripts: drives start() on a fresh event loop."""
        return asyncio.run(self.start(keyword))

    def reset(self) -> WorkflowSnapshot:
        """Discard keyword, records and error and return to Idle. Idempotent from Idle."""
        if isinstance(self._state, IN_PROGRESS):
            raise InvalidTransition("reset", self._state.status.value)
        if isinstance(self._state, Idle):
            return self.snapshot
        self.telemetry = RunTelemetry()
        self._transition(Idle())
        return self.snapshot
