import asyncio
from datetime import datetime, timedelta

import pytest

from conftest import CRM_REPORT, CRM_SIMULATION, ScriptedLLM, _json
from llm_optimizer.config import BaseStructuredLLM
from llm_optimizer.core.errors import InvalidTransition, ModelError
from llm_optimizer.core.telemetry import StageOutcome
from llm_optimizer.prompts import ANALYSIS_FAILED_MESSAGES, SIMULATION_FAILED_MESSAGES, UNKNOWN_ERROR_MESSAGES
from llm_optimizer.stages import AnalysisStage, SimulationStage
from llm_optimizer.workflow import Failed, Idle, WorkflowController, WorkflowSnapshot, WorkflowStatus


def _start(controller, keyword):
    return asyncio.run(controller.start(keyword))


def _assert_initial(snapshot):
    assert snapshot == WorkflowSnapshot(status=WorkflowStatus.IDLE)


def test_successful_run_ends_complete(make_controller, crm_simulation_json, crm_report_json):
    controller, llm = make_controller([crm_simulation_json, crm_report_json])
    seen = []
    controller.subscribe(lambda snap: seen.append(snap.status))

    snapshot = _start(controller, "CRM software")

    assert snapshot.status == WorkflowStatus.COMPLETE
    assert snapshot.keyword == "CRM software"
    assert snapshot.simulation.target_keyword == "CRM software"
    assert snapshot.simulation.providers[0].status == "intercepted"
    assert 100 <= snapshot.simulation.providers[0].latency <= 499
    assert snapshot.simulation.detected_intent == "transactional"
    assert snapshot.report.ranking_factors[0].score == 88
    assert snapshot.error is None
    assert seen == [WorkflowStatus.SIMULATING, WorkflowStatus.ANALYZING, WorkflowStatus.COMPLETE]
    assert len(llm.calls) == 2


@pytest.mark.parametrize("keyword", ["", "   ", "\n\t", None])
def test_empty_keyword_is_a_no_op(make_controller, keyword):
    controller, llm = make_controller([])
    seen = []
    controller.subscribe(seen.append)

    snapshot = _start(controller, keyword)

    _assert_initial(snapshot)
    assert isinstance(controller.state, Idle)
    assert llm.calls == []
    assert seen == []


def test_keyword_is_trimmed(make_controller, crm_simulation_json, crm_report_json):
    controller, _ = make_controller([crm_simulation_json, crm_report_json])
    snapshot = _start(controller, "  CRM software  ")
    assert snapshot.keyword == "CRM software"
    assert snapshot.simulation.target_keyword == "CRM software"


def test_reset_from_complete_restores_initial_fields(make_controller, crm_simulation_json, crm_report_json):
    controller, _ = make_controller([crm_simulation_json, crm_report_json])
    _start(controller, "CRM software")

    _assert_initial(controller.reset())
    # Idempotent from Idle
    _assert_initial(controller.reset())
    assert controller.telemetry.spans == []


def test_simulation_failure_ends_in_error(make_controller):
    controller, llm = make_controller([ModelError("network down")])
    snapshot = _start(controller, "CRM software")

    assert snapshot.status == WorkflowStatus.ERROR
    assert snapshot.error == SIMULATION_FAILED_MESSAGES["en"]
    assert snapshot.simulation is None
    assert snapshot.report is None
    assert controller.state.stage == "simulation"
    assert controller.state.partial_simulation is None
    assert len(llm.calls) == 1


def test_analysis_failure_does_not_promote_the_simulation(make_controller, crm_simulation_json):
    controller, llm = make_controller([crm_simulation_json, ModelError("rate limited")])
    seen = []
    controller.subscribe(lambda snap: seen.append(snap.status))

    snapshot = _start(controller, "CRM software")

    assert snapshot.status == WorkflowStatus.ERROR
    assert snapshot.error == ANALYSIS_FAILED_MESSAGES["en"]
    assert snapshot.simulation is None
    assert snapshot.report is None
    assert seen == [WorkflowStatus.SIMULATING, WorkflowStatus.ANALYZING, WorkflowStatus.ERROR]

    state = controller.state
    assert isinstance(state, Failed)
    assert state.stage == "analysis"
    assert state.partial_simulation.target_keyword == "CRM software"


def test_reset_from_error_then_retry(make_controller, crm_simulation_json, crm_report_json):
    controller, _ = make_controller([ModelError("boom"), crm_simulation_json, crm_report_json])
    assert _start(controller, "CRM software").status == WorkflowStatus.ERROR

    _assert_initial(controller.reset())
    assert _start(controller, "CRM software").status == WorkflowStatus.COMPLETE


def test_start_from_a_terminal_state_requires_reset(make_controller, crm_simulation_json, crm_report_json):
    controller, llm = make_controller([crm_simulation_json, crm_report_json])
    _start(controller, "CRM software")

    with pytest.raises(InvalidTransition):
        _start(controller, "another keyword")
    assert controller.snapshot.status == WorkflowStatus.COMPLETE
    assert len(llm.calls) == 2


class ReentrantLLM(BaseStructuredLLM):
    """Tries to start/reset the controller while its own call is pending."""

    def __init__(self, responses):
        super().__init__("reentrant")
        self.responses = list(responses)
        self.controller = None
        self.errors = []

    async def generate(self, prompt, contract, temperature):
        try:
            await self.controller.start("second keyword")
        except InvalidTransition as e:
            self.errors.append(("start", e.status))
        try:
            self.controller.reset()
        except InvalidTransition as e:
            self.errors.append(("reset", e.status))
        return self.responses.pop(0)


def test_start_and_reset_are_rejected_while_a_run_is_in_progress():
    llm = ReentrantLLM([_json(CRM_SIMULATION), _json(CRM_REPORT)])
    controller = WorkflowController(SimulationStage(llm), AnalysisStage(llm))
    llm.controller = controller

    snapshot = _start(controller, "CRM software")

    assert snapshot.status == WorkflowStatus.COMPLETE
    assert snapshot.keyword == "CRM software"
    assert llm.errors == [
        ("start", "simulating"), ("reset", "simulating"),
        ("start", "analyzing"), ("reset", "analyzing"),
    ]


def test_unexpected_stage_exception_maps_to_unknown_error(make_controller, monkeypatch):
    controller, _ = make_controller([])

    async def broken_simulate(keyword):
        raise KeyError("unexpected")

    monkeypatch.setattr(controller.simulation_stage, "simulate", broken_simulate)
    snapshot = _start(controller, "CRM software")

    assert snapshot.status == WorkflowStatus.ERROR
    assert snapshot.error == UNKNOWN_ERROR_MESSAGES["en"]


def test_telemetry_records_one_span_per_stage(make_controller, crm_simulation_json):
    controller, _ = make_controller([crm_simulation_json, ModelError("down")])
    _start(controller, "CRM software")

    spans = controller.telemetry.spans
    assert [s.stage for s in spans] == ["simulation", "analysis"]
    assert [s.outcome for s in spans] == [StageOutcome.SUCCESS, StageOutcome.FAILED]
    assert spans[1].error_message == ANALYSIS_FAILED_MESSAGES["en"]
    assert controller.telemetry.to_dict()["summary"]["failed_stages"] == ["analysis"]


def test_span_timestamps_are_utc_like_simulation_timestamps(make_controller, crm_simulation_json,
                                                             crm_report_json):
    controller, _ = make_controller([crm_simulation_json, crm_report_json])
    snapshot = _start(controller, "CRM software")

    assert snapshot.simulation.timestamp.utcoffset() == timedelta(0)
    for span in controller.telemetry.spans:
        assert datetime.fromisoformat(span.timestamp).utcoffset() == timedelta(0)


def test_listener_errors_do_not_break_the_run(make_controller, crm_simulation_json, crm_report_json):
    controller, _ = make_controller([crm_simulation_json, crm_report_json])

    def bad_listener(snapshot):
        raise RuntimeError("render failed")

    controller.subscribe(bad_listener)
    assert _start(controller, "CRM software").status == WorkflowStatus.COMPLETE


def test_unsubscribe_stops_notifications(make_controller, crm_simulation_json, crm_report_json):
    controller, _ = make_controller([crm_simulation_json, crm_report_json])
    seen = []
    unsubscribe = controller.subscribe(seen.append)
    unsubscribe()
    _start(controller, "CRM software")
    assert seen == []


def test_run_is_a_synchronous_wrapper(make_controller, crm_simulation_json, crm_report_json):
    controller, _ = make_controller([crm_simulation_json, crm_report_json])
    assert controller.run("CRM software").status == WorkflowStatus.COMPLETE


def test_german_error_message(make_controller):
    controller, _ = make_controller([ModelError("boom")], language="de")
    assert _start(controller, "CRM Software").error == "Fehler bei der Simulation des Netzwerkverkehrs."


def test_from_config_wires_both_stages(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "llm:\n"
        "  provider: openai\n"
        "  model: gpt-4.1-mini\n"
        "llm_tasks:\n"
        "  simulation:\n"
        "    temperature: 0.9\n"
        "workflow:\n"
        "  language: de\n"
        "  providers: [Gemini]\n"
        "  latency_min_ms: 10\n"
        "  latency_max_ms: 20\n"
        "analysis:\n"
        "  validate_contract: true\n",
        encoding="utf-8",
    )
    llm = ScriptedLLM([])
    controller = WorkflowController.from_config(str(config_file), llm=llm)

    assert controller.simulation_stage.llm is llm
    assert controller.simulation_stage.temperature == 0.9
    assert controller.analysis_stage.temperature == 0.5
    assert controller.simulation_stage.providers == ("Gemini",)
    assert controller.simulation_stage.latency_range == (10, 20)
    assert controller.analysis_stage.validate_contract is True
    assert controller.language == "de"

    override = WorkflowController.from_config(str(config_file), llm=llm, language="en")
    assert override.analysis_stage.language == "en"
