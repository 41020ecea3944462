import asyncio
import json

from llm_optimizer.core.errors import ModelError
from llm_optimizer.utils.storage import DataSaver
from llm_optimizer.workflow import WorkflowSnapshot, WorkflowStatus


def test_save_run_writes_snapshot_and_telemetry(tmp_path, make_controller, crm_simulation_json, crm_report_json):
    controller, _ = make_controller([crm_simulation_json, crm_report_json])
    snapshot = asyncio.run(controller.start("CRM software"))

    saver = DataSaver(str(tmp_path / "runs"))
    path = saver.save_run(snapshot, controller.telemetry)

    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    assert payload["status"] == "complete"
    assert payload["simulation"]["targetKeyword"] == "CRM software"
    assert payload["simulation"]["providers"][0]["status"] == "intercepted"
    assert payload["report"]["actionPlan"][0]["effort"] == "Easy"
    assert [s["stage"] for s in payload["telemetry"]["spans"]] == ["simulation", "analysis"]


def test_save_run_of_failed_run_has_no_partial_results(tmp_path, make_controller, crm_simulation_json):
    controller, _ = make_controller([crm_simulation_json, ModelError("down")])
    snapshot = asyncio.run(controller.start("CRM software"))

    path = DataSaver(str(tmp_path)).save_run(snapshot)
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    assert payload["status"] == "error"
    assert payload["simulation"] is None
    assert payload["report"] is None
    assert payload["error"]


def test_save_run_skips_idle_snapshot(tmp_path):
    saver = DataSaver(str(tmp_path))
    assert saver.save_run(WorkflowSnapshot(status=WorkflowStatus.IDLE)) is None
