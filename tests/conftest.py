import json
import os
import random
import sys
from datetime import datetime, timezone

import pytest

# Ensure the package is importable without installation
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from llm_optimizer.config import BaseStructuredLLM
from llm_optimizer.stages import AnalysisStage, SimulationStage
from llm_optimizer.workflow import WorkflowController


FIXED_NOW = datetime(2024, 5, 5, 12, 0, tzinfo=timezone.utc)


def _json(payload):
    return json.dumps(payload, ensure_ascii=False)


class ScriptedLLM(BaseStructuredLLM):
    """Returns canned responses in order; Exception entries are raised instead."""

    provider = "scripted"

    def __init__(self, responses=None):
        super().__init__("scripted-model")
        self.responses = list(responses or [])
        self.calls = []

    async def generate(self, prompt, contract, temperature):
        self.calls.append({"prompt": prompt, "contract": contract, "temperature": temperature})
        if not self.responses:
            raise AssertionError("ScriptedLLM ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


CRM_SIMULATION = {
    "providers": [
        {"name": "ChatGPT", "interceptedQueries": ["best CRM for small teams"]},
    ],
    "detectedIntent": "transactional",
    "metadata": {"priceSensitivity": "Medium", "technicalDepth": "Low", "reviewImportance": 70},
}

CRM_REPORT = {
    "executiveSummary": "Win AI answers by publishing transparent pricing and comparison pages.",
    "rankingFactors": [
        {"name": "Pricing transparency", "score": 88, "description": "Models quote prices verbatim."},
        {"name": "Review volume", "score": 70, "description": "Ratings are cited as social proof."},
    ],
    "keywordClusters": [
        {"topic": "Small business", "keywords": ["best CRM for small teams", "cheap CRM"]},
    ],
    "actionPlan": [
        {"title": "Publish a pricing page", "description": "List every tier.", "priority": "High", "effort": "Easy"},
    ],
}


@pytest.fixture
def crm_simulation_json():
    return _json(CRM_SIMULATION)


@pytest.fixture
def crm_report_json():
    return _json(CRM_REPORT)


@pytest.fixture
def make_controller():
    """Build a controller around a ScriptedLLM; returns (controller, llm)."""

    def _make(responses, language="en", validate_contract=False):
        llm = ScriptedLLM(responses)
        simulation = SimulationStage(
            llm,
            language=language,
            rng=random.Random(7),
            clock=lambda: FIXED_NOW,
        )
        analysis = AnalysisStage(llm, language=language, validate_contract=validate_contract)
        return WorkflowController(simulation, analysis), llm

    return _make
