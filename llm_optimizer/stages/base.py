import json
import logging
import re
from abc import ABC
from typing import Any, Dict

from llm_optimizer.config import BaseStructuredLLM
from llm_optimizer.prompts import DEFAULT_LANGUAGE, resolve_language

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


def parse_json_response(raw: str) -> Dict[str, Any]:
    """
    Parse a model response as a JSON object.

    A single surrounding markdown code fence (```json ... ```) is tolerated.
    Raises ValueError when the text is empty, not JSON, or not an object.
    """
    text = (raw or "").strip()
    match = _CODE_FENCE_RE.match(text)
    if match:
        text = match.group(1).strip()
    if not text:
        raise ValueError("Empty model response")

    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


class BaseStage(ABC):
    """One request/response exchange with the model plus its normalization."""

    name = "stage"

    def __init__(self, llm: BaseStructuredLLM, temperature: float, language: str = DEFAULT_LANGUAGE):
        self.llm = llm
        self.temperature = temperature
        self.language = resolve_language(language)
