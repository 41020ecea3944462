import json
import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Optional, Type

import yaml
from dotenv import load_dotenv
from langchain_core.output_parsers import PydanticOutputParser
from pydantic import BaseModel

from llm_optimizer.core.errors import ModelError


load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"


class LLMTask(str, Enum):
    """LLM task type enumeration"""
    SIMULATION = "simulation"  # Intercepted traffic synthesis
    ANALYSIS = "analysis"      # Strategy report generation


# Used when neither llm_tasks.{task} nor llm sets a temperature
DEFAULT_TASK_TEMPERATURES = {
    LLMTask.SIMULATION: 0.7,
    LLMTask.ANALYSIS: 0.5,
}


def load_config(config_path=DEFAULT_CONFIG_PATH):
    # Try to open directly
    if os.path.exists(config_path):
        with open(config_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    # Try to load from package directory
    package_dir = Path(__file__).parent
    alt_path = package_dir / Path(config_path).name
    if alt_path.exists():
        with open(alt_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    # Try to load from project root directory
    repo_root = package_dir.parent
    alt_path2 = repo_root / config_path
    if alt_path2.exists():
        with open(alt_path2, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    raise FileNotFoundError(f"Config file not found: {config_path}")


def get_task_temperature(config: dict, task: LLMTask) -> float:
    """
    Resolve the sampling temperature for a task.

    Priority: llm_tasks.{task}.temperature > llm.temperature > DEFAULT_TASK_TEMPERATURES
    """
    task_config = (config.get('llm_tasks') or {}).get(task.value) or {}
    if task_config.get('temperature') is not None:
        return float(task_config['temperature'])
    llm_config = config.get('llm') or {}
    if llm_config.get('temperature') is not None:
        return float(llm_config['temperature'])
    return DEFAULT_TASK_TEMPERATURES[task]


def get_workflow_config(config: dict) -> dict:
    return config.get('workflow') or {}


def get_analysis_config(config: dict) -> dict:
    return config.get('analysis') or {}


def _format_instructions(contract: Type[BaseModel]) -> str:
    parser = PydanticOutputParser(pydantic_object=contract)
    return parser.get_format_instructions()


def build_structured_prompt(prompt: str, contract: Type[BaseModel]) -> str:
    """Append the contract's JSON schema instructions to a prompt."""
    return f"{prompt.strip()}\n\n{_format_instructions(contract)}"


class BaseStructuredLLM(ABC):
    """
    Model capability shared by both stages.

    Given a prompt and a contract, returns the raw response text, which is
    expected to be JSON conforming to the contract. Implementations raise
    ModelError when the call itself fails; they never parse the response.
    """

    provider = "base"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    async def generate(self, prompt: str, contract: Type[BaseModel], temperature: float) -> str:
        pass

    def __repr__(self):
        return f"{type(self).__name__}(model={self.model!r})"


class OpenAIStructuredLLM(BaseStructuredLLM):
    """OpenAI SDK wrapper using JSON response mode."""

    provider = "openai"

    def __init__(self, model: str, api_key: Optional[str] = None):
        super().__init__(model)
        self.api_key = api_key

    async def generate(self, prompt, contract, temperature):
        from openai import AsyncOpenAI

        client = AsyncOpenAI(api_key=self.api_key)
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                response_format={"type": "json_object"},
                messages=[{"role": "user", "content": build_structured_prompt(prompt, contract)}],
            )
        except Exception as e:
            raise ModelError(f"OpenAI call failed: {e}") from e
        return (resp.choices[0].message.content or "").strip()


class AnthropicStructuredLLM(BaseStructuredLLM):
    """Anthropic SDK wrapper; JSON shape is enforced through the prompt only."""

    provider = "anthropic"

    def __init__(self, model: str, api_key: Optional[str] = None, max_tokens: int = 4096):
        super().__init__(model)
        self.api_key = api_key
        self.max_tokens = max_tokens

    async def generate(self, prompt, contract, temperature):
        from anthropic import AsyncAnthropic

        client = AsyncAnthropic(api_key=self.api_key)
        try:
            resp = await client.messages.create(
                model=self.model,
                temperature=temperature,
                max_tokens=self.max_tokens,
                system="Respond with a single JSON object and nothing else.",
                messages=[{"role": "user", "content": build_structured_prompt(prompt, contract)}],
            )
        except Exception as e:
            raise ModelError(f"Anthropic call failed: {e}") from e
        return "".join([block.text for block in resp.content if getattr(block, "type", "") == "text"]).strip()


class GeminiStructuredLLM(BaseStructuredLLM):
    """Gemini SDK wrapper using the application/json response MIME type."""

    provider = "gemini"

    def __init__(self, model: str, api_key: Optional[str] = None):
        super().__init__(model)
        self.api_key = api_key

    def _generate_sync(self, prompt, contract, temperature):
        import google.generativeai as genai

        if self.api_key:
            genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(self.model)
        resp = model.generate_content(
            build_structured_prompt(prompt, contract),
            generation_config={
                "temperature": temperature,
                "response_mime_type": "application/json",
            },
        )
        return (getattr(resp, "text", "") or "").strip()

    async def generate(self, prompt, contract, temperature):
        # google.generativeai is synchronous; run it on a worker thread.
        import asyncio

        try:
            return await asyncio.to_thread(self._generate_sync, prompt, contract, temperature)
        except Exception as e:
            raise ModelError(f"Gemini call failed: {e}") from e


# Environment variables holding the credential for each provider, in lookup order
API_KEY_ENV_VARS = {
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
}


def get_api_key(provider: str) -> Optional[str]:
    for var in API_KEY_ENV_VARS.get(provider, ()):
        value = os.getenv(var)
        if value:
            return value
    logger.warning(f"No API key found for provider '{provider}' (checked {', '.join(API_KEY_ENV_VARS.get(provider, ()))})")
    return None


def get_llm_from_config(config_path=DEFAULT_CONFIG_PATH) -> BaseStructuredLLM:
    """Read LLM configuration from config.yaml and return a client with a `.generate` interface."""
    config = load_config(config_path)
    llm_config = config.get('llm', {})
    provider = llm_config.get('provider', 'gemini')
    model_name = llm_config.get('model', 'gemini-2.0-flash')

    if provider == 'openai':
        return OpenAIStructuredLLM(model=model_name, api_key=get_api_key(provider))
    elif provider == 'anthropic':
        return AnthropicStructuredLLM(model=model_name, api_key=get_api_key(provider))
    elif provider == 'gemini':
        return GeminiStructuredLLM(model=model_name, api_key=get_api_key(provider))
    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")


def dump_config(config: dict) -> str:
    """Render a config for debug logging with nothing secret in it."""
    return json.dumps(config, indent=2, ensure_ascii=False, default=str)
