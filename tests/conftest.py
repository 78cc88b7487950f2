"""Shared fixtures for Agent Pipeline tests."""

from collections.abc import Callable
from typing import Any

import pytest

from agent_pipeline.config import Settings
from agent_pipeline.errors import ConfigurationError
from agent_pipeline.models import Agent, AgentCategory
from agent_pipeline.orchestration import StepRunner, TaskExecutor
from agent_pipeline.registry import AgentRegistry
from agent_pipeline.store import JsonStore


class ScriptedClient:
    """Generation client returning canned results keyed by agent instruction.

    A value that is an exception is raised instead of returned.
    """

    def __init__(
        self,
        responses: dict[str, str | Exception] | None = None,
        configured: bool = True,
        on_call: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self.responses = responses or {}
        self.configured = configured
        self.on_call = on_call
        self.calls: list[dict[str, Any]] = []

    def check_configuration(self, model: str) -> None:
        if not self.configured:
            raise ConfigurationError("未检测到 API_KEY 环境变量")

    async def generate(self, model: str, instruction: str, prompt: str, context: str = "") -> str:
        call = {"model": model, "instruction": instruction, "prompt": prompt, "context": context}
        self.calls.append(call)
        if self.on_call is not None:
            self.on_call(call)
        result = self.responses.get(instruction, f"output of {instruction}")
        if isinstance(result, Exception):
            raise result
        return result


def make_agent(agent_id: str, name: str | None = None) -> Agent:
    return Agent(
        id=agent_id,
        name=name or agent_id.upper(),
        role="tester",
        instruction=agent_id,
        category=AgentCategory.ANALYSIS,
        priority=1,
    )


@pytest.fixture
def registry() -> AgentRegistry:
    return AgentRegistry([make_agent("a"), make_agent("b"), make_agent("c")])


@pytest.fixture
def client() -> ScriptedClient:
    return ScriptedClient()


@pytest.fixture
def executor(registry: AgentRegistry, client: ScriptedClient) -> TaskExecutor:
    return TaskExecutor(registry, StepRunner(client, model="test-model"))


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(_env_file=None, data_dir=tmp_path / "data", max_history=100)


@pytest.fixture
def store(test_settings: Settings) -> JsonStore:
    return JsonStore(test_settings.data_dir)

