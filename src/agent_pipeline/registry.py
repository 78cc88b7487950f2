"""In-memory registry of agent definitions."""

import logging
import uuid
from collections.abc import Iterable

from agent_pipeline.errors import AgentNotFoundError
from agent_pipeline.models import Agent, AgentCategory


logger = logging.getLogger(__name__)


DEFAULT_AGENTS: list[Agent] = [
    Agent(
        id="agent-1",
        name="代码审计专家",
        role="安全分析师",
        instruction="你是一名资深代码审计专家。请分析用户提供的代码，识别潜在的安全漏洞和性能瓶颈。",
        category=AgentCategory.ANALYSIS,
        priority=1,
    ),
    Agent(
        id="agent-2",
        name="逻辑架构师",
        role="系统设计",
        instruction="你负责将需求转化为清晰的技术架构逻辑。请给出模块化设计的具体建议。",
        category=AgentCategory.EXECUTION,
        priority=2,
    ),
    Agent(
        id="agent-3",
        name="质量保障官",
        role="测试开发",
        instruction="你负责对前序输出进行验证。请评估生成内容的逻辑严密性并输出测试方案。",
        category=AgentCategory.VERIFICATION,
        priority=3,
    ),
]


class AgentRegistry:
    """Ordered collection of agents keyed by id.

    The executor only reads from it through ``get``. Editing goes through
    the platform facade, which also persists the result.
    """

    def __init__(self, agents: Iterable[Agent] | None = None) -> None:
        self._agents: dict[str, Agent] = {}
        if agents is not None:
            self.replace_all(agents)

    @classmethod
    def with_defaults(cls) -> "AgentRegistry":
        return cls(agent.model_copy(deep=True) for agent in DEFAULT_AGENTS)

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def all(self) -> list[Agent]:
        return list(self._agents.values())

    def get(self, agent_id: str) -> Agent | None:
        """Look up an agent, returning None for dangling references."""
        return self._agents.get(agent_id)

    def require(self, agent_id: str) -> Agent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    def save(self, agent: Agent) -> bool:
        """Create or replace an agent. Returns True when it was newly created."""
        created = agent.id not in self._agents
        self._agents[agent.id] = agent
        logger.debug("%s agent %s (%s)", "Created" if created else "Updated", agent.id, agent.name)
        return created

    def delete(self, agent_id: str) -> Agent:
        """Remove an agent. Steps in history keep referring to its id."""
        agent = self._agents.pop(agent_id, None)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent

    def copy(self, agent_id: str) -> Agent:
        source = self.require(agent_id)
        duplicate = source.model_copy(
            update={"id": str(uuid.uuid4()), "name": f"{source.name} (副本)"},
            deep=True,
        )
        self._agents[duplicate.id] = duplicate
        return duplicate

    def replace_all(self, agents: Iterable[Agent]) -> None:
        self._agents = {agent.id: agent for agent in agents}
