"""Exception types raised across Agent Pipeline."""


class AgentPipelineError(Exception):
    """Base class for all Agent Pipeline errors."""


class ConfigurationError(AgentPipelineError):
    """The generation backend cannot be used (missing credential, unknown provider)."""


class GenerationError(AgentPipelineError):
    """A single generation call failed.

    The message is meant for direct display next to the failed step.
    """


class AgentNotFoundError(AgentPipelineError, KeyError):
    """No agent with the requested id exists in the registry."""

    def __init__(self, agent_id: str):
        super().__init__(agent_id)
        self.agent_id = agent_id

    def __str__(self) -> str:
        return f"Agent {self.agent_id} not found"


class StorageError(AgentPipelineError):
    """Persisted data or a backup file could not be read or written."""
