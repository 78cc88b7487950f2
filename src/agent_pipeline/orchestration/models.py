"""Models for orchestration."""

from pydantic import BaseModel

from agent_pipeline.models import WorkflowTask


class StepOutcome(BaseModel):
    """Result of running one step: exactly one of output or error is set."""

    output: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ExecutionResult(BaseModel):
    """Finished task together with how the run ended."""

    task: WorkflowTask
    cancelled: bool = False
    context: str = ""
