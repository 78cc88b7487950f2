"""Domain models for agents, pipeline steps and workflow tasks."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


def _short_id() -> str:
    return uuid.uuid4().hex[:9]


class AgentCategory(str, Enum):
    """Informational grouping of an agent. Does not affect execution order."""

    ANALYSIS = "分析型"
    EXECUTION = "执行型"
    VERIFICATION = "验证型"


class StepStatus(str, Enum):
    """Status of a pipeline step, also used as the overall task status."""

    WAITING = "WAITING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    PAUSED = "PAUSED"
    SKIPPED = "SKIPPED"
    # Task-level only: a run stopped by the user before any step failed.
    CANCELLED = "CANCELLED"


# Allowed per-step transitions. WAITING is also terminal for steps left
# behind by cancellation.
_STEP_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.WAITING: {StepStatus.RUNNING, StepStatus.PAUSED, StepStatus.SKIPPED},
    StepStatus.PAUSED: {StepStatus.RUNNING, StepStatus.WAITING},
    StepStatus.RUNNING: {StepStatus.COMPLETED, StepStatus.FAILED},
    StepStatus.COMPLETED: set(),
    StepStatus.FAILED: set(),
    StepStatus.SKIPPED: set(),
    StepStatus.CANCELLED: set(),
}


class Agent(BaseModel):
    """A reusable instruction profile."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1)
    role: str = ""
    instruction: str = Field(min_length=1)
    category: AgentCategory = AgentCategory.ANALYSIS
    priority: int = Field(ge=1, le=5, default=3)
    # Reserved for dependency-aware scheduling; execution order ignores it.
    dependencies: list[str] = Field(default_factory=list)
    is_pinned: bool = False


class TaskStep(BaseModel):
    """One pipeline stage bound to one agent by id."""

    id: str = Field(default_factory=_short_id)
    agent_id: str
    status: StepStatus = StepStatus.WAITING
    output: str | None = None
    error: str | None = None

    def _move(self, target: StepStatus) -> None:
        if target not in _STEP_TRANSITIONS[self.status]:
            raise ValueError(f"Step {self.id}: cannot go from {self.status.value} to {target.value}")
        self.status = target

    def start(self) -> None:
        self._move(StepStatus.RUNNING)

    def complete(self, output: str) -> None:
        self._move(StepStatus.COMPLETED)
        self.output = output
        self.error = None

    def fail(self, error: str) -> None:
        self._move(StepStatus.FAILED)
        self.error = error
        self.output = None

    def pause(self) -> None:
        self._move(StepStatus.PAUSED)

    def release(self) -> None:
        """Return a paused step to WAITING."""
        self._move(StepStatus.WAITING)

    def skip(self) -> None:
        self._move(StepStatus.SKIPPED)


class WorkflowTask(BaseModel):
    """One execution of an ordered agent pipeline."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str = Field(min_length=1)
    steps: list[TaskStep] = Field(default_factory=list)
    status: StepStatus = StepStatus.RUNNING
    created_at: datetime = Field(default_factory=datetime.now)
    tags: list[str] = Field(default_factory=list)

    @classmethod
    def create(
        cls, description: str, agent_ids: list[str], title: str | None = None
    ) -> "WorkflowTask":
        """Build a fresh task with one WAITING step per agent id, in order."""
        if not title:
            title = f"新任务 {datetime.now().strftime('%H:%M:%S')}"
        return cls(
            title=title,
            description=description,
            steps=[TaskStep(agent_id=agent_id) for agent_id in agent_ids],
        )

    def count(self, status: StepStatus) -> int:
        return sum(1 for step in self.steps if step.status == status)

    def progress(self) -> float:
        """Fraction of steps that have completed."""
        if not self.steps:
            return 0.0
        return self.count(StepStatus.COMPLETED) / len(self.steps)

    def resolve_status(self, cancelled: bool = False) -> StepStatus:
        """Derive the terminal task status from its steps."""
        if all(step.status == StepStatus.COMPLETED for step in self.steps):
            return StepStatus.COMPLETED
        if cancelled and not any(step.status == StepStatus.FAILED for step in self.steps):
            return StepStatus.CANCELLED
        return StepStatus.FAILED


class LogEntry(BaseModel):
    """User-facing record of one platform operation."""

    id: str = Field(default_factory=_short_id)
    timestamp: datetime = Field(default_factory=datetime.now)
    action: str
    detail: str = ""


class AppSettings(BaseModel):
    """Persisted user preferences."""

    theme: Literal["light", "dark", "system"] = "system"
    font_size: Literal["small", "medium", "large"] = "medium"
    # Shown and exported with the preferences; generation reads Settings instead
    api_base_url: str = Field(
        "https://generativelanguage.googleapis.com",
        description="Displayed endpoint preference; not used for generation",
    )
    api_timeout: int = Field(
        30000, ge=1, description="Displayed timeout preference in ms; not used for generation"
    )
    max_history: int = Field(100, ge=1)
    auto_fold_history: bool = True
