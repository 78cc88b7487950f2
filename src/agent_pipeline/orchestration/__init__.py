"""Orchestration module for sequential pipeline execution."""

from agent_pipeline.orchestration.control import ExecutionControl
from agent_pipeline.orchestration.executor import TaskExecutor, format_context_block
from agent_pipeline.orchestration.models import ExecutionResult, StepOutcome
from agent_pipeline.orchestration.step_runner import EMPTY_OUTPUT_PLACEHOLDER, StepRunner


__all__ = [
    "EMPTY_OUTPUT_PLACEHOLDER",
    "ExecutionControl",
    "ExecutionResult",
    "StepOutcome",
    "StepRunner",
    "TaskExecutor",
    "format_context_block",
]
