"""Sequential task execution using LangGraph."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypedDict

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from agent_pipeline.models import Agent, StepStatus, WorkflowTask
from agent_pipeline.orchestration.control import ExecutionControl
from agent_pipeline.orchestration.models import ExecutionResult
from agent_pipeline.orchestration.step_runner import StepRunner
from agent_pipeline.registry import AgentRegistry


logger = logging.getLogger(__name__)

StepUpdateCallback = Callable[[WorkflowTask], Awaitable[None] | None]


class ExecutionState(TypedDict):
    """State for the execution graph. Owned by a single run."""

    task: WorkflowTask
    context: str
    index: int
    agent: Agent | None
    cancelled: bool
    halted: bool


def format_context_block(agent_name: str, output: str) -> str:
    """Block appended to the running context after a completed step."""
    return f"\n\n[{agent_name}输出]:\n{output}"


async def _notify(callback: StepUpdateCallback | None, task: WorkflowTask) -> None:
    if callback is None:
        return
    try:
        result = callback(task.model_copy(deep=True))
        if inspect.isawaitable(result):
            await result
    except Exception:
        # Observers never decide the outcome of a run
        logger.exception("Step update callback failed for task %s", task.id)


def _run_options(config: RunnableConfig) -> tuple[ExecutionControl, StepUpdateCallback | None]:
    configurable = config.get("configurable", {})
    return configurable["control"], configurable.get("on_step_update")


class TaskExecutor:
    """Drives the steps of a task one at a time, feeding context forward.

    Steps run in their fixed order. A failed step halts the pipeline,
    a step whose agent no longer exists is marked SKIPPED, and
    cancellation leaves the remaining steps WAITING.
    """

    def __init__(self, registry: AgentRegistry, runner: StepRunner) -> None:
        """Initialize the executor."""
        self.registry = registry
        self.runner = runner

        self.graph = self._build_graph()
        self.app = self.graph.compile()

    def _build_graph(self) -> StateGraph:
        """Build the LangGraph execution graph."""
        workflow = StateGraph(ExecutionState)

        workflow.add_node("advance", self.advance)
        workflow.add_node("run_step", self.run_step)
        workflow.add_node("finalize", self.finalize)

        workflow.set_entry_point("advance")
        workflow.add_conditional_edges(
            "advance",
            self.route_after_advance,
            {"run_step": "run_step", "finalize": "finalize"},
        )
        workflow.add_conditional_edges(
            "run_step",
            lambda state: "finalize" if state["halted"] else "advance",
            {"advance": "advance", "finalize": "finalize"},
        )
        workflow.add_edge("finalize", END)

        return workflow

    async def advance(self, state: ExecutionState, config: RunnableConfig) -> dict[str, Any]:
        """Find the next runnable step, honouring cancellation and pause."""
        control, on_step_update = _run_options(config)
        task = state["task"]
        index = state["index"]

        while index < len(task.steps):
            if control.cancelled:
                logger.info("Task %s cancelled before step %d", task.id, index + 1)
                return {"index": index, "agent": None, "cancelled": True}

            step = task.steps[index]
            agent = self.registry.get(step.agent_id)
            if agent is None:
                logger.warning(
                    "Skipping step %s: agent %s not found", step.id, step.agent_id
                )
                step.skip()
                await _notify(on_step_update, task)
                index += 1
                continue

            if control.paused:
                step.pause()
                await _notify(on_step_update, task)
                logger.info("Task %s paused before step %d", task.id, index + 1)
                await control.wait_until_resumed()
                if control.cancelled:
                    step.release()
                    await _notify(on_step_update, task)
                    return {"index": index, "agent": None, "cancelled": True}

            return {"index": index, "agent": agent}

        return {"index": index, "agent": None}

    def route_after_advance(self, state: ExecutionState) -> str:
        if state["cancelled"] or state["agent"] is None:
            return "finalize"
        return "run_step"

    async def run_step(self, state: ExecutionState, config: RunnableConfig) -> dict[str, Any]:
        """Run the selected step and fold its output into the context."""
        _, on_step_update = _run_options(config)
        task = state["task"]
        index = state["index"]
        agent = state["agent"]
        assert agent is not None
        step = task.steps[index]

        step.start()
        await _notify(on_step_update, task)

        outcome = await self.runner.run_step(agent, task.description, state["context"])
        if not outcome.succeeded:
            step.fail(outcome.error or "")
            await _notify(on_step_update, task)
            logger.info("Task %s halted at step %d: %s", task.id, index + 1, outcome.error)
            return {"halted": True}

        output = outcome.output or ""
        step.complete(output)
        context = state["context"] + format_context_block(agent.name, output)
        await _notify(on_step_update, task)
        return {"context": context, "index": index + 1}

    async def finalize(self, state: ExecutionState) -> dict[str, Any]:
        """Compute the terminal task status."""
        task = state["task"]
        task.status = task.resolve_status(cancelled=state["cancelled"])
        logger.info(
            "Task %s finished %s: %d/%d steps completed",
            task.id,
            task.status.value,
            task.count(StepStatus.COMPLETED),
            len(task.steps),
        )
        return {"task": task}

    async def execute(
        self,
        task: WorkflowTask,
        on_step_update: StepUpdateCallback | None = None,
        control: ExecutionControl | None = None,
    ) -> ExecutionResult:
        """
        Run every step of ``task`` in order.

        Args:
            task: Task to run; its steps are mutated in place
            on_step_update: Called with a snapshot of the task on every step transition;
                errors it raises are logged and do not affect the run
            control: Cancellation/pause token checked before each step

        Returns:
            ExecutionResult with the finished task and whether it was cancelled

        Raises:
            ConfigurationError: If the generation backend is unusable; no step runs
        """
        self.runner.check_configuration()

        initial_state = ExecutionState(
            task=task,
            context="",
            index=0,
            agent=None,
            cancelled=False,
            halted=False,
        )
        config: RunnableConfig = {
            "configurable": {
                "control": control or ExecutionControl(),
                "on_step_update": on_step_update,
            },
            # Two graph steps per pipeline step, plus entry and finalize
            "recursion_limit": 2 * len(task.steps) + 10,
        }

        final_state = await self.app.ainvoke(initial_state, config)

        return ExecutionResult(
            task=final_state["task"],
            cancelled=final_state["cancelled"],
            context=final_state["context"],
        )
