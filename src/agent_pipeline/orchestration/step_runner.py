"""Runs a single pipeline step against the generation client."""

import logging

from agent_pipeline.config import settings
from agent_pipeline.generation import GENERATION_FAILED_MESSAGE, GenerationClient
from agent_pipeline.models import Agent
from agent_pipeline.orchestration.models import StepOutcome


logger = logging.getLogger(__name__)

# Returned in place of an empty generation result
EMPTY_OUTPUT_PLACEHOLDER = "无输出结果"


class StepRunner:
    """Executes one agent against the task description and accumulated context."""

    def __init__(self, client: GenerationClient, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.llm_model

    def check_configuration(self) -> None:
        self.client.check_configuration(self.model)

    async def run_step(self, agent: Agent, task_description: str, context: str) -> StepOutcome:
        """Call the generation client exactly once; any failure becomes the step error."""
        try:
            text = await self.client.generate(
                self.model, agent.instruction, task_description, context
            )
        except Exception as e:
            logger.info("Agent %s failed: %s", agent.name, e)
            return StepOutcome(error=str(e) or GENERATION_FAILED_MESSAGE)

        if not text:
            text = EMPTY_OUTPUT_PLACEHOLDER
        return StepOutcome(output=text)
