"""Generation client boundary: one text-generation call per pipeline step."""

import logging
from typing import Any, Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_core.prompts import PromptTemplate

from agent_pipeline.config import settings
from agent_pipeline.errors import GenerationError
from agent_pipeline.providers import check_credentials, get_chat_model


logger = logging.getLogger(__name__)


# Role, prior context and the current ask are kept as separately labeled segments.
STEP_PROMPT = PromptTemplate.from_template(
    "\n角色设定: {instruction}\n前序上下文: {context}\n\n当前任务需求: {prompt}\n"
)

GENERATION_FAILED_MESSAGE = "调用模型失败"


class GenerationClient(Protocol):
    """Protocol implemented by generation backends."""

    def check_configuration(self, model: str) -> None:
        """Raise ConfigurationError if ``model`` cannot be called at all."""

    async def generate(self, model: str, instruction: str, prompt: str, context: str) -> str:
        """Run one generation call and return its text, or raise GenerationError."""


def build_prompt(instruction: str, prompt: str, context: str = "") -> str:
    """Render the three-part step prompt."""
    return STEP_PROMPT.format(instruction=instruction, context=context, prompt=prompt)


def message_text(message: BaseMessage | str) -> str:
    """Extract plain text from a chat model response."""
    if isinstance(message, str):
        return message
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(str(part.get("text", "")))
    return "".join(parts)


class LangChainGenerationClient:
    """Generation client backed by a LangChain chat model."""

    def __init__(self, config: Any = None) -> None:
        self.config = config or settings
        self._models: dict[str, BaseChatModel] = {}

    def _chat_model(self, model: str) -> BaseChatModel:
        if model not in self._models:
            self._models[model] = get_chat_model(self.config, model=model)
        return self._models[model]

    def check_configuration(self, model: str) -> None:
        check_credentials(self.config)
        self._chat_model(model)

    async def generate(self, model: str, instruction: str, prompt: str, context: str = "") -> str:
        chat_model = self._chat_model(model)
        full_prompt = build_prompt(instruction, prompt, context)
        try:
            response = await chat_model.ainvoke(full_prompt)
        except Exception as e:
            logger.warning("Generation call to %s failed: %s", model, e)
            raise GenerationError(str(e) or GENERATION_FAILED_MESSAGE) from e
        return message_text(response)
