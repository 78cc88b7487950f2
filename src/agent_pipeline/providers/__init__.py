"""Provider abstraction layer for LLMs."""

from agent_pipeline.providers.llm_factory import check_credentials, get_chat_model


__all__ = ["check_credentials", "get_chat_model"]
