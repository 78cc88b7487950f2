"""Factory for creating provider-agnostic chat models."""

import logging
from typing import Any, cast

from langchain.chat_models import init_chat_model
from langchain_core.language_models import BaseChatModel

from agent_pipeline.errors import ConfigurationError


logger = logging.getLogger(__name__)

# Providers that run locally and need no credential
LOCAL_PROVIDERS = {"ollama"}


def resolve_api_key(config: Any) -> str | None:
    """Return the credential for the configured provider, if any."""
    api_key_mapping = {
        "google_genai": getattr(config, "google_api_key", None),
        "openai": getattr(config, "openai_api_key", None),
        "anthropic": getattr(config, "anthropic_api_key", None),
    }
    api_key = api_key_mapping.get(config.llm_provider)

    # Handle generic api_key field as fallback
    if api_key is None and config.llm_provider not in LOCAL_PROVIDERS:
        api_key = getattr(config, "api_key", None)
    return api_key


def check_credentials(config: Any) -> None:
    """Fail fast when a hosted provider has no credential configured."""
    if config.llm_provider in LOCAL_PROVIDERS:
        return
    if not resolve_api_key(config):
        raise ConfigurationError(
            f"No API key configured for provider '{config.llm_provider}'. "
            "Set GOOGLE_API_KEY (or the provider's key, or API_KEY) in the environment or .env."
        )


def get_chat_model(config: Any, model: str | None = None) -> BaseChatModel:
    """
    Create a chat model based on configuration settings.

    Args:
        config: Settings object containing LLM configuration
        model: Model name overriding ``config.llm_model``

    Returns:
        BaseChatModel: Provider-agnostic chat model instance

    Raises:
        ConfigurationError: If the provider has no credential or cannot be initialized

    Supported providers:
        - google_genai: Uses Google's Gemini models (default)
        - openai: Uses OpenAI's GPT models
        - anthropic: Uses Anthropic's Claude models
        - ollama: Uses local Ollama models
    """
    check_credentials(config)

    model_kwargs: dict[str, Any] = {
        "temperature": config.llm_temperature,
        "top_p": config.llm_top_p,
        "max_tokens": config.llm_max_tokens,
        "timeout": config.api_timeout_seconds,
    }

    if config.llm_provider == "ollama":
        # Ollama uses base_url instead of api_key
        model_kwargs["base_url"] = config.ollama_base_url
        model_kwargs.pop("timeout")
    else:
        model_kwargs["api_key"] = resolve_api_key(config)
        if getattr(config, "api_base_url", None):
            model_kwargs["base_url"] = config.api_base_url

    model_name = model or config.llm_model
    try:
        chat_model = cast(
            "BaseChatModel",
            init_chat_model(
                model=model_name,
                model_provider=config.llm_provider,
                **model_kwargs,
            ),
        )
    except (ImportError, ValueError) as e:
        raise ConfigurationError(
            f"Failed to initialize provider '{config.llm_provider}' with model '{model_name}': {e}"
        ) from e

    logger.debug("Initialized %s chat model %s", config.llm_provider, model_name)
    return chat_model
