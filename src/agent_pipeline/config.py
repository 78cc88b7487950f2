"""Configuration and settings for Agent Pipeline."""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


load_dotenv()


class Settings(BaseSettings):  # type: ignore[misc]
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Configuration
    google_api_key: str | None = Field(None, description="Google API key for Gemini")
    openai_api_key: str | None = Field(None, description="OpenAI API key")
    anthropic_api_key: str | None = Field(None, description="Anthropic API key")
    api_key: str | None = Field(None, description="Generic API key for current provider")
    llm_provider: str = Field("google_genai", description="LLM provider to use")
    llm_model: str = Field("gemini-3-flash-preview", description="LLM model to use")
    llm_temperature: float = Field(0.7, description="LLM temperature")
    llm_top_p: float = Field(0.95, description="Nucleus sampling probability mass")
    llm_max_tokens: int = Field(2048, description="Maximum tokens for LLM response")

    # Endpoint Configuration
    api_base_url: str | None = Field(None, description="Override for the provider base URL")
    api_timeout_seconds: float = Field(30.0, description="Timeout for one generation call")
    ollama_base_url: str = Field("http://localhost:11434", description="Ollama base URL")

    # Storage Configuration
    data_dir: Path = Field(Path(".agent_pipeline"), description="Directory for persisted data")
    max_history: int = Field(100, ge=1, description="Maximum finished tasks kept in history")
    max_log_entries: int = Field(100, ge=1, description="Maximum operation log entries kept")

    # Logging Configuration
    log_level: str = Field("INFO", description="Logging level")
    log_file: Path | None = Field(None, description="Optional log file path")
    debug_mode: bool = Field(False, description="Enable debug mode")

    def ensure_directories(self) -> None:
        """Ensure the data directory exists."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
