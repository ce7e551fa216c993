"""Configuration management using pydantic-settings."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=7788, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")

    # Storage Configuration
    database_path: str = Field(default="./data/chatrelay.db", description="DuckDB database path")

    # Provider Configuration
    api_base_url: str = Field(default="https://api.openai.com/v1", description="Provider REST base URL")
    assistants_beta_header: str = Field(default="assistants=v2", description="Protocol version marker for assisted endpoints")
    request_timeout: float = Field(default=30.0, description="Timeout for thread/run/message calls in seconds")
    completion_timeout: float = Field(default=60.0, description="Timeout for direct completion calls in seconds")
    completion_temperature: float = Field(default=0.7, description="Sampling temperature for direct completions")
    completion_max_tokens: int = Field(default=1000, description="Token cap for direct completions")

    # Orchestration Configuration
    poll_interval: float = Field(default=1.0, description="Seconds between run status reads")
    max_polls: int = Field(default=60, description="Maximum run status reads per turn")
    context_window: int = Field(default=10, description="Prior messages sent with a direct completion")

    # Side Effects Configuration
    webhook_timeout: float = Field(default=10.0, description="Webhook delivery timeout in seconds")
    webhook_user_name: str = Field(default="User", description="userName reported in webhook payloads")
    default_thread_prefix: str = Field(default="Thread", description="Prefix of system-assigned thread names")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_file: Optional[str] = Field(default="./logs/app.log", description="Log file path")


# Global settings instance
settings = Settings()
