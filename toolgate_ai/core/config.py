"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> set[str]:
    return {item.strip() for item in value.split(",") if item.strip()}


# =====================================================================
# Grouped Configuration Models
# =====================================================================


class LLMConfig(BaseModel):
    """Language model configuration."""

    name: str = Field(
        default="openai:gpt-4o",
        alias="TOOLGATE_AI_MODEL",
        description="Model identifier understood by pydantic-ai (provider:model)",
    )
    system_prompt: Optional[str] = Field(
        default=None,
        alias="TOOLGATE_AI_SYSTEM_PROMPT",
        description="Optional system prompt prepended to every model request",
    )
    temperature: Optional[float] = Field(
        default=None, alias="TOOLGATE_AI_TEMPERATURE", description="Sampling temperature (provider default if unset)"
    )

    model_config = {"populate_by_name": True}


class ApprovalConfig(BaseModel):
    """Tool approval gating configuration."""

    autonomy_profile: str = Field(
        default="balanced",
        alias="TOOLGATE_AI_AUTONOMY_PROFILE",
        description="unrestricted (no human approval), balanced or strict",
    )
    always_approve: str = Field(
        default="",
        alias="TOOLGATE_AI_ALWAYS_APPROVE",
        description="Comma separated tool names that never need human approval",
    )
    blocked_tools: str = Field(
        default="",
        alias="TOOLGATE_AI_BLOCKED_TOOLS",
        description="Comma separated tool names that are always rejected",
    )
    max_tool_args_bytes: int = Field(
        default=64_000,
        alias="TOOLGATE_AI_MAX_TOOL_ARGS_BYTES",
        description="Tool calls with larger JSON arguments are rejected",
    )

    model_config = {"populate_by_name": True}

    @property
    def always_approve_tools(self) -> set[str]:
        """Parsed ``always_approve`` tool names."""
        return _split_csv(self.always_approve)

    @property
    def blocked_tool_names(self) -> set[str]:
        """Parsed ``blocked_tools`` tool names."""
        return _split_csv(self.blocked_tools)


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="TOOLGATE_AI_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="TOOLGATE_AI_LOG_FORMAT",
    )
    log_file_dir: str = Field(default="logs", description="Directory for the log file", alias="TOOLGATE_AI_LOG_DIR")
    enable_file_logging: bool = Field(
        default=False,
        description="Also write logs to <log_file_dir>/toolgate_ai.log",
        alias="TOOLGATE_AI_ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Storage Configuration
    # =====================================================================
    database_url: Optional[str] = Field(
        default="sqlite+aiosqlite:///./toolgate.db",
        description="Async SQLAlchemy URL for the message, context and approval logs; empty keeps them in memory",
        alias="TOOLGATE_AI_DATABASE_URL",
    )

    # =====================================================================
    # Conversation Configuration
    # =====================================================================
    context_window: int = Field(
        default=100,
        ge=1,
        description="Number of most recent context messages supplied to the model",
        alias="TOOLGATE_AI_CONTEXT_WINDOW",
    )

    # Grouped fields, bound from the same environment
    llm_model: str = Field(default="openai:gpt-4o", alias="TOOLGATE_AI_MODEL")
    system_prompt: Optional[str] = Field(default=None, alias="TOOLGATE_AI_SYSTEM_PROMPT")
    temperature: Optional[float] = Field(default=None, alias="TOOLGATE_AI_TEMPERATURE")
    autonomy_profile: str = Field(default="balanced", alias="TOOLGATE_AI_AUTONOMY_PROFILE")
    always_approve: str = Field(default="", alias="TOOLGATE_AI_ALWAYS_APPROVE")
    blocked_tools: str = Field(default="", alias="TOOLGATE_AI_BLOCKED_TOOLS")
    max_tool_args_bytes: int = Field(default=64_000, ge=1, alias="TOOLGATE_AI_MAX_TOOL_ARGS_BYTES")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def llm(self) -> LLMConfig:
        """Get language model configuration from environment variables."""
        return LLMConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def approval(self) -> ApprovalConfig:
        """Get approval gating configuration from environment variables."""
        return ApprovalConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
