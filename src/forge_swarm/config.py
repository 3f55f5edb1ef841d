"""
Configuration models for forge-swarm sessions.
"""

import os

from pydantic import BaseModel, Field, field_validator

from .models import CollaborationType


class CollaborationConfig(BaseModel):
    """Settings for a collaboration (conversation) session.

    Controls the bounded round loop, sampling temperature for agent turns and
    the optional cross-validation pass.
    """

    collaboration_type: CollaborationType = Field(
        default=CollaborationType.FREEFORM,
        description="Kind of emergent content to synthesize from the transcript"
    )
    max_rounds: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Hard cap on the number of turns in one conversation round"
    )
    temperature: float = Field(
        default=0.8,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for agent turns"
    )
    max_tokens: int = Field(
        default=1024,
        ge=16,
        description="Maximum tokens per agent turn"
    )
    enable_cross_validation: bool = Field(
        default=True,
        description="Run the cross-validation review pass after the conversation"
    )
    validation_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for validator calls"
    )
    max_validators: int = Field(
        default=3,
        ge=1,
        description="Maximum number of agents sampled as validators"
    )
    history_window: int = Field(
        default=5,
        ge=0,
        description="Number of recent messages included in each agent prompt"
    )
    context_window: int = Field(
        default=3,
        ge=1,
        description="Number of recent messages that form the routing context of the next turn"
    )

    @field_validator("collaboration_type", mode="before")
    @classmethod
    def validate_collaboration_type(cls, v):
        """Accept enum members or case-insensitive strings."""
        if isinstance(v, CollaborationType):
            return v
        if isinstance(v, str):
            try:
                return CollaborationType(v.strip().lower())
            except ValueError:
                raise ValueError(
                    f"collaboration_type must be one of: "
                    f"{', '.join(t.value for t in CollaborationType)}"
                )
        raise ValueError(f"collaboration_type must be a string, got {type(v)}")


class SwarmConfig(BaseModel):
    """Settings for a playtester swarm run."""

    parallel: bool = Field(
        default=True,
        description="Issue all tester calls concurrently; False runs them one at a time"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for tester calls"
    )
    max_tokens: int = Field(
        default=2048,
        ge=16,
        description="Maximum tokens per tester response"
    )
    max_concurrent: int | None = Field(
        default=None,
        ge=1,
        description="Concurrency cap for parallel runs (None = unbounded)"
    )
    exclude_failed_from_metrics: bool = Field(
        default=False,
        description="Aggregate only successful tests instead of counting failures as incomplete"
    )


class LLMSettings(BaseModel):
    """Connection settings for the text generator backend."""

    api_key: str | None = Field(default=None, description="Anthropic API key")
    model: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model identifier"
    )
    max_tokens: int = Field(default=1024, ge=16, le=200000)
    timeout: float = Field(
        default=60.0,
        gt=0.0,
        description="Per-request timeout enforced by the SDK client"
    )
    max_attempts: int = Field(
        default=2,
        ge=1,
        description="Attempts per generator call, including the first"
    )
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v.upper()

    @classmethod
    def from_env(cls) -> "LLMSettings":
        """Build settings from ``FORGE_SWARM_*`` environment variables."""
        values: dict[str, object] = {"api_key": os.getenv("ANTHROPIC_API_KEY")}
        env_map = {
            "model": "FORGE_SWARM_MODEL",
            "max_tokens": "FORGE_SWARM_MAX_TOKENS",
            "timeout": "FORGE_SWARM_TIMEOUT",
            "max_attempts": "FORGE_SWARM_MAX_ATTEMPTS",
            "log_level": "FORGE_SWARM_LOG_LEVEL",
        }
        for field_name, env_name in env_map.items():
            raw = os.getenv(env_name)
            if raw:
                values[field_name] = raw
        return cls(**values)


__all__ = ["CollaborationConfig", "SwarmConfig", "LLMSettings"]
