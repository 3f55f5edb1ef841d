"""
Exception hierarchy for the forge-swarm coordination engine.

Only caller mistakes propagate out of the public entry points. Failures of the
text generator, malformed responses and exhausted routing are converted into
degraded data by the executors that catch them.
"""

from __future__ import annotations

from typing import Any


class ForgeSwarmError(Exception):
    """Base exception for all forge-swarm errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary of additional error context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class GeneratorFailure(ForgeSwarmError):
    """A text generator call failed for one agent or tester.

    Always caught at the call site and turned into a sentinel record.

    Attributes:
        agent_name: Name of the agent or tester whose call failed
    """

    def __init__(
        self,
        message: str,
        agent_name: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.agent_name = agent_name


class NoAvailableAgentError(ForgeSwarmError):
    """Routing found no candidate after applying the exclusion set."""

    def __init__(self, excluded: list[str] | None = None):
        excluded = excluded or []
        super().__init__(
            "No available agents to route to",
            details={"excluded": list(excluded)},
        )
        self.excluded = list(excluded)


class SwarmConfigurationError(ForgeSwarmError):
    """Raised when a session is set up in a way that cannot run."""
    pass


__all__ = [
    "ForgeSwarmError",
    "GeneratorFailure",
    "NoAvailableAgentError",
    "SwarmConfigurationError",
]
