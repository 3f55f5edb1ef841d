"""
forge-swarm - Multi-agent NPC collaboration and AI playtester swarms, served with FastMCP 2.8.0+.
"""

from .collaboration import CollaborationOrchestrator
from .config import CollaborationConfig, LLMSettings, SwarmConfig
from .exceptions import *
from .llm_client import AnthropicLLMClient, MockLLMClient, RetryingLLMClient, TextGenerator
from .models import *
from .swarm import PlaytesterSwarm

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("forge-swarm")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "CollaborationOrchestrator",
    "PlaytesterSwarm",
    "CollaborationConfig",
    "SwarmConfig",
    "LLMSettings",
    "TextGenerator",
    "MockLLMClient",
    "AnthropicLLMClient",
    "RetryingLLMClient",
]
