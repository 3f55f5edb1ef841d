"""
Predefined playtester personas.

Each persona represents a common player archetype with its own expectations.
``build_tester`` turns either a persona key or a custom profile mapping into a
registered-ready Tester.
"""

from typing import Any

from shortuuid import random

from .exceptions import SwarmConfigurationError
from .models import KnowledgeLevel, Tester

PLAYTESTER_PERSONAS: dict[str, dict[str, Any]] = {
    "completionist": {
        "name": "Alex the Completionist",
        "personality": "Thorough, detail-oriented, patient. Wants to find everything and complete all optional content.",
        "expectations": [
            "All objectives clearly marked",
            "Optional content is discoverable",
            "Rewards for exploration",
            "No dead ends or impossible tasks",
        ],
    },
    "speedrunner": {
        "name": "Riley the Speedrunner",
        "personality": "Efficient, skilled, impatient. Looks for optimal paths and skips unnecessary content.",
        "expectations": [
            "Clear critical path",
            "Minimal backtracking",
            "Efficient quest flow",
            "No forced waiting",
        ],
    },
    "explorer": {
        "name": "Morgan the Explorer",
        "personality": "Curious, experimental, boundary-testing. Tries unconventional approaches and edge cases.",
        "expectations": [
            "World feels responsive",
            "Creative solutions work",
            "Hidden areas are rewarded",
            "Systems handle edge cases",
        ],
    },
    "casual": {
        "name": "Jordan the Casual",
        "personality": "Relaxed, easily distracted, less experienced. May miss obvious hints or skip reading.",
        "expectations": [
            "Clear, simple instructions",
            "Obvious quest markers",
            "Forgiving difficulty",
            "Minimal punishment for mistakes",
        ],
    },
    "minmaxer": {
        "name": "Sam the Min-Maxer",
        "personality": "Analytical, optimization-focused, mechanics-driven. Looks for exploits and imbalances.",
        "expectations": [
            "Balanced rewards",
            "No exploits or cheese strategies",
            "Meaningful choices",
            "Fair difficulty curve",
        ],
    },
    "roleplayer": {
        "name": "Taylor the Roleplayer",
        "personality": "Story-focused, immersion-seeking, character-driven. Values consistency and narrative.",
        "expectations": [
            "Coherent story",
            "Character motivations make sense",
            "Choices matter narratively",
            "No immersion-breaking elements",
        ],
    },
    "breaker": {
        "name": "Casey the Bug Hunter",
        "personality": "Adversarial, creative, boundary-testing. Actively tries to break things and find bugs.",
        "expectations": [
            "Robust error handling",
            "No sequence breaks",
            "Edge cases covered",
            "Consistent logic",
        ],
    },
}

ARCHETYPE_KNOWLEDGE_LEVELS: dict[str, KnowledgeLevel] = {
    "completionist": KnowledgeLevel.INTERMEDIATE,
    "speedrunner": KnowledgeLevel.EXPERT,
    "explorer": KnowledgeLevel.INTERMEDIATE,
    "casual": KnowledgeLevel.BEGINNER,
    "minmaxer": KnowledgeLevel.EXPERT,
    "roleplayer": KnowledgeLevel.INTERMEDIATE,
    "breaker": KnowledgeLevel.EXPERT,
}

DEFAULT_SWARM = ["completionist", "casual", "breaker", "speedrunner", "explorer"]


def knowledge_level_for(archetype: str) -> KnowledgeLevel:
    return ARCHETYPE_KNOWLEDGE_LEVELS.get(archetype, KnowledgeLevel.INTERMEDIATE)


def build_tester(profile: str | dict[str, Any]) -> Tester:
    """Create a Tester from a persona key or a custom profile.

    Raises:
        SwarmConfigurationError: If a persona key is unknown or a custom
            profile lacks a name
    """
    if isinstance(profile, str):
        persona = PLAYTESTER_PERSONAS.get(profile)
        if persona is None:
            raise SwarmConfigurationError(
                f"Invalid tester profile: {profile}. "
                f"Must be one of: {', '.join(PLAYTESTER_PERSONAS)}"
            )
        return Tester(
            id=f"tester_{random(length=8)}",
            archetype=profile,
            knowledge_level=knowledge_level_for(profile),
            **persona,
        )

    if not profile.get("name"):
        raise SwarmConfigurationError("Custom tester profiles must have a 'name'")

    archetype = profile.get("archetype") or "casual"
    return Tester(
        id=profile.get("id") or f"tester_{random(length=8)}",
        name=profile["name"],
        archetype=archetype,
        knowledge_level=profile.get("knowledge_level") or knowledge_level_for(archetype),
        personality=profile.get("personality") or "",
        expectations=list(profile.get("expectations") or []),
    )


__all__ = [
    "PLAYTESTER_PERSONAS",
    "ARCHETYPE_KNOWLEDGE_LEVELS",
    "DEFAULT_SWARM",
    "knowledge_level_for",
    "build_tester",
]
