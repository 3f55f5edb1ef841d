"""
Pytest configuration and fixtures for forge-swarm tests.
"""

import sys
from pathlib import Path
import pytest

# Add src directory to Python path to allow importing forge_swarm
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from forge_swarm.models import Agent, KnowledgeLevel, Persona, Tester


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_agent():
    """Factory for agents with sensible defaults."""
    def _make(agent_id: str, name: str | None = None, role: str = "villager", specialties=None):
        return Agent(
            id=agent_id,
            name=name or agent_id.title(),
            role=role,
            system_prompt=f"You are {name or agent_id}.",
            persona=Persona(personality="calm", specialties=list(specialties or [])),
        )
    return _make


@pytest.fixture
def make_tester():
    """Factory for testers with sensible defaults."""
    def _make(
        tester_id: str,
        archetype: str = "casual",
        level: KnowledgeLevel = KnowledgeLevel.INTERMEDIATE,
    ):
        return Tester(
            id=tester_id,
            name=f"Tester {tester_id}",
            archetype=archetype,
            knowledge_level=level,
            personality="curious",
            expectations=["clear objectives"],
        )
    return _make


GOOD_REPORT = """PLAYTHROUGH: I accepted the quest from the blacksmith and found the ore.

COMPLETION: YES

DIFFICULTY: 6/10 for intermediate player

ENGAGEMENT: 8/10 - fun

PACING: just_right

BUGS FOUND:
- The quest marker points to the wrong cave, severity: major
- Typo in reward text, severity: minor

CONFUSION POINTS:
- Unclear which ore counts

OVERALL FEEDBACK:
Solid quest with a couple of rough edges.

RECOMMENDATION: pass_with_changes"""


@pytest.fixture
def good_report() -> str:
    return GOOD_REPORT
