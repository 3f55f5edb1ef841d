"""
Data models for the forge-swarm coordination engine.

Agents and testers are mutable session-scoped records whose running statistics
are updated by the owning executor. Messages and test results are immutable
once created. Every aggregate (metrics, consensus, grade, validation) is
recomputed from those source records and never edited in place.
"""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enumerations
# ============================================================================

class CollaborationType(str, Enum):
    """Kind of content a collaboration session should produce."""
    DIALOGUE = "dialogue"
    QUEST = "quest"
    LORE = "lore"
    RELATIONSHIP = "relationship"
    FREEFORM = "freeform"


class KnowledgeLevel(str, Enum):
    """Playtester skill level."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class Pacing(str, Enum):
    """Perceived pacing reported by a tester."""
    TOO_FAST = "too_fast"
    JUST_RIGHT = "just_right"
    TOO_SLOW = "too_slow"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    """Bug severity, ordered critical > major > minor."""
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK: dict[Severity, int] = {
    Severity.CRITICAL: 3,
    Severity.MAJOR: 2,
    Severity.MINOR: 1,
}


class Verdict(str, Enum):
    """Release recommendation given by a tester or by the swarm consensus."""
    PASS = "pass"
    PASS_WITH_CHANGES = "pass_with_changes"
    FAIL = "fail"


class Agreement(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"


class Priority(str, Enum):
    """Priority of an actionable recommendation."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class RelationshipType(str, Enum):
    FRIENDLY = "friendly"
    CONFLICTED = "conflicted"
    NEUTRAL = "neutral"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


# ============================================================================
# Agents and Testers
# ============================================================================

class Persona(BaseModel):
    """Personality description attached to a collaborating agent."""
    personality: str = Field(default="", description="Short personality summary")
    goals: list[str] = Field(default_factory=list, description="What the character wants")
    specialties: list[str] = Field(
        default_factory=list,
        description="Topics the character is an authority on; used by the router",
    )
    background: str = Field(default="", description="Backstory")
    relationships: dict[str, str] = Field(
        default_factory=dict,
        description="Known relationships to other characters, by name",
    )


class Agent(BaseModel):
    """A persona-bound participant in a collaboration session."""
    id: str = Field(description="Unique agent identifier within the session")
    name: str = Field(description="Display name")
    role: str = Field(description="Role or archetype; matched against the routing context")
    system_prompt: str = Field(default="", description="System instructions sent with every call")
    persona: Persona | None = Field(default=None, description="Optional persona details")
    message_count: int = Field(default=0, ge=0, description="Messages produced this session")
    last_active: datetime | None = Field(default=None, description="Time of the last recorded turn")


class Tester(BaseModel):
    """A synthetic playtester with an archetype and a knowledge level."""
    id: str = Field(description="Unique tester identifier within the session")
    name: str = Field(description="Display name")
    archetype: str = Field(default="casual", description="Playstyle archetype")
    knowledge_level: KnowledgeLevel = Field(default=KnowledgeLevel.INTERMEDIATE)
    personality: str = Field(default="", description="Testing personality")
    expectations: list[str] = Field(default_factory=list, description="What the tester looks for")
    tests_completed: int = Field(default=0, ge=0)
    bugs_found: int = Field(default=0, ge=0)
    average_engagement: float = Field(default=0.0, ge=0.0)


# ============================================================================
# Conversation records
# ============================================================================

class Message(BaseModel):
    """One recorded turn of a conversation."""
    model_config = ConfigDict(frozen=True)

    round: int = Field(ge=0, description="Zero-based round index")
    agent_id: str
    agent_name: str
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)


class HandoffSignal(BaseModel):
    """Control tokens found in a generated turn."""
    should_end: bool = False
    handoff_requested: bool = False
    reason: str | None = None


# ============================================================================
# Playtest records
# ============================================================================

class RawBug(BaseModel):
    """A bug as reported by one tester, before deduplication."""
    model_config = ConfigDict(frozen=True)

    description: str
    severity: Severity = Severity.MINOR
    reporter: str
    archetype: str


class BugReport(BaseModel):
    """A deduplicated bug merged from one or more raw reports."""
    description: str
    severity: Severity
    reporter: str = Field(description="First tester that reported the bug")
    archetype: str
    report_count: int = Field(default=1, ge=1)
    reporters: list[str] = Field(default_factory=list)


class TestResult(BaseModel):
    """Structured outcome of one tester's playtest."""
    __test__ = False
    model_config = ConfigDict(frozen=True)

    tester_id: str
    tester_name: str
    archetype: str
    knowledge_level: KnowledgeLevel
    success: bool = True
    error: str | None = None
    playthrough: str = ""
    completed: bool = False
    difficulty: int = Field(default=5, ge=0, le=10)
    engagement: int = Field(default=5, ge=0, le=10)
    pacing: Pacing = Pacing.UNKNOWN
    bugs: list[RawBug] = Field(default_factory=list)
    confusion_points: list[str] = Field(default_factory=list)
    feedback: str = ""
    recommendation: Verdict = Verdict.PASS_WITH_CHANGES
    raw_response: str = ""


class ScoreBreakdown(BaseModel):
    """Average of a score within one group (knowledge level or archetype)."""
    average: float
    count: int


class AggregatedMetrics(BaseModel):
    """Swarm-wide metrics derived from a set of test results."""
    total_tests: int = 0
    completion_rate: float = 0.0
    average_difficulty: float = 0.0
    difficulty_by_level: dict[str, ScoreBreakdown] = Field(default_factory=dict)
    average_engagement: float = 0.0
    engagement_by_archetype: dict[str, ScoreBreakdown] = Field(default_factory=dict)
    pacing: dict[Pacing, int] = Field(
        default_factory=lambda: {p: 0 for p in Pacing}
    )
    bug_reports: list[BugReport] = Field(default_factory=list)
    unique_bugs: int = 0
    critical_bugs: int = 0
    major_bugs: int = 0
    minor_bugs: int = 0
    confusion_points: list[str] = Field(default_factory=list)
    recommendations: dict[Verdict, int] = Field(
        default_factory=lambda: {v: 0 for v in Verdict}
    )


class Consensus(BaseModel):
    recommendation: Verdict
    confidence: float = Field(ge=0.0, le=1.0)
    agreement: Agreement
    summary: str = ""


class QualityGrade(BaseModel):
    grade: str
    score: int = Field(ge=0, le=100)


class Recommendation(BaseModel):
    """An actionable follow-up derived from aggregated metrics."""
    priority: Priority
    category: str
    message: str
    action: str


class SwarmPlaytestResult(BaseModel):
    """Everything produced by one swarm run."""
    session_id: str
    test_count: int
    individual_results: list[TestResult]
    aggregated_metrics: AggregatedMetrics
    consensus: Consensus
    recommendations: list[Recommendation]


# ============================================================================
# Emergent content
# ============================================================================

class PairInteraction(BaseModel):
    round: int
    context: str


class EmergentRelationship(BaseModel):
    """Pair of agents that interacted repeatedly during a conversation."""
    agents: list[str]
    interaction_count: int
    type: str = "emergent"
    description: str = ""


class DialogueSnippet(BaseModel):
    agent: str
    samples: list[str]


class SentimentTally(BaseModel):
    positive: int = 0
    neutral: int = 0
    negative: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative


class Relationship(BaseModel):
    """Classified relationship between two agents."""
    agents: list[str]
    type: RelationshipType
    interaction_count: int
    sentiment: SentimentTally


class RelationshipOutput(BaseModel):
    relationships: list[Relationship] = Field(default_factory=list)


class LoreFragment(BaseModel):
    source: str
    content: str
    type: str = "historical"
    timestamp: datetime


class LoreOutput(BaseModel):
    fragments: list[LoreFragment] = Field(default_factory=list)
    contributors: list[str] = Field(default_factory=list)


class DialogueResponse(BaseModel):
    id: str
    text: str
    next_node_id: str


class DialogueNode(BaseModel):
    id: str
    speaker: str
    text: str
    responses: list[DialogueResponse] = Field(default_factory=list)


class DialogueTree(BaseModel):
    nodes: list[DialogueNode] = Field(default_factory=list)
    start_node_id: str | None = None
    participants: list[str] = Field(default_factory=list)


_QUEST_ITEM_KEYS = ("description", "name", "title", "text", "objective", "reward")


def _item_text(item: Any) -> Any:
    if isinstance(item, dict):
        for key in _QUEST_ITEM_KEYS:
            if isinstance(item.get(key), str) and item[key]:
                return item[key]
        return json.dumps(item, default=str)
    if isinstance(item, (int, float)) and not isinstance(item, bool):
        return str(item)
    return item


class QuestSkeleton(BaseModel):
    """Quest synthesized from a collaboration transcript."""
    title: str = "Emergent Quest"
    description: str = "A quest that emerged from NPC collaboration"
    objectives: list[str] = Field(default_factory=list)
    rewards: list[str] = Field(default_factory=list)
    involved_npcs: list[str] = Field(default_factory=list)
    difficulty: str | None = None
    synthesized: bool = Field(
        default=True,
        description="False when the generator output was unusable and this is a fallback",
    )

    @field_validator("objectives", "rewards", "involved_npcs", mode="before")
    @classmethod
    def stringify_items(cls, v: Any) -> Any:
        """Flatten object items such as {"description": ...} to text."""
        if not isinstance(v, list):
            return v
        return [_item_text(item) for item in v]

    @field_validator("difficulty", mode="before")
    @classmethod
    def stringify_difficulty(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


StructuredOutput = RelationshipOutput | LoreOutput | DialogueTree | QuestSkeleton


class EmergentContent(BaseModel):
    """Content derived from a finished conversation transcript."""
    relationships: list[EmergentRelationship] = Field(default_factory=list)
    dialogue_snippets: list[DialogueSnippet] = Field(default_factory=list)
    structured_output: StructuredOutput | None = None


# ============================================================================
# Cross-validation
# ============================================================================

class ValidatorScore(BaseModel):
    validator: str
    consistency: int = Field(ge=0, le=10)
    authenticity: int = Field(ge=0, le=10)
    quality: int = Field(ge=0, le=10)
    feedback: str = ""


class ValidationScores(BaseModel):
    consistency: float
    authenticity: float
    quality: float


class ValidationResult(BaseModel):
    validated: bool
    confidence: float = Field(ge=0.0, le=1.0)
    scores: ValidationScores | None = None
    validator_count: int = 0
    details: list[ValidatorScore] = Field(default_factory=list)
    note: str | None = None


class CollaborationResult(BaseModel):
    """Everything produced by one conversation round."""
    session_id: str
    collaboration_type: CollaborationType
    rounds: list[Message]
    emergent_content: EmergentContent
    validation: ValidationResult | None = None
    stats: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "CollaborationType",
    "KnowledgeLevel",
    "Pacing",
    "Severity",
    "SEVERITY_RANK",
    "Verdict",
    "Agreement",
    "Priority",
    "RelationshipType",
    "Sentiment",
    "Persona",
    "Agent",
    "Tester",
    "Message",
    "HandoffSignal",
    "RawBug",
    "BugReport",
    "TestResult",
    "ScoreBreakdown",
    "AggregatedMetrics",
    "Consensus",
    "QualityGrade",
    "Recommendation",
    "SwarmPlaytestResult",
    "PairInteraction",
    "EmergentRelationship",
    "DialogueSnippet",
    "SentimentTally",
    "Relationship",
    "RelationshipOutput",
    "LoreFragment",
    "LoreOutput",
    "DialogueResponse",
    "DialogueNode",
    "DialogueTree",
    "QuestSkeleton",
    "StructuredOutput",
    "EmergentContent",
    "ValidatorScore",
    "ValidationScores",
    "ValidationResult",
    "CollaborationResult",
]
