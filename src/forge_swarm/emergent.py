"""
Emergent-content synthesis from a finished conversation transcript.

Base content (interaction summaries and dialogue snippets) is always produced.
The structured output depends on the collaboration type and is resolved
through a strategy table; ``freeform`` has no structured output.
"""

from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable, Sequence

from pydantic import ValidationError

from .config import CollaborationConfig
from .extraction import extract_json_object
from .llm_client import TextGenerator
from .models import (
    Agent,
    CollaborationType,
    DialogueNode,
    DialogueResponse,
    DialogueSnippet,
    DialogueTree,
    EmergentContent,
    EmergentRelationship,
    LoreFragment,
    LoreOutput,
    Message,
    PairInteraction,
    QuestSkeleton,
    Relationship,
    RelationshipOutput,
    RelationshipType,
    Sentiment,
    SentimentTally,
    StructuredOutput,
)
from .prompts import make_quest_synthesis_prompt
from .registry import AgentRegistry

logger = logging.getLogger("forge-swarm")

_POSITIVE_RE = re.compile(r"\b(?:agree[sd]?|yes|excellent|friend\w*)\b", re.IGNORECASE)
_NEGATIVE_RE = re.compile(r"\b(?:disagree[sd]?|no|wrong|against)\b", re.IGNORECASE)
_LORE_RE = re.compile(r"\b(?:ago|once|legend\w*|histor\w*|ancient)\b|\d+\s+years", re.IGNORECASE)

FRIENDLY_SHARE = 0.4
CONFLICTED_SHARE = 0.3
MIN_EMERGENT_INTERACTIONS = 2
SNIPPETS_PER_AGENT = 2
SNIPPET_CONTEXT_CHARS = 100


def detect_sentiment(text: str) -> Sentiment:
    """Classify a response; any positive keyword wins over negative ones."""
    if _POSITIVE_RE.search(text):
        return Sentiment.POSITIVE
    if _NEGATIVE_RE.search(text):
        return Sentiment.NEGATIVE
    return Sentiment.NEUTRAL


def is_lore(text: str) -> bool:
    return _LORE_RE.search(text) is not None


def classify_relationship(tally: SentimentTally) -> RelationshipType:
    total = tally.total
    if tally.positive > tally.negative and tally.positive > total * FRIENDLY_SHARE:
        return RelationshipType.FRIENDLY
    if tally.negative > tally.positive and tally.negative > total * CONFLICTED_SHARE:
        return RelationshipType.CONFLICTED
    return RelationshipType.NEUTRAL


def _pair_key(a: Message, b: Message) -> tuple[str, str]:
    first, second = sorted((a.agent_id, b.agent_id))
    return first, second


def extract_relationships(messages: Sequence[Message]) -> RelationshipOutput:
    """Classify each unordered agent pair from adjacent-turn sentiment."""
    tallies: dict[tuple[str, str], SentimentTally] = {}
    names: dict[str, str] = {}

    for prev, curr in zip(messages, messages[1:]):
        names[prev.agent_id] = prev.agent_name
        names[curr.agent_id] = curr.agent_name
        tally = tallies.setdefault(_pair_key(prev, curr), SentimentTally())
        sentiment = detect_sentiment(curr.content)
        if sentiment == Sentiment.POSITIVE:
            tally.positive += 1
        elif sentiment == Sentiment.NEGATIVE:
            tally.negative += 1
        else:
            tally.neutral += 1

    relationships = [
        Relationship(
            agents=[names[first], names[second]],
            type=classify_relationship(tally),
            interaction_count=tally.total,
            sentiment=tally,
        )
        for (first, second), tally in tallies.items()
    ]
    return RelationshipOutput(relationships=relationships)


def extract_lore(messages: Sequence[Message]) -> LoreOutput:
    fragments = [
        LoreFragment(source=m.agent_name, content=m.content, timestamp=m.timestamp)
        for m in messages
        if is_lore(m.content)
    ]
    contributors = list(dict.fromkeys(f.source for f in fragments))
    return LoreOutput(fragments=fragments, contributors=contributors)


def build_dialogue_tree(messages: Sequence[Message]) -> DialogueTree:
    """Linear chain of nodes; each node links to the next one."""
    nodes: list[DialogueNode] = []
    for i, message in enumerate(messages):
        responses = []
        if i + 1 < len(messages):
            responses.append(DialogueResponse(
                id=f"response_{i}_0",
                text="(Continue conversation)",
                next_node_id=f"node_{i + 1}",
            ))
        nodes.append(DialogueNode(
            id=f"node_{i}",
            speaker=message.agent_name,
            text=message.content,
            responses=responses,
        ))

    return DialogueTree(
        nodes=nodes,
        start_node_id=nodes[0].id if nodes else None,
        participants=list(dict.fromkeys(m.agent_name for m in messages)),
    )


def fallback_quest(messages: Sequence[Message]) -> QuestSkeleton:
    return QuestSkeleton(
        involved_npcs=list(dict.fromkeys(m.agent_name for m in messages)),
        synthesized=False,
    )


def extract_base_content(
    messages: Sequence[Message],
    registry: AgentRegistry[Agent],
) -> EmergentContent:
    """Interaction summaries for repeated pairs and per-agent dialogue snippets."""
    pairs: dict[tuple[str, str], tuple[list[str], list[PairInteraction]]] = {}
    for i, (prev, curr) in enumerate(zip(messages, messages[1:]), start=1):
        agents, interactions = pairs.setdefault(
            _pair_key(prev, curr), ([prev.agent_name, curr.agent_name], [])
        )
        interactions.append(PairInteraction(
            round=i,
            context=(
                f"{prev.content[:SNIPPET_CONTEXT_CHARS]}... -> "
                f"{curr.content[:SNIPPET_CONTEXT_CHARS]}..."
            ),
        ))

    relationships = [
        EmergentRelationship(
            agents=agents,
            interaction_count=len(interactions),
            description=f"{agents[0]} and {agents[1]} engaged in {len(interactions)} interactions",
        )
        for agents, interactions in pairs.values()
        if len(interactions) >= MIN_EMERGENT_INTERACTIONS
    ]

    by_agent: dict[str, list[str]] = {}
    for message in messages:
        by_agent.setdefault(message.agent_id, []).append(message.content)

    snippets = []
    for agent_id, contents in by_agent.items():
        agent = registry.get(agent_id)
        name = agent.name if agent else next(m.agent_name for m in messages if m.agent_id == agent_id)
        snippets.append(DialogueSnippet(agent=name, samples=contents[:SNIPPETS_PER_AGENT]))

    return EmergentContent(relationships=relationships, dialogue_snippets=snippets)


Strategy = Callable[[Sequence[Message]], Awaitable[StructuredOutput | None]]


class EmergentContentSynthesizer:
    """
    Derives emergent content from a transcript.

    Attributes:
        generator: Text generator, used only by the quest strategy
        registry: The session's agent registry
        config: Collaboration settings (temperature, max tokens)
    """

    def __init__(
        self,
        generator: TextGenerator,
        registry: AgentRegistry[Agent],
        config: CollaborationConfig | None = None,
    ):
        self.generator = generator
        self.registry = registry
        self.config = config or CollaborationConfig()
        self._strategies: dict[CollaborationType, Strategy | None] = {
            CollaborationType.RELATIONSHIP: self._relationship,
            CollaborationType.LORE: self._lore,
            CollaborationType.DIALOGUE: self._dialogue,
            CollaborationType.QUEST: self._quest,
            CollaborationType.FREEFORM: None,
        }

    async def synthesize(
        self,
        messages: Sequence[Message],
        collaboration_type: CollaborationType,
    ) -> EmergentContent:
        content = extract_base_content(messages, self.registry)
        strategy = self._strategies[collaboration_type]
        if strategy is not None:
            content.structured_output = await strategy(messages)
        return content

    async def _relationship(self, messages: Sequence[Message]) -> RelationshipOutput:
        return extract_relationships(messages)

    async def _lore(self, messages: Sequence[Message]) -> LoreOutput:
        return extract_lore(messages)

    async def _dialogue(self, messages: Sequence[Message]) -> DialogueTree:
        return build_dialogue_tree(messages)

    async def _quest(self, messages: Sequence[Message]) -> QuestSkeleton:
        """One extra generator call asking the first agent for a JSON quest."""
        agents = self.registry.values()
        if not agents or not messages:
            return fallback_quest(messages)

        synthesizer = agents[0]
        try:
            response = await self.generator.generate(
                make_quest_synthesis_prompt(messages),
                system_prompt=synthesizer.system_prompt or None,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except Exception as e:
            logger.error(f"Quest synthesis call failed for {synthesizer.name}: {e}")
            return fallback_quest(messages)

        data = extract_json_object(response)
        if data is None:
            logger.warning("Quest synthesis returned no JSON object; using fallback quest")
            return fallback_quest(messages)

        if "involvedNPCs" in data and "involved_npcs" not in data:
            data["involved_npcs"] = data.pop("involvedNPCs")
        data.pop("synthesized", None)
        try:
            return QuestSkeleton.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Quest synthesis returned malformed quest: {e}")
            return fallback_quest(messages)


__all__ = [
    "detect_sentiment",
    "is_lore",
    "classify_relationship",
    "extract_relationships",
    "extract_lore",
    "build_dialogue_tree",
    "fallback_quest",
    "extract_base_content",
    "EmergentContentSynthesizer",
]
