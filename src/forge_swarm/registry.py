"""
Agent registry and relevance router.

The registry is owned by one orchestration session and passed explicitly to
the router and executors. Iteration follows insertion order; registering an
existing id overwrites the entry in place without moving it.

Routing heuristic (deterministic for identical inputs):

    score  = 0
    score += 10  if the lowercase context contains the lowercase role
    score -= 5   per message by this agent among the last 3 history messages
    score += 5   per persona specialty found (case-insensitively) in the context

The highest score wins; ties go to the agent registered first.
"""

from __future__ import annotations

import logging
from typing import Generic, Iterator, Sequence, TypeVar

from pydantic import BaseModel

from .exceptions import NoAvailableAgentError
from .models import Agent, Message

logger = logging.getLogger("forge-swarm")

ROLE_MATCH_BONUS = 10
RECENT_SPEAKER_PENALTY = 5
SPECIALTY_MATCH_BONUS = 5
RECENT_WINDOW = 3

T = TypeVar("T", bound=BaseModel)


class AgentRegistry(Generic[T]):
    """Insertion-ordered map of session participants keyed by id."""

    def __init__(self) -> None:
        self._entries: dict[str, T] = {}

    def register(self, entry: T) -> T:
        """Insert or overwrite an entry keyed by its ``id``."""
        entry_id = getattr(entry, "id")
        if entry_id in self._entries:
            logger.debug(f"Overwriting registry entry '{entry_id}'")
        self._entries[entry_id] = entry
        return entry

    def unregister(self, entry_id: str) -> T:
        """Remove an entry.

        Raises:
            KeyError: If the id is not registered
        """
        if entry_id not in self._entries:
            raise KeyError(f"'{entry_id}' is not registered")
        return self._entries.pop(entry_id)

    def get(self, entry_id: str) -> T | None:
        return self._entries.get(entry_id)

    def values(self) -> list[T]:
        return list(self._entries.values())

    def ids(self) -> list[str]:
        return list(self._entries.keys())

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)


class RelevanceRouter:
    """Picks the next speaker from an agent registry.

    Attributes:
        registry: The session's agent registry
        history: The session's append-only message history (read only)
    """

    def __init__(self, registry: AgentRegistry[Agent], history: Sequence[Message]) -> None:
        self.registry = registry
        self.history = history

    def score_agent_relevance(self, agent: Agent, context: str) -> int:
        """Score how relevant an agent is to the current context."""
        context_lower = context.lower()
        score = 0

        if agent.role and agent.role.lower() in context_lower:
            score += ROLE_MATCH_BONUS

        recent = self.history[-RECENT_WINDOW:]
        score -= RECENT_SPEAKER_PENALTY * sum(1 for m in recent if m.agent_id == agent.id)

        if agent.persona is not None:
            matches = sum(
                1 for specialty in agent.persona.specialties
                if specialty and specialty.lower() in context_lower
            )
            score += SPECIALTY_MATCH_BONUS * matches

        return score

    def route_to_agent(self, context: str, exclude_ids: Sequence[str] = ()) -> Agent:
        """Select exactly one agent from the registry minus ``exclude_ids``.

        Raises:
            NoAvailableAgentError: If the exclusion set leaves no candidate
        """
        excluded = set(exclude_ids)
        candidates = [a for a in self.registry if a.id not in excluded]

        if not candidates:
            raise NoAvailableAgentError(list(exclude_ids))

        if len(candidates) == 1:
            return candidates[0]

        best = candidates[0]
        best_score = self.score_agent_relevance(best, context)
        scores = {best.id: best_score}
        for agent in candidates[1:]:
            score = self.score_agent_relevance(agent, context)
            scores[agent.id] = score
            # strict comparison keeps the earliest registered agent on ties
            if score > best_score:
                best, best_score = agent, score

        logger.debug(f"Routing scores: {scores} -> {best.id}")
        return best


__all__ = [
    "AgentRegistry",
    "RelevanceRouter",
    "ROLE_MATCH_BONUS",
    "RECENT_SPEAKER_PENALTY",
    "SPECIALTY_MATCH_BONUS",
]
