"""
Collaboration orchestrator: a bounded multi-turn conversation between agents.

Each turn walks the states ROUTING -> GENERATING -> RECORDED and then either
continues, notes a handoff, or ends. The loop is strictly sequential since
every prompt depends on the previously recorded turn.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

from shortuuid import random

from .config import CollaborationConfig
from .control_tokens import detect_handoff
from .emergent import EmergentContentSynthesizer
from .exceptions import GeneratorFailure, NoAvailableAgentError
from .llm_client import TextGenerator
from .models import Agent, CollaborationResult, Message, Persona
from .prompts import format_transcript, make_agent_turn_prompt
from .registry import AgentRegistry, RelevanceRouter
from .validation import CrossValidator

logger = logging.getLogger("forge-swarm")


class CollaborationOrchestrator:
    """
    Drives one collaboration session.

    The orchestrator owns the agent registry and the append-only message
    history. Both are passed by reference to the router, the synthesizer and
    the cross-validator; nothing is shared between sessions.

    Attributes:
        generator: Text generator used for every agent turn
        config: Collaboration settings
        registry: Registered agents, in insertion order
        history: Recorded messages of the current session
    """

    def __init__(self, generator: TextGenerator, config: CollaborationConfig | None = None):
        self.generator = generator
        self.config = config or CollaborationConfig()
        self.registry: AgentRegistry[Agent] = AgentRegistry()
        self.history: list[Message] = []
        self.router = RelevanceRouter(self.registry, self.history)
        self.synthesizer = EmergentContentSynthesizer(generator, self.registry, self.config)
        self.validator = CrossValidator(generator, self.registry, self.config)

    # ------------------------------------------------------------------
    # Registration and routing
    # ------------------------------------------------------------------

    def register_agent(self, agent: Agent | dict[str, Any]) -> Agent:
        """Register an agent, overwriting any agent with the same id."""
        if isinstance(agent, dict):
            agent = Agent.model_validate(agent)
        self.registry.register(agent)
        logger.info(f"Registered agent: {agent.name} ({agent.role})")
        return agent

    def route_to_agent(self, context: str, exclude_ids: Iterable[str] = ()) -> Agent:
        return self.router.route_to_agent(context, list(exclude_ids))

    # ------------------------------------------------------------------
    # Turn execution
    # ------------------------------------------------------------------

    async def generate_agent_response(self, agent: Agent, context: str) -> str:
        """Generate one turn for ``agent``; a failed call yields a silent sentinel."""
        prompt = make_agent_turn_prompt(
            agent,
            self.history[-self.config.history_window:] if self.config.history_window else [],
            context,
            allow_handoff=self.config.max_rounds > 1,
        )
        logger.debug(f"Prompt for {agent.name}: {len(prompt)} chars")

        try:
            return await self.generator.generate(
                prompt,
                system_prompt=agent.system_prompt or None,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except Exception as e:
            failure = GeneratorFailure(str(e), agent_name=agent.name)
            logger.error(f"Agent {failure.agent_name} generation failed: {failure.message}")
            logger.warning(f"{agent.name} is silent for this turn")
            return f"[{agent.name} is momentarily silent]"

    def build_context_from_history(self) -> str:
        return format_transcript(self.history[-self.config.context_window:])

    def _record_turn(self, round_index: int, agent: Agent, content: str) -> Message:
        message = Message(
            round=round_index,
            agent_id=agent.id,
            agent_name=agent.name,
            content=content,
        )
        self.history.append(message)
        agent.message_count += 1
        agent.last_active = message.timestamp
        return message

    async def run_conversation_round(
        self,
        initial_prompt: str,
        agents: Iterable[Agent | dict[str, Any]] | None = None,
    ) -> CollaborationResult:
        """
        Run a bounded conversation and synthesize emergent content from it.

        Args:
            initial_prompt: Opening context for the first turn
            agents: Optional agents to register before starting

        Returns:
            CollaborationResult with at most ``config.max_rounds`` messages
        """
        for agent in agents or ():
            self.register_agent(agent)

        session_id = random(length=8)
        logger.info(
            f"Starting collaboration {session_id}: {len(self.registry)} agents, "
            f"max {self.config.max_rounds} rounds, type {self.config.collaboration_type.value}"
        )

        rounds: list[Message] = []
        context = initial_prompt
        previous_agent_id: str | None = None

        for round_index in range(self.config.max_rounds):
            exclude = [previous_agent_id] if previous_agent_id else []
            try:
                agent = self.route_to_agent(context, exclude)
            except NoAvailableAgentError as e:
                logger.warning(f"Round {round_index}: {e.message}; ending conversation early")
                break

            content = await self.generate_agent_response(agent, context)
            rounds.append(self._record_turn(round_index, agent, content))

            signal = detect_handoff(content)
            if signal.should_end:
                logger.info(f"{agent.name} ended the conversation at round {round_index}")
                break
            if signal.handoff_requested:
                logger.debug(f"{agent.name} requested a handoff: {signal.reason or 'no reason given'}")

            context = self.build_context_from_history()
            previous_agent_id = agent.id

        emergent_content = await self.synthesizer.synthesize(
            rounds, self.config.collaboration_type
        )

        validation = None
        if self.config.enable_cross_validation:
            validation = await self.validator.validate(emergent_content.model_dump(mode="json"))

        logger.info(f"Collaboration {session_id} finished with {len(rounds)} messages")
        return CollaborationResult(
            session_id=session_id,
            collaboration_type=self.config.collaboration_type,
            rounds=rounds,
            emergent_content=emergent_content,
            validation=validation,
            stats=self.get_stats(),
        )

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        return {
            "agent_count": len(self.registry),
            "total_messages": len(self.history),
            "agents": [
                {
                    "id": agent.id,
                    "name": agent.name,
                    "role": agent.role,
                    "message_count": agent.message_count,
                    "last_active": agent.last_active.isoformat() if agent.last_active else None,
                }
                for agent in self.registry
            ],
        }

    def reset(self) -> None:
        """Clear the history and agent statistics; registrations are kept."""
        # the router holds a reference to this list
        self.history.clear()
        for agent in self.registry:
            agent.message_count = 0
            agent.last_active = None
        logger.info("Collaboration session reset")


def agent_from_npc(
    npc: dict[str, Any],
    system_prompt: str = "",
    index: int | None = None,
) -> Agent:
    """Build an Agent from an NPC persona mapping (name, personality, ...)."""
    agent_id = npc.get("id") or f"npc_{index if index is not None else random(length=8)}"
    return Agent(
        id=agent_id,
        name=npc["name"],
        role=npc.get("archetype") or npc.get("personality", "").split(",")[0].strip() or "npc",
        system_prompt=system_prompt,
        persona=Persona(
            personality=npc.get("personality", ""),
            goals=list(npc.get("goals") or []),
            specialties=list(npc.get("specialties") or []),
            background=npc.get("background") or "",
            relationships=dict(npc.get("relationships") or {}),
        ),
    )


__all__ = ["CollaborationOrchestrator", "agent_from_npc"]
