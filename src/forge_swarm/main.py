"""
forge-swarm MCP Server
Exposes NPC collaboration and playtester swarm runs as FastMCP tools.
"""

import json
import logging
import time
from typing import Annotated, Any

from dotenv import load_dotenv
from fastmcp import FastMCP
from pydantic import Field, ValidationError

from .aggregation import build_test_report
from .collaboration import CollaborationOrchestrator, agent_from_npc
from .config import CollaborationConfig, LLMSettings, SwarmConfig
from .exceptions import ForgeSwarmError
from .llm_client import AnthropicLLMClient, LLMClientError, RetryingLLMClient, TextGenerator
from .models import CollaborationType
from .personas import DEFAULT_SWARM, PLAYTESTER_PERSONAS, knowledge_level_for
from .prompts import make_collaboration_prompt, make_npc_agent_prompt
from .swarm import PlaytesterSwarm

logger = logging.getLogger("forge-swarm")

if not load_dotenv():
    logger.debug(".env file not found, using process environment only")

settings = LLMSettings.from_env()

logging.basicConfig(level=getattr(logging, settings.log_level))

CONTENT_TYPES = ("quest", "dialogue", "npc", "combat", "puzzle")

mcp = FastMCP(
    name="forge-swarm"
)

_generator: TextGenerator | None = None


def get_generator() -> TextGenerator:
    """Return the shared generator, creating the Anthropic client on first use."""
    global _generator
    if _generator is None:
        client = AnthropicLLMClient(
            api_key=settings.api_key,
            model=settings.model,
            default_max_tokens=settings.max_tokens,
            timeout=settings.timeout,
        )
        _generator = RetryingLLMClient(client, max_attempts=settings.max_attempts)
    return _generator


def set_generator(generator: TextGenerator | None) -> None:
    """Replace the shared generator (None restores lazy creation)."""
    global _generator
    _generator = generator


def _error(message: str, **details: Any) -> str:
    return json.dumps({"error": message, **details})


def _validate_npcs(npc_personas: list[dict[str, Any]]) -> str | None:
    if len(npc_personas) < 2:
        return "'npc_personas' must be a list with at least 2 NPCs"
    for npc in npc_personas:
        if not isinstance(npc.get("name"), str) or not npc["name"]:
            return "Each NPC must have a 'name' string"
        if not isinstance(npc.get("personality"), str) or not npc["personality"]:
            return "Each NPC must have a 'personality' string"
    return None


@mcp.tool
async def npc_collaboration(
    npc_personas: Annotated[list[dict[str, Any]], Field(description="""
        NPCs taking part. Each needs 'name' and 'personality'; optional 'id', 'archetype',
        'goals', 'specialties', 'background' and 'relationships'.
        """)],
    collaboration_type: Annotated[str, Field(description="dialogue, quest, lore, relationship or freeform")],
    context: Annotated[dict[str, Any] | None, Field(description="""
        Optional scenario details: 'scenario', 'quest_seed', 'lore_topic', 'location',
        'situation' and a world 'description'.
        """)] = None,
    rounds: Annotated[int, Field(description="Maximum conversation turns", ge=1, le=50)] = 5,
    enable_cross_validation: Annotated[bool, Field(description="Run the cross-validation review pass")] = True,
) -> str:
    """Let several NPC agents converse and synthesize emergent content from the transcript."""
    problem = _validate_npcs(npc_personas)
    if problem:
        return _error(f"Invalid input: {problem}")

    try:
        config = CollaborationConfig(
            collaboration_type=collaboration_type,
            max_rounds=rounds,
            enable_cross_validation=enable_cross_validation,
        )
    except ValidationError:
        return _error(
            "Invalid input: 'collaboration_type' must be one of: "
            + ", ".join(t.value for t in CollaborationType)
        )

    try:
        generator = get_generator()
    except LLMClientError as e:
        return _error("Text generator is not configured", details=str(e))

    world_context = (context or {}).get("description")
    orchestrator = CollaborationOrchestrator(generator, config)
    for index, npc in enumerate(npc_personas):
        system_prompt = make_npc_agent_prompt(npc, config.collaboration_type, world_context)
        orchestrator.register_agent(agent_from_npc(npc, system_prompt, index))

    initial_prompt = make_collaboration_prompt(
        config.collaboration_type,
        [npc["name"] for npc in npc_personas],
        context,
    )

    try:
        result = await orchestrator.run_conversation_round(initial_prompt)
    except (ForgeSwarmError, LLMClientError) as e:
        logger.error(f"NPC collaboration failed: {e}")
        return _error("Failed to generate multi-agent NPC collaboration", details=str(e))

    payload = result.model_dump(mode="json")
    payload["npc_count"] = len(npc_personas)
    return json.dumps(payload, indent=2)


@mcp.tool
async def playtest_swarm(
    content: Annotated[dict[str, Any], Field(description="Content to test (quest, dialogue, ...)")],
    content_type: Annotated[str, Field(description="quest, dialogue, npc, combat or puzzle")],
    tester_profiles: Annotated[list[str | dict[str, Any]] | None, Field(description="""
        Persona keys or custom profiles ({'name', 'archetype', 'knowledge_level',
        'personality', 'expectations'}). Defaults to a five-tester swarm.
        """)] = None,
    parallel: Annotated[bool, Field(description="Run testers concurrently")] = True,
    temperature: Annotated[float, Field(description="Sampling temperature", ge=0.0, le=2.0)] = 0.7,
    max_concurrent: Annotated[int | None, Field(description="Concurrency cap for parallel runs", ge=1)] = None,
) -> str:
    """Run a swarm of AI playtesters over content and report bugs, scores and a verdict."""
    if content_type not in CONTENT_TYPES:
        return _error(f"Invalid input: 'content_type' must be one of: {', '.join(CONTENT_TYPES)}")

    try:
        generator = get_generator()
    except LLMClientError as e:
        return _error("Text generator is not configured", details=str(e))

    swarm = PlaytesterSwarm(
        generator,
        SwarmConfig(parallel=parallel, temperature=temperature, max_concurrent=max_concurrent),
    )

    try:
        for profile in tester_profiles or DEFAULT_SWARM:
            swarm.register_tester(profile)
    except ForgeSwarmError as e:
        return _error(f"Invalid input: {e.message}")
    except ValidationError as e:
        return _error("Invalid input: malformed tester profile", details=str(e))

    start = time.perf_counter()
    try:
        result = await swarm.run_swarm_playtest(content)
    except ForgeSwarmError as e:
        logger.error(f"Playtester swarm failed: {e}")
        return _error("Failed to run playtester swarm", details=e.message)
    duration = time.perf_counter() - start

    payload = result.model_dump(mode="json")
    payload["content_type"] = content_type
    payload["duration"] = round(duration, 3)
    payload["report"] = build_test_report(result, content_type, duration)
    payload["stats"] = swarm.get_stats()
    return json.dumps(payload, indent=2)


@mcp.tool
def list_playtester_personas() -> str:
    """List the predefined playtester personas and the default swarm."""
    personas = {
        key: {
            **persona,
            "archetype": key,
            "knowledge_level": knowledge_level_for(key).value,
        }
        for key, persona in PLAYTESTER_PERSONAS.items()
    }
    return json.dumps({
        "available_personas": list(PLAYTESTER_PERSONAS),
        "personas": personas,
        "default_swarm": DEFAULT_SWARM,
        "description": "Predefined AI playtester personas based on common player archetypes",
    }, indent=2)


logger.debug("All tools registered, forge-swarm server ready")


def main() -> None:
    """Main entry point for the forge-swarm MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
