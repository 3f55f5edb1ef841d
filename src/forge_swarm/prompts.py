"""
Prompt builders for collaboration turns, playtests and review passes.

Prompts are plain f-string templates. The output-format sections must stay in
sync with the patterns in ``extraction`` and ``control_tokens``.
"""

import json
from typing import Any, Sequence

from .control_tokens import END_TOKEN
from .models import Agent, CollaborationType, Message, Tester

ARCHETYPE_INSTRUCTIONS: dict[str, str] = {
    "completionist": (
        "You try to complete everything thoroughly, exploring all options and finding all secrets. "
        "You notice when content is missing or incomplete. You test every dialogue option and "
        "explore every corner."
    ),
    "speedrunner": (
        "You try to complete content as quickly as possible, finding optimal paths and skipping "
        "optional content. You notice sequence breaks, exploits, and anything that slows down "
        "progression."
    ),
    "explorer": (
        "You explore every possibility, testing boundaries and trying unexpected actions. You try "
        "unconventional approaches, look for hidden areas, and test what happens when you do "
        "things out of order."
    ),
    "casual": (
        "You play at a relaxed pace, sometimes missing obvious hints or skipping dialogue. You get "
        "stuck on things experienced players find obvious. You notice when instructions are "
        "unclear or confusing."
    ),
    "minmaxer": (
        "You analyze mechanics and optimize your approach. You calculate if rewards are worth the "
        "effort. You notice balance issues, exploitable strategies, and mathematical "
        "inconsistencies in rewards or difficulty."
    ),
    "roleplayer": (
        "You engage with content from a character perspective, valuing story and immersion. You "
        "make choices based on character motivation, not optimization. You notice when content "
        "breaks immersion or feels inconsistent."
    ),
    "breaker": (
        "You actively try to break the content, testing limits and trying to cause errors. You "
        "attempt to do things in the wrong order, try invalid inputs, and push boundaries. You "
        "find bugs and edge cases systematically."
    ),
}

KNOWLEDGE_LEVEL_CONTEXT: dict[str, str] = {
    "beginner": (
        "You are new to this type of game and need clear guidance. You get stuck on things "
        "experienced players find obvious. You appreciate tutorials and clear markers. Unclear "
        "instructions frustrate you."
    ),
    "intermediate": (
        "You have moderate experience and can handle standard challenges. You understand basic "
        "game mechanics but may miss subtle hints. You notice when difficulty spikes unexpectedly."
    ),
    "expert": (
        "You are highly skilled and can handle complex challenges. You quickly figure out "
        "mechanics and optimal strategies. You notice when content is too easy, lacks depth, or "
        "can be exploited."
    ),
}

COLLABORATION_INSTRUCTIONS: dict[CollaborationType, str] = {
    CollaborationType.DIALOGUE: (
        "You are engaging in a natural conversation with other NPCs. Speak authentically in "
        "character, building on what others say."
    ),
    CollaborationType.QUEST: (
        "You are collaborating with other NPCs to design a quest. Contribute ideas that fit your "
        "character, role, and expertise. Think about objectives, rewards, and challenges from "
        "your perspective."
    ),
    CollaborationType.LORE: (
        "You are sharing knowledge and stories with other NPCs. Contribute lore that fits your "
        "background, experiences, and areas of expertise. Build on what others share."
    ),
    CollaborationType.RELATIONSHIP: (
        "You are building relationships with other NPCs through authentic interaction. React "
        "naturally to what others say based on your personality and goals."
    ),
    CollaborationType.FREEFORM: (
        "You are freely interacting with other NPCs. Respond naturally based on your "
        "personality, goals, and the situation at hand."
    ),
}


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def format_transcript(messages: Sequence[Message]) -> str:
    return "\n\n".join(f"{m.agent_name}: {m.content}" for m in messages)


def make_collaboration_prompt(
    collaboration_type: CollaborationType,
    npc_names: Sequence[str],
    context: dict[str, Any] | None = None,
) -> str:
    """Opening situation for a collaboration session."""
    context = context or {}
    names = ", ".join(npc_names)

    if collaboration_type == CollaborationType.DIALOGUE:
        scenario = context.get("scenario") or (
            "They begin a natural conversation based on their personalities and goals."
        )
        return f"{names} are meeting for the first time. {scenario}"

    if collaboration_type == CollaborationType.QUEST:
        seed = context.get("quest_seed") or (
            "They brainstorm objectives, challenges, and rewards that fit their roles and the "
            "world setting."
        )
        return f"{names} are discussing a problem in the world that could become a quest. {seed}"

    if collaboration_type == CollaborationType.LORE:
        topic = context.get("lore_topic") or "the history and mysteries of their world"
        return (
            f"{names} are gathered to share stories and knowledge about {topic}. "
            f"Each contributes what they know from their unique perspective."
        )

    if collaboration_type == CollaborationType.RELATIONSHIP:
        location = context.get("location") or "a social setting"
        situation = context.get("situation") or (
            "Their relationship develops through authentic conversation and shared experiences."
        )
        return f"{names} are interacting in {location}. {situation}"

    situation = context.get("situation") or "interacting in the world"
    return f"{names} are {situation}. They respond naturally based on their personalities and goals."


def make_npc_agent_prompt(
    npc: dict[str, Any],
    collaboration_type: CollaborationType,
    world_context: str | None = None,
) -> str:
    """System prompt for one NPC taking part in a collaboration."""
    background = npc.get("background") or (
        "A resident of this world with a unique perspective shaped by your experiences."
    )
    goals = npc.get("goals")
    goals_text = ", ".join(goals) if goals else (
        "To live authentically and interact meaningfully with others."
    )
    world_section = f"WORLD CONTEXT:\n{world_context}\n" if world_context else ""

    return f"""You are {npc['name']}, an NPC in a fantasy MMORPG world.

PERSONALITY: {npc.get('personality', '')}

BACKGROUND: {background}

GOALS: {goals_text}

{world_section}
COLLABORATION CONTEXT:
{COLLABORATION_INSTRUCTIONS[collaboration_type]}

IMPORTANT GUIDELINES:
- Stay in character at all times - every word should reflect your personality
- Build on what other NPCs say (collaborative storytelling, not monologues)
- Be authentic to your personality, background, and goals
- Create emergent storylines through your interactions
- If the discussion reaches a natural conclusion, you may include {END_TOKEN}
- Keep responses concise (2-4 sentences per turn) to allow others to participate
- React to what others say - acknowledge their contributions

YOUR RESPONSE:"""


def make_agent_turn_prompt(
    agent: Agent,
    history: Sequence[Message],
    current_context: str,
    allow_handoff: bool = True,
) -> str:
    """Prompt for one conversation turn: persona, recent history and context."""
    persona_text = ""
    if agent.persona is not None:
        persona_text = f"Personality: {_dump(agent.persona.model_dump())}"

    handoff_line = (
        "If you want to hand off to another character, end with: [HANDOFF: reason]\n"
        if allow_handoff else ""
    )

    return f"""PERSONA:
Name: {agent.name}
Role: {agent.role}
{persona_text}

CONVERSATION HISTORY:
{format_transcript(history) or '(No previous conversation)'}

CURRENT CONTEXT:
{current_context}

INSTRUCTIONS:
You are {agent.name}, a {agent.role}. Respond in character based on your personality and role.
{handoff_line}If the conversation should end naturally, include: {END_TOKEN}

YOUR RESPONSE:"""


def make_playtest_prompt(tester: Tester, content: Any) -> str:
    """Persona-specific playtest prompt with explicit output format."""
    archetype_instruction = ARCHETYPE_INSTRUCTIONS.get(
        tester.archetype, ARCHETYPE_INSTRUCTIONS["casual"]
    )
    level = tester.knowledge_level.value
    knowledge_context = KNOWLEDGE_LEVEL_CONTEXT.get(level, KNOWLEDGE_LEVEL_CONTEXT["intermediate"])

    return f"""You are {tester.name}, an AI playtester evaluating game content.

ARCHETYPE: {tester.archetype}
PLAYSTYLE: {archetype_instruction}

KNOWLEDGE LEVEL: {level}
{knowledge_context}

PERSONALITY: {tester.personality}

EXPECTATIONS: {', '.join(tester.expectations)}

CONTENT TO TEST:
{_dump(content)}

PLAYTEST INSTRUCTIONS:
1. "Play through" this content step by step from your character's perspective
2. Try to complete the objectives as your archetype would approach them
3. Look for issues from your unique perspective:

   BUG CATEGORIES:
   - Logic errors (impossible to complete, broken triggers, missing requirements)
   - Unclear instructions (confusing objectives, missing directions)
   - Sequence breaks (can do things out of order that break progression)
   - Balance issues (rewards too high/low, difficulty inconsistent)
   - Missing content (dead ends, incomplete features, placeholder text)

4. Evaluate difficulty for a {level} player (1-10)
5. Rate engagement/fun (1-10)
6. Note pacing (too_fast/just_right/too_slow)
7. Identify confusion points that would frustrate players

OUTPUT FORMAT:
PLAYTHROUGH: [Describe step-by-step how you played through the content as {tester.name}.]

COMPLETION: [YES/NO - Were you able to complete all objectives?]

DIFFICULTY: [1-10]/10 for {level} player

ENGAGEMENT: [1-10]/10 - how fun/interesting was it?

PACING: [too_fast/just_right/too_slow]

BUGS FOUND:
- [Bug description with severity: critical/major/minor]
(Write "None" if no bugs found)

CONFUSION POINTS:
- [Thing that was unclear or confusing]
(Write "None" if nothing was confusing)

OVERALL FEEDBACK:
[2-3 sentences summarizing the quality, main issues, and whether it's ready for players]

RECOMMENDATION: [pass/pass_with_changes/fail]"""


def make_validation_prompt(agent: Agent, content: Any) -> str:
    """Ask one agent to score generated content on three axes."""
    return f"""As {agent.name} ({agent.role}), review this generated content for logical consistency and authenticity:

{_dump(content)}

Rate the content on a scale of 1-10 for:
1. Logical consistency
2. Authenticity to character personas
3. Overall quality

Format: SCORES: [consistency]/10, [authenticity]/10, [quality]/10
Brief explanation of any issues found."""


def make_quest_synthesis_prompt(messages: Sequence[Message]) -> str:
    """Ask for a JSON quest skeleton distilled from a transcript."""
    transcript = "\n".join(f"{m.agent_name}: {m.content}" for m in messages)
    return f"""Based on this conversation between NPCs, extract a structured quest:

{transcript}

Generate a quest in this JSON format:
{{
  "title": "Quest Title",
  "description": "Quest description",
  "objectives": ["objective 1", "objective 2"],
  "rewards": ["reward 1", "reward 2"],
  "involved_npcs": ["npc names from conversation"],
  "difficulty": "easy/medium/hard"
}}

Output ONLY the JSON, no additional text."""


__all__ = [
    "ARCHETYPE_INSTRUCTIONS",
    "KNOWLEDGE_LEVEL_CONTEXT",
    "COLLABORATION_INSTRUCTIONS",
    "format_transcript",
    "make_collaboration_prompt",
    "make_npc_agent_prompt",
    "make_agent_turn_prompt",
    "make_playtest_prompt",
    "make_validation_prompt",
    "make_quest_synthesis_prompt",
]
