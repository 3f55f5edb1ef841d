"""
Tests for emergent-content synthesis.
"""

import json

import pytest

from forge_swarm.emergent import (
    EmergentContentSynthesizer,
    build_dialogue_tree,
    classify_relationship,
    detect_sentiment,
    extract_base_content,
    extract_lore,
    extract_relationships,
    is_lore,
)
from forge_swarm.llm_client import MockLLMClient
from forge_swarm.models import (
    CollaborationType,
    Message,
    QuestSkeleton,
    RelationshipType,
    Sentiment,
    SentimentTally,
)
from forge_swarm.registry import AgentRegistry


def _messages(*turns):
    return [
        Message(round=i, agent_id=agent_id, agent_name=agent_id.title(), content=content)
        for i, (agent_id, content) in enumerate(turns)
    ]


@pytest.fixture
def registry(make_agent):
    registry = AgentRegistry()
    registry.register(make_agent("mira", name="Mira"))
    registry.register(make_agent("brom", name="Brom"))
    return registry


class TestSentiment:
    """Test keyword voting."""

    def test_positive(self):
        assert detect_sentiment("Yes, I agree, my friend!") == Sentiment.POSITIVE

    def test_negative(self):
        assert detect_sentiment("No. That is wrong and I hate it.") == Sentiment.NEGATIVE

    def test_whole_words_only(self):
        # "know" and "nothing" must not count as "no"
        assert detect_sentiment("I know nothing of it.") == Sentiment.NEUTRAL

    def test_positive_keyword_wins(self):
        assert detect_sentiment("Yes, but I disagree with you. No.") == Sentiment.POSITIVE

    def test_disagree_is_not_agree(self):
        assert detect_sentiment("I disagree.") == Sentiment.NEGATIVE

    def test_only_listed_keywords_count(self):
        assert detect_sentiment("Thanks, that is wonderful. I hate it.") == Sentiment.NEUTRAL

    def test_friend_forms(self):
        assert detect_sentiment("A friendly face at last.") == Sentiment.POSITIVE

    def test_classify_relationship(self):
        assert classify_relationship(SentimentTally(positive=2, neutral=1)) == RelationshipType.FRIENDLY
        assert classify_relationship(SentimentTally(negative=1, neutral=2)) == RelationshipType.CONFLICTED
        assert classify_relationship(SentimentTally(positive=1, negative=1)) == RelationshipType.NEUTRAL
        assert classify_relationship(SentimentTally(positive=1, neutral=3)) == RelationshipType.NEUTRAL


class TestStructuredOutputs:
    """Test per-type extraction."""

    def test_relationships_use_unordered_pairs(self):
        messages = _messages(
            ("mira", "Hello."),
            ("brom", "Yes, friend, I agree."),
            ("mira", "Excellent, thank you."),
            ("brom", "Hm."),
        )
        output = extract_relationships(messages)

        assert len(output.relationships) == 1
        relationship = output.relationships[0]
        assert relationship.interaction_count == 3
        assert relationship.sentiment.positive == 2
        assert relationship.sentiment.neutral == 1
        assert relationship.type == RelationshipType.FRIENDLY
        assert sorted(relationship.agents) == ["Brom", "Mira"]

    def test_lore_fragments(self):
        messages = _messages(
            ("mira", "Long ago the river ran red."),
            ("brom", "Pass the salt."),
            ("mira", "It has stood for 300 years."),
            ("brom", "The Ancient ones built it."),
        )
        lore = extract_lore(messages)

        assert [f.content for f in lore.fragments] == [
            "Long ago the river ran red.",
            "It has stood for 300 years.",
            "The Ancient ones built it.",
        ]
        assert lore.contributors == ["Mira", "Brom"]

    def test_is_lore_whole_words(self):
        assert is_lore("a legendary blade")
        assert not is_lore("the agonizing wait")

    def test_dialogue_tree_is_linear(self):
        tree = build_dialogue_tree(_messages(("mira", "one"), ("brom", "two"), ("mira", "three")))

        assert tree.start_node_id == "node_0"
        assert [n.id for n in tree.nodes] == ["node_0", "node_1", "node_2"]
        assert tree.nodes[0].responses[0].next_node_id == "node_1"
        assert tree.nodes[0].responses[0].id == "response_0_0"
        assert tree.nodes[2].responses == []
        assert tree.participants == ["Mira", "Brom"]

    def test_empty_dialogue_tree(self):
        tree = build_dialogue_tree([])
        assert tree.nodes == []
        assert tree.start_node_id is None


class TestBaseContent:
    """Test interaction summaries and snippets."""

    def test_repeated_pairs_and_snippets(self, registry):
        messages = _messages(
            ("mira", "m1"), ("brom", "b1"), ("mira", "m2"), ("brom", "b2"), ("mira", "m3"),
        )
        content = extract_base_content(messages, registry)

        assert len(content.relationships) == 1
        assert content.relationships[0].interaction_count == 4
        assert content.relationships[0].type == "emergent"
        assert content.dialogue_snippets[0].agent == "Mira"
        assert content.dialogue_snippets[0].samples == ["m1", "m2"]
        assert content.dialogue_snippets[1].samples == ["b1", "b2"]

    def test_single_interaction_not_reported(self, registry):
        content = extract_base_content(_messages(("mira", "hi"), ("brom", "hey")), registry)
        assert content.relationships == []


class TestSynthesizer:
    """Test strategy dispatch and quest synthesis."""

    @pytest.mark.anyio
    async def test_freeform_has_no_structured_output(self, registry):
        mock = MockLLMClient()
        synthesizer = EmergentContentSynthesizer(mock, registry)

        content = await synthesizer.synthesize(_messages(("mira", "hi")), CollaborationType.FREEFORM)

        assert content.structured_output is None
        assert mock.call_count == 0

    @pytest.mark.anyio
    async def test_quest_from_json(self, registry):
        quest = {
            "title": "The Red River",
            "description": "Find out why the river runs red.",
            "objectives": ["Visit the mill"],
            "rewards": ["50 gold"],
            "involvedNPCs": ["Mira"],
            "difficulty": "medium",
        }
        mock = MockLLMClient(default_response=f"Sure!\n{json.dumps(quest)}")
        synthesizer = EmergentContentSynthesizer(mock, registry)

        content = await synthesizer.synthesize(
            _messages(("mira", "The river..."), ("brom", "...runs red.")),
            CollaborationType.QUEST,
        )

        output = content.structured_output
        assert isinstance(output, QuestSkeleton)
        assert output.title == "The Red River"
        assert output.involved_npcs == ["Mira"]
        assert output.synthesized
        assert mock.call_count == 1
        assert mock.calls[0]["system_prompt"] == "You are Mira."
        assert "Mira: The river..." in mock.calls[0]["prompt"]

    @pytest.mark.anyio
    async def test_quest_with_numeric_difficulty_and_object_items(self, registry):
        quest = {
            "title": "The Lost Ore",
            "description": "Recover the stolen ore.",
            "objectives": [{"description": "Track the thieves"}, "Return the ore"],
            "rewards": [{"name": "Mithril ring"}, 100],
            "involved_npcs": ["Brom"],
            "difficulty": 3,
        }
        mock = MockLLMClient(default_response=json.dumps(quest))
        synthesizer = EmergentContentSynthesizer(mock, registry)

        content = await synthesizer.synthesize(_messages(("brom", "Thieves!")), CollaborationType.QUEST)

        output = content.structured_output
        assert output.synthesized
        assert output.title == "The Lost Ore"
        assert output.difficulty == "3"
        assert output.objectives == ["Track the thieves", "Return the ore"]
        assert output.rewards == ["Mithril ring", "100"]

    @pytest.mark.anyio
    async def test_quest_fallback_on_malformed_output(self, registry):
        mock = MockLLMClient(default_response="I cannot produce JSON today.")
        synthesizer = EmergentContentSynthesizer(mock, registry)

        content = await synthesizer.synthesize(
            _messages(("mira", "a"), ("brom", "b"), ("mira", "c")),
            CollaborationType.QUEST,
        )

        output = content.structured_output
        assert not output.synthesized
        assert output.title == "Emergent Quest"
        assert output.involved_npcs == ["Mira", "Brom"]

    @pytest.mark.anyio
    async def test_quest_fallback_on_generator_failure(self, registry):
        mock = MockLLMClient(fail_on=["extract a structured quest"])
        synthesizer = EmergentContentSynthesizer(mock, registry)

        content = await synthesizer.synthesize(_messages(("mira", "a")), CollaborationType.QUEST)

        assert not content.structured_output.synthesized

    @pytest.mark.anyio
    async def test_quest_fallback_on_wrong_types(self, registry):
        mock = MockLLMClient(default_response='{"title": "X", "objectives": "not a list"}')
        synthesizer = EmergentContentSynthesizer(mock, registry)

        content = await synthesizer.synthesize(_messages(("mira", "a")), CollaborationType.QUEST)

        assert not content.structured_output.synthesized

    @pytest.mark.anyio
    @pytest.mark.parametrize("collaboration_type, field", [
        (CollaborationType.RELATIONSHIP, "relationships"),
        (CollaborationType.LORE, "fragments"),
        (CollaborationType.DIALOGUE, "nodes"),
    ])
    async def test_local_strategies(self, registry, collaboration_type, field):
        mock = MockLLMClient()
        synthesizer = EmergentContentSynthesizer(mock, registry)

        content = await synthesizer.synthesize(
            _messages(("mira", "Long ago."), ("brom", "Yes.")), collaboration_type
        )

        assert hasattr(content.structured_output, field)
        assert mock.call_count == 0
