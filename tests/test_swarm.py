"""
Tests for the PlaytesterSwarm executor.

Tests cover:
- One generator call per tester, parallel and sequential
- Partial failure isolation and both aggregation policies
- Tester statistics, registration, stats and reset
"""

import pytest

from forge_swarm.config import SwarmConfig
from forge_swarm.exceptions import SwarmConfigurationError
from forge_swarm.llm_client import MockLLMClient
from forge_swarm.models import KnowledgeLevel, Verdict
from forge_swarm.swarm import PlaytesterSwarm, failed_test_result

QUEST = {"title": "Ore for the Smith", "objectives": ["Find ore", "Return it"]}


def _swarm(mock, make_tester, count=5, **config):
    swarm = PlaytesterSwarm(mock, SwarmConfig(**config))
    for i in range(1, count + 1):
        swarm.register_tester(make_tester(f"t{i}"))
    return swarm


class TestSwarmRun:
    """Test fan-out and aggregation."""

    @pytest.mark.anyio
    async def test_one_call_per_tester(self, make_tester, good_report):
        mock = MockLLMClient(default_response=good_report)
        swarm = _swarm(mock, make_tester)

        result = await swarm.run_swarm_playtest(QUEST)

        assert mock.call_count == 5
        assert result.test_count == 5
        assert [r.tester_id for r in result.individual_results] == ["t1", "t2", "t3", "t4", "t5"]
        assert all(call["temperature"] == 0.7 for call in mock.calls)
        assert "Ore for the Smith" in mock.calls[0]["prompt"]

    @pytest.mark.anyio
    async def test_failed_tester_counts_as_incomplete_by_default(self, make_tester, good_report):
        mock = MockLLMClient(default_response=good_report, fail_on=["You are Tester t3,"])
        swarm = _swarm(mock, make_tester)

        result = await swarm.run_swarm_playtest(QUEST)

        assert len(result.individual_results) == 5
        failed = result.individual_results[2]
        assert failed.tester_id == "t3"
        assert not failed.success
        assert failed.bugs == []
        assert failed.engagement == 0
        assert failed.recommendation == Verdict.FAIL
        assert "Mock failure" in failed.error

        metrics = result.aggregated_metrics
        assert metrics.total_tests == 5
        assert metrics.completion_rate == pytest.approx(80.0)
        assert metrics.average_engagement == pytest.approx(8.0)
        assert metrics.recommendations[Verdict.FAIL] == 1

    @pytest.mark.anyio
    async def test_failed_tester_excluded_when_configured(self, make_tester, good_report):
        mock = MockLLMClient(default_response=good_report, fail_on=["You are Tester t3,"])
        swarm = _swarm(mock, make_tester, exclude_failed_from_metrics=True)

        result = await swarm.run_swarm_playtest(QUEST)

        assert result.test_count == 5
        assert not result.individual_results[2].success
        metrics = result.aggregated_metrics
        assert metrics.total_tests == 4
        assert metrics.completion_rate == pytest.approx(100.0)
        assert metrics.recommendations[Verdict.FAIL] == 0
        assert result.consensus.recommendation == Verdict.PASS_WITH_CHANGES

    @pytest.mark.anyio
    async def test_sequential_mode(self, make_tester, good_report):
        mock = MockLLMClient(default_response=good_report)
        swarm = _swarm(mock, make_tester, count=3, parallel=False)

        result = await swarm.run_swarm_playtest(QUEST)

        assert result.test_count == 3
        assert ["Tester t1" in c["prompt"] for c in mock.calls] == [True, False, False]
        assert "Tester t3" in mock.calls[2]["prompt"]

    @pytest.mark.anyio
    async def test_bugs_are_deduplicated_across_testers(self, make_tester, good_report):
        mock = MockLLMClient(default_response=good_report)
        swarm = _swarm(mock, make_tester, count=3)

        result = await swarm.run_swarm_playtest(QUEST)

        metrics = result.aggregated_metrics
        assert metrics.unique_bugs == 2
        assert metrics.bug_reports[0].report_count == 3
        assert metrics.major_bugs == 3
        assert metrics.minor_bugs == 3

    @pytest.mark.anyio
    async def test_zero_testers_raises(self):
        swarm = PlaytesterSwarm(MockLLMClient())
        with pytest.raises(SwarmConfigurationError):
            await swarm.run_swarm_playtest(QUEST)

    @pytest.mark.anyio
    async def test_testers_can_be_passed_to_run(self, good_report):
        mock = MockLLMClient(default_response=good_report)
        swarm = PlaytesterSwarm(mock)

        result = await swarm.run_swarm_playtest(QUEST, testers=["casual", "breaker"])

        assert result.test_count == 2
        assert result.session_id.startswith("playtest_")


class TestTesterStats:
    """Test running statistics, registration and reset."""

    @pytest.mark.anyio
    async def test_stats_updated_for_every_result(self, make_tester, good_report):
        mock = MockLLMClient(default_response=good_report, fail_on=["You are Tester t2,"])
        swarm = _swarm(mock, make_tester, count=2)

        await swarm.run_swarm_playtest(QUEST)
        await swarm.run_swarm_playtest(QUEST)

        t1 = swarm.registry.get("t1")
        t2 = swarm.registry.get("t2")
        assert (t1.tests_completed, t1.bugs_found, t1.average_engagement) == (2, 4, 8.0)
        assert (t2.tests_completed, t2.bugs_found, t2.average_engagement) == (2, 0, 0.0)

        stats = swarm.get_stats()
        assert stats["tester_count"] == 2
        assert stats["total_tests_run"] == 4
        assert stats["total_bugs_found"] == 4

    @pytest.mark.anyio
    async def test_reset(self, make_tester, good_report):
        swarm = _swarm(MockLLMClient(default_response=good_report), make_tester, count=2)
        await swarm.run_swarm_playtest(QUEST)

        swarm.reset()

        assert all(t.tests_completed == 0 and t.bugs_found == 0 for t in swarm.registry)
        assert len(swarm.registry) == 2

    def test_register_persona_and_custom_profile(self):
        swarm = PlaytesterSwarm(MockLLMClient())
        breaker = swarm.register_tester("breaker")
        custom = swarm.register_tester({"name": "Pat", "knowledge_level": "beginner"})

        assert breaker.knowledge_level == KnowledgeLevel.EXPERT
        assert breaker.id.startswith("tester_")
        assert custom.archetype == "casual"
        assert custom.knowledge_level == KnowledgeLevel.BEGINNER
        assert len(swarm.registry) == 2

    def test_failed_test_result(self, make_tester):
        result = failed_test_result(make_tester("t9"), "timeout")
        assert not result.success
        assert result.feedback == "Test failed: timeout"
        assert result.difficulty == 0
        assert not result.completed
