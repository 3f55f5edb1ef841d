"""
Playtester swarm: one generator call per registered tester, then aggregation.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from shortuuid import random

from .aggregation import aggregate_test_results, build_consensus, generate_recommendations
from .config import SwarmConfig
from .exceptions import GeneratorFailure, SwarmConfigurationError
from .extraction import parse_test_result
from .llm_client import TextGenerator
from .models import SwarmPlaytestResult, TestResult, Tester, Verdict
from .parallel_executor import ParallelExecutor
from .personas import build_tester
from .prompts import make_playtest_prompt
from .registry import AgentRegistry

logger = logging.getLogger("forge-swarm")


def failed_test_result(tester: Tester, error: BaseException | str) -> TestResult:
    """Sentinel record for a tester whose generator call failed."""
    message = str(error)
    return TestResult(
        tester_id=tester.id,
        tester_name=tester.name,
        archetype=tester.archetype,
        knowledge_level=tester.knowledge_level,
        success=False,
        error=message,
        completed=False,
        difficulty=0,
        engagement=0,
        bugs=[],
        confusion_points=[],
        feedback=f"Test failed: {message}",
        recommendation=Verdict.FAIL,
    )


class PlaytesterSwarm:
    """
    Runs a swarm of synthetic playtesters over one piece of content.

    A failed tester call never aborts the run: it is recorded as a failed
    TestResult and the remaining testers proceed.

    Attributes:
        generator: Text generator used for every tester
        config: Swarm settings
        registry: Registered testers, in insertion order
    """

    def __init__(self, generator: TextGenerator, config: SwarmConfig | None = None):
        self.generator = generator
        self.config = config or SwarmConfig()
        self.registry: AgentRegistry[Tester] = AgentRegistry()

    def register_tester(self, tester: Tester | str | dict[str, Any]) -> Tester:
        """Register a Tester, a persona key or a custom profile mapping."""
        if not isinstance(tester, Tester):
            tester = build_tester(tester)
        self.registry.register(tester)
        logger.info(
            f"Registered tester: {tester.name} "
            f"({tester.archetype}, {tester.knowledge_level.value})"
        )
        return tester

    async def run_single_test(self, tester: Tester, content: Any) -> TestResult:
        """Run one tester; generator errors become a failed TestResult."""
        logger.debug(f"[{tester.name}] Starting playtest")
        try:
            response = await self.generator.generate(
                make_playtest_prompt(tester, content),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except Exception as e:
            failure = GeneratorFailure(str(e), agent_name=tester.name)
            logger.error(f"[{failure.agent_name}] Playtest failed: {failure.message}")
            return failed_test_result(tester, failure.message)

        result = parse_test_result(response, tester)
        logger.info(
            f"[{tester.name}] Completed: {len(result.bugs)} bugs, "
            f"engagement {result.engagement}/10, recommendation {result.recommendation.value}"
        )
        return result

    async def run_swarm_playtest(
        self,
        content: Any,
        testers: Iterable[Tester | str | dict[str, Any]] | None = None,
    ) -> SwarmPlaytestResult:
        """
        Test ``content`` with every registered tester and aggregate the results.

        Args:
            content: Structured content payload (quest, dialogue, ...)
            testers: Optional testers to register before starting

        Raises:
            SwarmConfigurationError: If no testers are registered
        """
        for tester in testers or ():
            self.register_tester(tester)

        registered = self.registry.values()
        if not registered:
            raise SwarmConfigurationError(
                "No testers registered. Add testers before running playtest."
            )

        session_id = f"playtest_{random(length=8)}"
        mode = "parallel" if self.config.parallel else "sequential"
        logger.info(f"Running swarm playtest {session_id} with {len(registered)} testers ({mode})")

        executor = ParallelExecutor(self.config.max_concurrent)

        async def _test(tester: Tester) -> TestResult:
            return await self.run_single_test(tester, content)

        if self.config.parallel:
            outcomes = await executor.run_all(registered, _test)
        else:
            outcomes = await executor.run_sequential(registered, _test)

        results = [
            outcome.value if outcome.ok else failed_test_result(tester, outcome.error)
            for tester, outcome in zip(registered, outcomes)
        ]

        for result in results:
            self._update_tester_stats(result)

        measured = (
            [r for r in results if r.success]
            if self.config.exclude_failed_from_metrics
            else results
        )
        metrics = aggregate_test_results(measured)

        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning(f"{failed} of {len(results)} playtests failed in {session_id}")
        logger.info(f"Swarm playtest {session_id} found {metrics.unique_bugs} unique issues")

        return SwarmPlaytestResult(
            session_id=session_id,
            test_count=len(results),
            individual_results=results,
            aggregated_metrics=metrics,
            consensus=build_consensus(measured),
            recommendations=generate_recommendations(metrics),
        )

    def _update_tester_stats(self, result: TestResult) -> None:
        tester = self.registry.get(result.tester_id)
        if tester is None:
            return
        tester.tests_completed += 1
        tester.bugs_found += len(result.bugs)
        tester.average_engagement = (
            tester.average_engagement * (tester.tests_completed - 1) + result.engagement
        ) / tester.tests_completed

    def get_stats(self) -> dict[str, Any]:
        testers = self.registry.values()
        return {
            "tester_count": len(testers),
            "total_tests_run": sum(t.tests_completed for t in testers),
            "total_bugs_found": sum(t.bugs_found for t in testers),
            "tester_breakdown": [
                {
                    "name": t.name,
                    "archetype": t.archetype,
                    "knowledge_level": t.knowledge_level.value,
                    "tests_completed": t.tests_completed,
                    "bugs_found": t.bugs_found,
                    "average_engagement": round(t.average_engagement, 1),
                }
                for t in testers
            ],
        }

    def reset(self) -> None:
        """Reset tester statistics; registrations are kept."""
        for tester in self.registry:
            tester.tests_completed = 0
            tester.bugs_found = 0
            tester.average_engagement = 0.0
        logger.info("Playtester swarm reset")


__all__ = ["PlaytesterSwarm", "failed_test_result"]
