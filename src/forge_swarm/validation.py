"""
Cross-validation review pass over generated collaboration content.
"""

import logging
from typing import Any

from .config import CollaborationConfig
from .extraction import parse_validation_scores
from .llm_client import TextGenerator
from .models import Agent, ValidationResult, ValidationScores, ValidatorScore
from .parallel_executor import ParallelExecutor
from .prompts import make_validation_prompt
from .registry import AgentRegistry

logger = logging.getLogger("forge-swarm")

MIN_AGENTS_FOR_VALIDATION = 2
MAX_VALIDATORS = 3
VALIDATION_THRESHOLD = 7


class CrossValidator:
    """
    Asks a sample of registered agents to score already-generated content.

    Validators are the first ``min(3, config.max_validators)`` agents in
    registration order. Calls run concurrently; a validator whose call fails
    or whose response lacks a ``SCORES:`` line is dropped.
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

    def select_validators(self) -> list[Agent]:
        return self.registry.values()[:min(MAX_VALIDATORS, self.config.max_validators)]

    async def validate(self, content: Any) -> ValidationResult:
        if len(self.registry) < MIN_AGENTS_FOR_VALIDATION:
            return ValidationResult(
                validated=True,
                confidence=1.0,
                note="Insufficient agents for cross-validation",
            )

        validators = self.select_validators()

        async def _review(agent: Agent) -> ValidatorScore | None:
            response = await self.generator.generate(
                make_validation_prompt(agent, content),
                temperature=self.config.validation_temperature,
                max_tokens=self.config.max_tokens,
            )
            return parse_validation_scores(response, agent.name)

        outcomes = await ParallelExecutor().run_all(validators, _review)

        scores: list[ValidatorScore] = []
        for agent, outcome in zip(validators, outcomes):
            if not outcome.ok:
                logger.error(f"Validation failed for agent {agent.name}: {outcome.error}")
            elif outcome.value is None:
                logger.warning(f"Validator {agent.name} returned no parsable scores")
            else:
                scores.append(outcome.value)

        if not scores:
            return ValidationResult(validated=False, confidence=0.0, note="All validations failed")

        count = len(scores)
        averages = ValidationScores(
            consistency=sum(s.consistency for s in scores) / count,
            authenticity=sum(s.authenticity for s in scores) / count,
            quality=sum(s.quality for s in scores) / count,
        )

        result = ValidationResult(
            validated=(
                averages.consistency >= VALIDATION_THRESHOLD
                and averages.authenticity >= VALIDATION_THRESHOLD
            ),
            confidence=(averages.consistency + averages.authenticity + averages.quality) / 30,
            scores=averages,
            validator_count=count,
            details=scores,
        )
        logger.info(
            f"Cross-validation by {count} validator(s): validated={result.validated}, "
            f"confidence={result.confidence:.2f}"
        )
        return result


__all__ = ["CrossValidator", "MIN_AGENTS_FOR_VALIDATION", "VALIDATION_THRESHOLD"]
