"""
Domain service: pipeline aggregation.

Pure business logic. Reduces the terminal stage records of one pipeline
run to an Aggregate.

Success probability:
    completed / total. Warning, failed and cancelled stages all stay in
    the denominator, so a cancelled run reports the share of the whole
    catalog that actually completed.

Risk level:
    > 0.9 low, > 0.7 medium, otherwise high.

Security score:
    Mean over security-category stages of 1.0 (completed), 0.5 (warning)
    or 0.0 (anything else), scaled to 0..100.
"""

import logging
from typing import Iterable, Sequence

from intentflow.domain.command.entities import (
    Aggregate,
    RiskLevel,
    Stage,
    StageCategory,
    StageId,
    StageStatus,
)

logger = logging.getLogger(__name__)

STATIC_RECOMMENDATIONS: tuple[str, ...] = (
    "Transaction appears safe to execute",
    "Consider setting a slippage tolerance of 0.5%",
    "Gas fees are currently optimal",
    "Market conditions are favorable",
    "Security checks passed successfully",
)

NOT_AVAILABLE = "n/a"

_SECURITY_WEIGHT = {
    StageStatus.COMPLETED: 1.0,
    StageStatus.WARNING: 0.5,
}


def risk_level_for(success_probability: float) -> RiskLevel:
    """Map a success probability to a risk level."""
    if success_probability > 0.9:
        return RiskLevel.LOW
    if success_probability > 0.7:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


class PipelineAggregator:
    """Computes the Aggregate of a finished pipeline run.

    Args:
        derive_recommendations: When True, collect recommendations from
            the stage results instead of returning the static list.
    """

    def __init__(self, derive_recommendations: bool = False) -> None:
        self._derive = derive_recommendations

    def aggregate(self, stages: Sequence[Stage]) -> Aggregate:
        """Aggregate terminal stages.

        Args:
            stages: Every stage of the run; all must be terminal.

        Returns:
            The run's Aggregate.
        """
        total = len(stages)
        completed = sum(1 for s in stages if s.status is StageStatus.COMPLETED)
        probability = completed / total if total else 0.0
        risk = risk_level_for(probability)

        aggregate = Aggregate(
            success_probability=probability,
            risk_level=risk,
            recommendations=self._recommendations(stages),
            estimated_gas=self._result_field(stages, StageId.GAS_OPTIMIZATION, "estimatedGas"),
            estimated_time=self._result_field(
                stages, StageId.EXECUTION_PLANNING, "estimatedTime"
            ),
            security_score=self._security_score(stages),
        )
        logger.debug(
            "Aggregated %d stages: %d completed, probability=%.3f, risk=%s",
            total,
            completed,
            probability,
            risk.value,
        )
        return aggregate

    def _recommendations(self, stages: Iterable[Stage]) -> tuple[str, ...]:
        if not self._derive:
            return STATIC_RECOMMENDATIONS

        collected: list[str] = []
        for stage in stages:
            if stage.status is StageStatus.CANCELLED or not stage.result:
                continue
            for item in stage.result.get("recommendations", ()):
                if item not in collected:
                    collected.append(item)
        return tuple(collected) or STATIC_RECOMMENDATIONS

    @staticmethod
    def _result_field(stages: Iterable[Stage], stage_id: StageId, key: str) -> str:
        for stage in stages:
            if stage.id is stage_id and stage.result and key in stage.result:
                return str(stage.result[key])
        return NOT_AVAILABLE

    @staticmethod
    def _security_score(stages: Iterable[Stage]) -> int:
        weights = [
            _SECURITY_WEIGHT.get(s.status, 0.0)
            for s in stages
            if s.category is StageCategory.SECURITY
        ]
        if not weights:
            return 0
        return round(100 * sum(weights) / len(weights))
