"""Interchangeable strategies that turn a feature vector into a 0-100 score."""
import math
from typing import Protocol

from feasibility.engine.policy import DEFAULT_POLICY, CombineOp, ScoringPolicy
from feasibility.models.scoring import StumpContribution

_EPSILON = 1e-6


def _clamp_score(raw: float) -> int:
    if not math.isfinite(raw):
        return 0
    return int(round(min(100.0, max(0.0, raw))))


def combine(op: CombineOp, a: float, b: float) -> float:
    if op == "multiply":
        return a * b
    if op == "divide":
        return a / max(b, _EPSILON)
    if op == "min":
        return min(a, b)
    if op == "max":
        return max(a, b)
    raise ValueError(f"Unknown combine op: {op}")


class ScoringStrategy(Protocol):
    name: str

    def score(self, features: dict[str, float]) -> tuple[int, list[StumpContribution]]:
        ...


class WeightedAverageStrategy:
    """Weighted factor mean scaled by a stepped budget multiplier in [0.40, 1.15]."""
    name = "weighted"

    def __init__(self, policy: ScoringPolicy = DEFAULT_POLICY):
        self.policy = policy

    def budget_multiplier(self, ratio: float) -> tuple[float, float]:
        """Return (multiplier, threshold of the step that matched)."""
        for step in self.policy.budget_steps:
            if ratio >= step.min_ratio:
                return step.multiplier, step.min_ratio
        last = self.policy.budget_steps[-1] if self.policy.budget_steps else None
        return (last.multiplier, last.min_ratio) if last else (1.0, 0.0)

    def score(self, features: dict[str, float]) -> tuple[int, list[StumpContribution]]:
        mean = features["weighted_score"]
        ratio = features["budget_ratio"]
        multiplier, threshold = self.budget_multiplier(ratio)
        adjusted = mean * multiplier
        contribution = StumpContribution(
            name="budget_multiplier",
            features=["weighted_score", "budget_ratio"],
            value=ratio,
            threshold=threshold,
            contribution=round(adjusted - mean, 4),
            rationale=f"Factor mean {mean:.1f} x budget multiplier {multiplier:.2f}",
        )
        return _clamp_score(adjusted), [contribution]


class EnsembleStrategy:
    """Additive ensemble of expert decision stumps starting from a base prediction.

    Each single-feature stump adds ``left * weight`` when the feature is at or
    below its threshold and ``right * weight`` otherwise; interaction stumps do
    the same on a combination of two features. Contributions are summed onto
    the base prediction and clamped to [0, 100].
    """
    name = "ensemble"

    def __init__(self, policy: ScoringPolicy = DEFAULT_POLICY):
        self.policy = policy

    def score(self, features: dict[str, float]) -> tuple[int, list[StumpContribution]]:
        total = self.policy.base_prediction
        contributions: list[StumpContribution] = []

        for stump in self.policy.stumps:
            value = features[stump.feature]
            leaf = stump.left if value <= stump.threshold else stump.right
            delta = leaf * stump.weight
            total += delta
            contributions.append(StumpContribution(
                name=stump.name,
                features=[stump.feature],
                value=round(value, 4),
                threshold=stump.threshold,
                contribution=delta,
                rationale=stump.rationale,
            ))

        for stump in self.policy.interactions:
            value = combine(stump.op, features[stump.feature_a], features[stump.feature_b])
            leaf = stump.left if value <= stump.threshold else stump.right
            delta = leaf * stump.weight
            total += delta
            contributions.append(StumpContribution(
                name=stump.name,
                features=[stump.feature_a, stump.feature_b],
                value=round(value, 4),
                threshold=stump.threshold,
                contribution=delta,
                rationale=stump.rationale,
            ))

        return _clamp_score(total), contributions


_STRATEGIES = {
    WeightedAverageStrategy.name: WeightedAverageStrategy,
    EnsembleStrategy.name: EnsembleStrategy,
}


def get_strategy(name: str | None = None, policy: ScoringPolicy = DEFAULT_POLICY) -> ScoringStrategy:
    key = (name or EnsembleStrategy.name).strip().lower()
    if key not in _STRATEGIES:
        raise ValueError(f"Unknown scoring strategy '{name}'. Choose from: {', '.join(sorted(_STRATEGIES))}")
    return _STRATEGIES[key](policy)
