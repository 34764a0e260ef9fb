from feasibility.engine.policy import VerdictPolicy
from feasibility.models.scoring import Verdict


def assign_verdict(
    score: int,
    budget_fit_percent: int,
    min_factor_score: float,
    policy: VerdictPolicy,
    previous: Verdict | None = None,
) -> tuple[Verdict, list[str]]:
    """Map score plus guard metrics to GO / CAUTION / AVOID.

    AVOID floors are OR'd and checked first, so a high score can never
    outvote a catastrophically short budget. GO needs every gate.

    ``previous`` is the verdict a stored report held before a rescore. The
    score thresholds then lean toward it by ``policy.hysteresis_band`` so a
    score hovering at a boundary does not flip the verdict back and forth.
    """
    go_min, avoid_below = policy.score_thresholds(previous)

    avoid_reasons = []
    if score < avoid_below:
        avoid_reasons.append(f"Score {score} is below the AVOID threshold of {avoid_below}")
    if budget_fit_percent < policy.critical_budget_fit:
        avoid_reasons.append(
            f"Budget covers only {budget_fit_percent}% of the setup cost "
            f"(critical floor {policy.critical_budget_fit}%)"
        )
    if avoid_reasons:
        return "AVOID", avoid_reasons

    blockers = []
    if score < go_min:
        blockers.append(f"Score {score} is below the GO threshold of {go_min}")
    if budget_fit_percent < policy.go_min_budget_fit:
        blockers.append(
            f"Budget fit {budget_fit_percent}% is below the GO guard of {policy.go_min_budget_fit}%"
        )
    if min_factor_score < policy.risk_floor_factor_score:
        blockers.append(
            f"A critical factor scored {min_factor_score:.0f}, under the risk floor of "
            f"{policy.risk_floor_factor_score}"
        )
    if blockers:
        return "CAUTION", blockers

    return "GO", [
        f"Score {score} >= {go_min} with budget fit {budget_fit_percent}% "
        f">= {policy.go_min_budget_fit}%"
    ]
