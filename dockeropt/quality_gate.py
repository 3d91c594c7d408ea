from __future__ import annotations

from dockeropt.models import AnalysisResult, ImpactLevel


IMPACT_ORDER: dict[ImpactLevel, int] = {
    "low": 1,
    "medium": 2,
    "high": 3,
}


def evaluate_gate(
    result: AnalysisResult,
    fail_on: ImpactLevel | None = "high",
    max_issues: int | None = None,
    min_score: int | None = None,
) -> tuple[bool, list[str]]:
    failed_reasons: list[str] = []

    if fail_on is not None:
        threshold = IMPACT_ORDER[fail_on]
        if any(IMPACT_ORDER[issue.impact_level] >= threshold for issue in result.issues):
            failed_reasons.append(f"Detected issue impact >= '{fail_on}'")

    if max_issues is not None and len(result.issues) > max_issues:
        failed_reasons.append(f"Issue count {len(result.issues)} exceeds max_issues={max_issues}")

    if min_score is not None and result.score < min_score:
        failed_reasons.append(f"Score {result.score} is below min_score={min_score}")

    return (len(failed_reasons) == 0, failed_reasons)
