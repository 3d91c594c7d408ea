from __future__ import annotations

import re

from dockeropt.models import AnalysisResult, CacheHitRate, ImpactLevel, Issue, Rule, Summary
from dockeropt.rules import DOCKER_OPTIMIZATIONS

BASE_SCORE = 100
IMPACT_DEDUCTIONS: dict[ImpactLevel, int] = {
    "high": 20,
    "medium": 10,
    "low": 5,
}
BASE_BUILD_TIME_MINUTES = 2
MIN_BUILD_TIME_MINUTES = 1
BASE_IMAGE_SIZE_MB = 400
MIN_IMAGE_SIZE_MB = 100
MAX_EVIDENCE_LINES = 3
EVIDENCE_PLACEHOLDER = "Pattern detected"
CACHE_SENSITIVE_MARKERS = ("Layer", "cache")


def analyze(
    text: str,
    file_path: str,
    rules: tuple[Rule, ...] = DOCKER_OPTIMIZATIONS,
) -> AnalysisResult:
    issues: list[Issue] = []
    passing_names: list[str] = []
    total_build_time_savings: float = 0
    total_size_savings: float = 0

    for rule in rules:
        # Absence rules match the empty string at offset 0; an empty file has nothing to flag.
        has_bad = bool(text) and rule.bad_pattern.search(text) is not None
        has_good = rule.good_pattern is not None and rule.good_pattern.search(text) is not None

        if has_bad and not has_good:
            issues.append(
                Issue(
                    name=rule.name,
                    line_number=_find_line_number(text, rule.bad_pattern),
                    current_evidence=_extract_matching_code(text, rule.bad_pattern) or EVIDENCE_PLACEHOLDER,
                    remedy_text=rule.remedy_text,
                    impact_level=rule.impact_level,
                )
            )
            total_build_time_savings += rule.build_time_impact_minutes
            total_size_savings += rule.size_impact_mb
        else:
            passing_names.append(rule.name)

    return AnalysisResult(
        file_path=file_path,
        issues=tuple(issues),
        passing_names=tuple(passing_names),
        summary=build_summary(issues, total_build_time_savings, total_size_savings),
        score=compute_score(issues),
    )


def compute_score(issues: list[Issue] | tuple[Issue, ...]) -> int:
    deductions = sum(IMPACT_DEDUCTIONS[issue.impact_level] for issue in issues)
    return max(0, BASE_SCORE - deductions)


def build_summary(
    issues: list[Issue] | tuple[Issue, ...],
    total_build_time_savings: float,
    total_size_savings: float,
) -> Summary:
    # Heuristic estimates: every detected issue is assumed fully recoverable.
    current_build_time = BASE_BUILD_TIME_MINUTES + total_build_time_savings
    optimized_build_time = max(MIN_BUILD_TIME_MINUTES, current_build_time - total_build_time_savings)
    current_size = BASE_IMAGE_SIZE_MB + total_size_savings
    optimized_size = max(MIN_IMAGE_SIZE_MB, current_size - total_size_savings)

    cache_unfriendly = any(
        marker in issue.name for issue in issues for marker in CACHE_SENSITIVE_MARKERS
    )
    return Summary(
        current_build_time_label=f"~{_format_number(current_build_time)} min",
        optimized_build_time_label=f"~{_format_number(optimized_build_time)} min",
        current_size_label=f"~{_format_number(current_size)}MB",
        optimized_size_label=f"~{_format_number(optimized_size)}MB",
        cache_hit_rate=CacheHitRate(
            current="Low" if cache_unfriendly else "Medium",
            optimized="High",
        ),
    )


def _find_line_number(text: str, pattern: re.Pattern[str]) -> int:
    match = pattern.search(text)
    if match is None:
        return 1
    return text.count("\n", 0, match.start()) + 1


def _extract_matching_code(text: str, pattern: re.Pattern[str]) -> str:
    match = pattern.search(text)
    if match is None:
        return ""
    lines = match.group(0).split("\n")[:MAX_EVIDENCE_LINES]
    return "\n".join(lines).strip()


def _format_number(value: float) -> str:
    # 2.0 -> "2", 2.5 -> "2.5"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))
