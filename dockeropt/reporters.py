from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from dockeropt.models import AnalysisResult, CacheHitRate, ImpactLevel, Issue, Summary

IMPACT_DESCRIPTIONS: dict[ImpactLevel, str] = {
    "high": "significantly affects build time or image size",
    "medium": "moderate effect on performance",
    "low": "minor improvement or best practice",
}
OUTPUT_FORMATS = ("markdown", "json")


def _issue_to_dict(issue: Issue) -> dict[str, Any]:
    return {
        "name": issue.name,
        "line": issue.line_number,
        "current": issue.current_evidence,
        "fix": issue.remedy_text,
        "impact": issue.impact_level,
    }


def _issue_from_dict(payload: dict[str, Any]) -> Issue:
    return Issue(
        name=payload["name"],
        line_number=int(payload["line"]),
        current_evidence=payload["current"],
        remedy_text=payload["fix"],
        impact_level=payload["impact"],
    )


def to_json_report(result: AnalysisResult) -> dict[str, Any]:
    summary = result.summary
    return {
        "file": result.file_path,
        "issues": [_issue_to_dict(issue) for issue in result.issues],
        "passing": list(result.passing_names),
        "summary": {
            "currentBuildTime": summary.current_build_time_label,
            "optimizedBuildTime": summary.optimized_build_time_label,
            "currentSize": summary.current_size_label,
            "optimizedSize": summary.optimized_size_label,
            "cacheHitRate": {
                "current": summary.cache_hit_rate.current,
                "optimized": summary.cache_hit_rate.optimized,
            },
        },
        "score": result.score,
    }


def from_json_report(payload: dict[str, Any]) -> AnalysisResult:
    summary = payload["summary"]
    return AnalysisResult(
        file_path=payload["file"],
        issues=tuple(_issue_from_dict(issue) for issue in payload["issues"]),
        passing_names=tuple(payload["passing"]),
        summary=Summary(
            current_build_time_label=summary["currentBuildTime"],
            optimized_build_time_label=summary["optimizedBuildTime"],
            current_size_label=summary["currentSize"],
            optimized_size_label=summary["optimizedSize"],
            cache_hit_rate=CacheHitRate(
                current=summary["cacheHitRate"]["current"],
                optimized=summary["cacheHitRate"]["optimized"],
            ),
        ),
        score=int(payload["score"]),
    )


def to_markdown_report(result: AnalysisResult) -> str:
    lines: list[str] = [
        "## Dockerfile Analysis",
        "",
        f"**File:** `{result.file_path}`",
        f"**Score:** {result.score}/100",
        "",
    ]

    if not result.issues:
        lines.extend(
            [
                "### No Issues Found",
                "",
                "Your Dockerfile follows optimization best practices.",
                "",
            ]
        )
    else:
        lines.extend(["### Issues Found", ""])
        for index, issue in enumerate(result.issues, start=1):
            lines.extend(
                [
                    f"#### {index}. {issue.name} (Line {issue.line_number})",
                    "",
                    "**Current:**",
                    "```dockerfile",
                    issue.current_evidence,
                    "```",
                    "",
                    f"**Fix:** {issue.remedy_text}",
                    "",
                    f"**Impact:** {issue.impact_level.capitalize()} - {IMPACT_DESCRIPTIONS[issue.impact_level]}",
                    "",
                    "---",
                    "",
                ]
            )

    if result.passing_names:
        lines.extend(["### Passing Checks", ""])
        lines.extend(f"- [x] {name}" for name in result.passing_names)
        lines.append("")

    summary = result.summary
    lines.extend(
        [
            "### Summary",
            "",
            "| Metric | Current | Optimized |",
            "|--------|---------|-----------|",
            f"| Build time | {summary.current_build_time_label} | {summary.optimized_build_time_label} |",
            f"| Image size | {summary.current_size_label} | {summary.optimized_size_label} |",
            f"| Cache hit rate | {summary.cache_hit_rate.current} | {summary.cache_hit_rate.optimized} |",
            "",
        ]
    )
    return "\n".join(lines)


def render_report(result: AnalysisResult, output_format: str) -> str:
    if output_format == "json":
        return json.dumps(to_json_report(result), indent=2, ensure_ascii=False)
    if output_format == "markdown":
        return to_markdown_report(result)
    raise ValueError(f"Unsupported report format: {output_format}")


def write_report(rendered: str, out: str | None) -> None:
    if out is None:
        print(rendered)
        return
    output_path = Path(out)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(rendered, encoding="utf-8")
