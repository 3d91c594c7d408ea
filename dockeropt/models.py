from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Literal

ImpactLevel = Literal["high", "medium", "low"]


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    description: str
    bad_pattern: re.Pattern[str]
    remedy_text: str
    impact_level: ImpactLevel
    build_time_impact_minutes: float
    size_impact_mb: float
    good_pattern: re.Pattern[str] | None = None


@dataclass(frozen=True, slots=True)
class Issue:
    name: str
    line_number: int
    current_evidence: str
    remedy_text: str
    impact_level: ImpactLevel


@dataclass(frozen=True, slots=True)
class CacheHitRate:
    current: str
    optimized: str


@dataclass(frozen=True, slots=True)
class Summary:
    current_build_time_label: str
    optimized_build_time_label: str
    current_size_label: str
    optimized_size_label: str
    cache_hit_rate: CacheHitRate


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    file_path: str
    issues: tuple[Issue, ...]
    passing_names: tuple[str, ...]
    summary: Summary
    score: int
