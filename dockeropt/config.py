from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib

from dockeropt.models import ImpactLevel


DEFAULT_CONFIG_FILENAME = "dockeropt.toml"
DEFAULT_DOCKERFILE_PATH = "./Dockerfile"


@dataclass(slots=True)
class ScanConfig:
    enabled_rules: list[str] | None = None
    disabled_rules: list[str] = field(default_factory=list)


@dataclass(slots=True)
class QualityGateConfig:
    fail_on: ImpactLevel | None = "high"
    max_issues: int | None = None
    min_score: int | None = None


@dataclass(slots=True)
class ReportConfig:
    output_format: str = "markdown"
    out: str | None = None


@dataclass(slots=True)
class Config:
    scan: ScanConfig = field(default_factory=ScanConfig)
    quality_gate: QualityGateConfig = field(default_factory=QualityGateConfig)
    report: ReportConfig = field(default_factory=ReportConfig)


def load_config(path: str | None) -> Config:
    if path is None:
        default = Path(DEFAULT_CONFIG_FILENAME)
        if not default.exists():
            return Config()
        path = str(default)

    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with cfg_path.open("rb") as fh:
        payload = tomllib.load(fh)

    scan = payload.get("scan", {})
    quality_gate = payload.get("quality_gate", {})
    report = payload.get("report", {})

    config = Config()
    enabled_rules = scan.get("enabled_rules")
    config.scan.enabled_rules = [str(rule) for rule in enabled_rules] if enabled_rules is not None else None
    config.scan.disabled_rules = [str(rule) for rule in scan.get("disabled_rules", config.scan.disabled_rules)]
    config.quality_gate.fail_on = quality_gate.get("fail_on", config.quality_gate.fail_on)
    max_issues = quality_gate.get("max_issues")
    config.quality_gate.max_issues = int(max_issues) if max_issues is not None else None
    min_score = quality_gate.get("min_score")
    config.quality_gate.min_score = int(min_score) if min_score is not None else None
    config.report.output_format = report.get("format", config.report.output_format)
    config.report.out = report.get("out")
    return config
