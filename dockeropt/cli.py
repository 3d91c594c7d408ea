from __future__ import annotations

import argparse
from collections import Counter
import os
from pathlib import Path
import sys

from dockeropt import __version__
from dockeropt.analyzer import analyze
from dockeropt.config import DEFAULT_DOCKERFILE_PATH, Config, load_config
from dockeropt.models import AnalysisResult
from dockeropt.quality_gate import IMPACT_ORDER, evaluate_gate
from dockeropt.reporters import OUTPUT_FORMATS, render_report, write_report
from dockeropt.rules import DOCKER_OPTIMIZATIONS, select_rules

USAGE_REMINDER = "Usage: dockeropt [dockerfile-path]"


def _build_epilog() -> str:
    checks = "\n".join(f"  - {rule.name} ({rule.description})" for rule in DOCKER_OPTIMIZATIONS)
    return (
        "Examples:\n"
        "  dockeropt\n"
        "  dockeropt ./Dockerfile\n"
        "  dockeropt /path/to/Dockerfile --json\n"
        "\n"
        "Optimization checks:\n"
        f"{checks}\n"
        "\n"
        "Exit status is 1 when a high-impact issue is found (see --fail-on), 0 otherwise."
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dockeropt",
        description="Analyze a Dockerfile for faster builds and smaller images.",
        epilog=_build_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "path",
        nargs="?",
        default=DEFAULT_DOCKERFILE_PATH,
        help=f"Path to Dockerfile (default: {DEFAULT_DOCKERFILE_PATH}).",
    )
    parser.add_argument("--json", action="store_true", help="Output results as JSON.")
    parser.add_argument("--format", choices=list(OUTPUT_FORMATS), help="Report output format.")
    parser.add_argument("--out", help="Write report to file. Defaults to stdout.")
    parser.add_argument("--config", help="Path to dockeropt TOML config.")
    parser.add_argument("--enable-rule", action="append", default=[], help="Only run the named check (repeatable).")
    parser.add_argument("--disable-rule", action="append", default=[], help="Skip the named check (repeatable).")
    parser.add_argument("--fail-on", choices=list(IMPACT_ORDER), help="Fail on issues of this impact or higher.")
    parser.add_argument("--max-issues", type=int, help="Fail if issue count exceeds this number.")
    parser.add_argument("--min-score", type=int, help="Fail if the score is below this value (0-100).")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    try:
        args, extras = parser.parse_known_args(argv)
    except SystemExit as exc:
        # Invalid option values are usage errors; --help and --version exit 0.
        raise SystemExit(1 if exc.code else 0) from None
    # Unknown flags and extra positionals are ignored; the first bare one names the file.
    positionals = [arg for arg in extras if not arg.startswith("-")]
    if args.path == DEFAULT_DOCKERFILE_PATH and positionals:
        args.path = positionals[0]
    try:
        exit_code = run_analyze(args)
    except Exception as exc:
        print(f"Unexpected error: {exc}", file=sys.stderr)
        exit_code = 1
    raise SystemExit(exit_code)


def run_analyze(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config)
    except (OSError, TypeError, ValueError) as exc:
        print(f"[config] {exc}", file=sys.stderr)
        return 1
    merged = merge_cli_with_config(args, config)
    validation_errors = validate_config(merged)
    if validation_errors:
        for error in validation_errors:
            print(f"[config] {error}", file=sys.stderr)
        return 1

    try:
        rules = select_rules(merged.scan.enabled_rules, merged.scan.disabled_rules)
    except ValueError as exc:
        print(f"[config] {exc}", file=sys.stderr)
        return 1

    dockerfile_path = resolve_dockerfile_path(args.path)
    if not Path(dockerfile_path).exists():
        print(f"Error: Dockerfile not found at {dockerfile_path}", file=sys.stderr)
        print("", file=sys.stderr)
        print(USAGE_REMINDER, file=sys.stderr)
        return 1

    try:
        content = Path(dockerfile_path).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        print(f"Error reading Dockerfile: {exc}", file=sys.stderr)
        return 1

    result = analyze(content, dockerfile_path, rules=rules)
    write_report(render_report(result, merged.report.output_format), merged.report.out)
    print_summary(result)

    passed, reasons = evaluate_gate(
        result,
        fail_on=merged.quality_gate.fail_on,
        max_issues=merged.quality_gate.max_issues,
        min_score=merged.quality_gate.min_score,
    )
    if not passed:
        for reason in reasons:
            print(f"[gate] {reason}", file=sys.stderr)
        return 1
    return 0


def resolve_dockerfile_path(input_path: str) -> str:
    if os.path.isabs(input_path):
        return input_path
    return os.path.abspath(os.path.join(os.getcwd(), input_path))


def merge_cli_with_config(args: argparse.Namespace, config: Config) -> Config:
    merged = config
    if args.enable_rule:
        merged.scan.enabled_rules = list(dict.fromkeys([*(merged.scan.enabled_rules or []), *args.enable_rule]))
    if args.disable_rule:
        merged.scan.disabled_rules = list(dict.fromkeys([*merged.scan.disabled_rules, *args.disable_rule]))
    if args.format:
        merged.report.output_format = args.format
    if args.json:
        merged.report.output_format = "json"
    if args.out:
        merged.report.out = args.out
    if args.fail_on:
        merged.quality_gate.fail_on = args.fail_on
    if args.max_issues is not None:
        merged.quality_gate.max_issues = args.max_issues
    if args.min_score is not None:
        merged.quality_gate.min_score = args.min_score
    return merged


def print_summary(result: AnalysisResult) -> None:
    counts = Counter(issue.impact_level for issue in result.issues)
    print(
        f"[summary] issues={len(result.issues)} "
        f"high={counts.get('high', 0)} medium={counts.get('medium', 0)} low={counts.get('low', 0)} "
        f"passing={len(result.passing_names)} score={result.score}",
        file=sys.stderr,
    )


def validate_config(config: Config) -> list[str]:
    errors: list[str] = []
    if config.quality_gate.fail_on is not None and config.quality_gate.fail_on not in IMPACT_ORDER:
        errors.append("fail_on must be one of: low, medium, high")
    if config.quality_gate.max_issues is not None and config.quality_gate.max_issues < 0:
        errors.append("max_issues must be >= 0")
    if config.quality_gate.min_score is not None:
        if config.quality_gate.min_score < 0 or config.quality_gate.min_score > 100:
            errors.append("min_score must be between 0 and 100")
    if config.report.output_format not in OUTPUT_FORMATS:
        errors.append(f"format must be one of: {', '.join(OUTPUT_FORMATS)}")
    if config.scan.enabled_rules is not None and len(config.scan.enabled_rules) == 0:
        errors.append("enabled_rules must be non-empty when set")
    return errors


if __name__ == "__main__":
    main()
