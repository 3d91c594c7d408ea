from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
import io
import json
import os
from pathlib import Path
import tempfile
import unittest

from dockeropt.cli import build_parser, main, merge_cli_with_config, resolve_dockerfile_path, validate_config
from dockeropt.config import Config

NAIVE_DOCKERFILE = "FROM node:22\nCOPY . .\nRUN npm install\n"
MEDIUM_ONLY_DOCKERFILE = "FROM node:22-slim AS build\nUSER node\nRUN npm ci --production\n"


def _run(argv: list[str]) -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    with redirect_stdout(stdout), redirect_stderr(stderr):
        try:
            main(argv)
        except SystemExit as exc:
            code = exc.code
        else:
            code = 0
    return code, stdout.getvalue(), stderr.getvalue()


class CLITests(unittest.TestCase):
    def test_version_flag(self) -> None:
        parser = build_parser()
        with self.assertRaises(SystemExit) as exc:
            parser.parse_args(["--version"])
        self.assertEqual(exc.exception.code, 0)

    def test_help_lists_optimization_checks(self) -> None:
        code, stdout, _ = _run(["--help"])
        self.assertEqual(code, 0)
        self.assertIn("Optimization checks:", stdout)
        self.assertIn("Layer order", stdout)
        self.assertIn("Build cache mount", stdout)

    def test_json_flag_sets_output_format(self) -> None:
        args = build_parser().parse_args(["Dockerfile", "--json"])
        merged = merge_cli_with_config(args, Config())
        self.assertEqual(merged.report.output_format, "json")

    def test_validates_gate_values(self) -> None:
        config = Config()
        config.quality_gate.max_issues = -1
        config.quality_gate.min_score = 101
        config.quality_gate.fail_on = "blocker"  # type: ignore[assignment]

        errors = validate_config(config)
        self.assertTrue(any("max_issues" in error for error in errors))
        self.assertTrue(any("min_score" in error for error in errors))
        self.assertTrue(any("fail_on" in error for error in errors))

    def test_resolves_relative_path_against_cwd(self) -> None:
        self.assertEqual(resolve_dockerfile_path("/abs/Dockerfile"), "/abs/Dockerfile")
        self.assertEqual(resolve_dockerfile_path("./Dockerfile"), os.path.join(os.getcwd(), "Dockerfile"))

    def test_missing_file_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = str(Path(tmp) / "Dockerfile")
            code, stdout, stderr = _run([missing])

        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")
        self.assertIn(f"Error: Dockerfile not found at {missing}", stderr)
        self.assertIn("Usage: dockeropt", stderr)

    def test_unreadable_file_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, _, stderr = _run([tmp])

        self.assertEqual(code, 1)
        self.assertIn("Error reading Dockerfile:", stderr)

    def test_high_impact_issue_exits_one(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(NAIVE_DOCKERFILE, encoding="utf-8")
            code, stdout, stderr = _run([str(dockerfile)])

        self.assertEqual(code, 1)
        self.assertIn("## Dockerfile Analysis", stdout)
        self.assertIn("[summary] issues=6", stderr)
        self.assertIn("[gate]", stderr)

    def test_medium_issues_only_exits_zero_with_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            code, stdout, _ = _run([str(dockerfile), "--json"])

        self.assertEqual(code, 0)
        payload = json.loads(stdout)
        self.assertEqual(payload["file"], str(dockerfile))
        self.assertEqual([issue["name"] for issue in payload["issues"]], ["Build cache mount"])
        self.assertEqual(payload["score"], 90)

    def test_defaults_to_dockerfile_in_cwd(self) -> None:
        previous = os.getcwd()
        with tempfile.TemporaryDirectory() as tmp:
            Path(tmp, "Dockerfile").write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            os.chdir(tmp)
            try:
                code, stdout, _ = _run([])
            finally:
                os.chdir(previous)

        self.assertEqual(code, 0)
        self.assertIn("**Score:** 90/100", stdout)

    def test_disable_rule_and_fail_on_flags(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            code, stdout, _ = _run(
                [str(dockerfile), "--json", "--disable-rule", "Build cache mount", "--fail-on", "low"]
            )

        self.assertEqual(code, 0)
        payload = json.loads(stdout)
        self.assertEqual(payload["issues"], [])
        self.assertEqual(len(payload["passing"]), 9)

    def test_unknown_rule_name_is_config_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            code, stdout, stderr = _run([str(dockerfile), "--disable-rule", "Nope"])

        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")
        self.assertIn("[config] Unknown rule name(s): nope", stderr)

    def test_out_writes_report_to_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            out = Path(tmp) / "reports" / "analysis.md"
            code, stdout, _ = _run([str(dockerfile), "--out", str(out)])
            written = out.read_text(encoding="utf-8")

        self.assertEqual(code, 0)
        self.assertEqual(stdout, "")
        self.assertIn("#### 1. Build cache mount (Line 3)", written)

    def test_non_utf8_bytes_are_replaced_not_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_bytes(b"# caf\xe9\nFROM node:22-slim AS build\nUSER node\n")
            code, stdout, stderr = _run([str(dockerfile), "--json"])

        self.assertEqual(code, 0)
        self.assertNotIn("Error reading Dockerfile", stderr)
        payload = json.loads(stdout)
        self.assertEqual(payload["issues"], [])
        self.assertEqual(payload["score"], 100)

    def test_extra_positional_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            code, stdout, _ = _run([str(dockerfile), "extra", "--json"])

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout)["file"], str(dockerfile))

    def test_unknown_flag_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            code, stdout, stderr = _run([str(dockerfile), "--verbose"])

        self.assertEqual(code, 0)
        self.assertIn("**Score:** 90/100", stdout)
        self.assertNotIn("unrecognized arguments", stderr)

    def test_invalid_option_value_exits_one(self) -> None:
        code, stdout, stderr = _run(["Dockerfile", "--fail-on", "blocker"])

        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")
        self.assertIn("--fail-on", stderr)

    def test_non_numeric_gate_value_is_config_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            cfg = Path(tmp) / "dockeropt.toml"
            cfg.write_text('[quality_gate]\nmax_issues = "five"\n', encoding="utf-8")
            code, stdout, stderr = _run([str(dockerfile), "--config", str(cfg)])

        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")
        self.assertIn("[config]", stderr)
        self.assertNotIn("Unexpected error", stderr)

    def test_unexpected_error_exits_one(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            dockerfile = Path(tmp) / "Dockerfile"
            dockerfile.write_text(MEDIUM_ONLY_DOCKERFILE, encoding="utf-8")
            blocker = Path(tmp) / "blocker"
            blocker.write_text("", encoding="utf-8")
            code, _, stderr = _run([str(dockerfile), "--out", str(blocker / "report.md")])

        self.assertEqual(code, 1)
        self.assertIn("Unexpected error:", stderr)


if __name__ == "__main__":
    unittest.main()
