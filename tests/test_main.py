"""
tests/test_main.py — Unit tests for the CLI helpers in main.py.

The Reporter is replaced by a MagicMock where console output would get in
the way; file-based tests use pytest's tmp_path.
"""
import json
from unittest.mock import MagicMock

import pytest

from main import build_arg_parser, build_issues, load_payloads, run


def _write_payloads(tmp_path, data) -> str:
    path = tmp_path / "payloads.json"
    path.write_text(json.dumps(data))
    return str(path)


# ---------------------------------------------------------------------------
# build_arg_parser
# ---------------------------------------------------------------------------


class TestArgParser:
    def test_defaults(self):
        args = build_arg_parser().parse_args(["--input", "p.json"])
        assert args.input == "p.json"
        assert args.output == "issues.json"
        assert args.group_variations is False
        assert args.verbose is False

    def test_input_required(self):
        with pytest.raises(SystemExit):
            build_arg_parser().parse_args([])

    def test_flags(self):
        args = build_arg_parser().parse_args(
            ["--input", "p.json", "--output", "r.json", "--group-variations", "--verbose"]
        )
        assert args.output == "r.json"
        assert args.group_variations is True
        assert args.verbose is True


# ---------------------------------------------------------------------------
# load_payloads / build_issues
# ---------------------------------------------------------------------------


class TestLoadPayloads:
    def test_list_document(self, tmp_path):
        path = _write_payloads(tmp_path, [{"name": "A"}, {"name": "B"}])
        assert load_payloads(path) == [{"name": "A"}, {"name": "B"}]

    def test_single_object_wrapped(self, tmp_path):
        path = _write_payloads(tmp_path, {"name": "A"})
        assert load_payloads(path) == [{"name": "A"}]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            load_payloads(str(tmp_path / "nope.json"))

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            load_payloads(str(path))


class TestBuildIssues:
    def test_one_issue_per_payload(self):
        issues = build_issues([
            {"name": "XSS", "issue": {"name": "Cross-Site Scripting", "severity": "High"}},
            {"name": "SQLi", "issue": {"name": "SQL Injection", "weakness_id": "89"}},
        ])
        assert [i.module_name for i in issues] == ["XSS", "SQLi"]
        assert issues[1].weakness_url == "http://cwe.mitre.org/data/definitions/89.html"

    def test_non_object_payload_becomes_empty_issue(self):
        issues = build_issues(["just a string"])
        assert len(issues) == 1
        assert issues[0].references == {}

    def test_non_object_payload_logged(self, caplog):
        with caplog.at_level("WARNING", logger="main"):
            build_issues([42])
        assert caplog.messages == ["Payload #0 is not a JSON object, treated as empty"]


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRun:
    def test_reports_every_issue(self, tmp_path):
        path = _write_payloads(tmp_path, [{"name": "A"}, {"name": "B"}])
        args = build_arg_parser().parse_args(["--input", path, "--group-variations"])
        reporter = MagicMock()
        assert run(args, reporter=reporter) == 0
        assert reporter.log_issue.call_count == 2
        reporter.save.assert_called_once_with(group_variations=True)
        reporter.print_summary.assert_called_once()

    def test_unreadable_input_returns_error(self, tmp_path):
        args = build_arg_parser().parse_args(["--input", str(tmp_path / "nope.json")])
        reporter = MagicMock()
        assert run(args, reporter=reporter) == 1
        reporter.log_error.assert_called_once()
        reporter.save.assert_not_called()

    def test_writes_report_file(self, tmp_path):
        path = _write_payloads(tmp_path, [{"name": "XSS", "issue": {"severity": "Low"}}])
        out = tmp_path / "report.json"
        args = build_arg_parser().parse_args(["--input", path, "--output", str(out)])
        assert run(args) == 0
        data = json.loads(out.read_text())
        assert data[0]["module_name"] == "XSS"
        assert data[0]["severity"] == "Low"
