"""
main.py — Entry point for the Issue Reporter.

Sets up the CLI, configures logging, loads the option payloads emitted by
detection modules, builds one :class:`~Models.Issue` per payload and hands
them to the :class:`~Reporter.Reporter` for live output, the JSON report and
the end-of-run summary.

Usage::

    python main.py --input payloads.json [options]

See ``python main.py --help`` for full documentation.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from Models import Issue
from Reporter import Reporter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI definition
# ---------------------------------------------------------------------------


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="issue-reporter",
        description="Build vulnerability issue records from module payloads and report them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=r"""
Examples
────────
  Basic report:
    python main.py --input payloads.json

  Group repeated issues and write to a custom file:
    python main.py --input payloads.json \
                   --group-variations \
                   --output report.json --verbose
        """,
    )

    # ── Input ─────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--input",
        required=True,
        metavar="FILE",
        help="JSON file holding one option payload or a list of them (required)",
    )

    # ── Output ────────────────────────────────────────────────────────────────
    out = parser.add_argument_group("output")
    out.add_argument(
        "--output",
        default="issues.json",
        metavar="FILE",
        help="JSON report output path (default: issues.json)",
    )
    out.add_argument(
        "--group-variations",
        action="store_true",
        default=False,
        help=(
            "Merge issues sharing module, name, URL, variable and element into "
            "one entry whose 'variations' lists every occurrence."
        ),
    )
    out.add_argument(
        "--verbose",
        action="store_true",
        help="Enable DEBUG-level logging",
    )

    return parser


# ---------------------------------------------------------------------------
# Payload loading
# ---------------------------------------------------------------------------


def load_payloads(path: str) -> list[Any]:
    """Read *path* and return its option payloads as a list.

    A top-level JSON object is treated as a single payload.  Raises
    ``OSError`` or ``json.JSONDecodeError`` when the file cannot be used.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, list):
        return data
    return [data]


def build_issues(payloads: list[Any]) -> list[Issue]:
    """Construct one :class:`Issue` per payload, logging unassigned keys."""
    issues = []
    for index, payload in enumerate(payloads):
        if not isinstance(payload, dict):
            logger.warning("Payload #%d is not a JSON object, treated as empty", index)
        issue = Issue(payload)
        if issue.skipped_keys:
            logger.debug(
                "Payload #%d: skipped keys %s", index, ", ".join(issue.skipped_keys)
            )
        issues.append(issue)
    return issues


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(args: argparse.Namespace, reporter: Optional[Reporter] = None) -> int:
    """Load payloads, report every issue, and return the exit status."""
    reporter = reporter or Reporter(output_file=args.output)
    reporter.print_banner()

    try:
        payloads = load_payloads(args.input)
    except (OSError, json.JSONDecodeError) as exc:
        reporter.log_error(f"Cannot read payloads from {args.input}: {exc}")
        return 1

    reporter.log_info(f"Input:       [bold cyan]{args.input}[/bold cyan]")
    reporter.log_info(f"Payloads:    {len(payloads)}")

    for issue in build_issues(payloads):
        reporter.log_issue(issue)

    reporter.save(group_variations=args.group_variations)
    reporter.print_summary()
    return 0


def main() -> None:
    """Parse arguments, configure logging, and run."""
    parser = build_arg_parser()
    args = parser.parse_args()

    # ── Logging setup ─────────────────────────────────────────────────────────
    log_level = logging.DEBUG if args.verbose else logging.ERROR
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    sys.exit(run(args))


if __name__ == "__main__":
    main()
