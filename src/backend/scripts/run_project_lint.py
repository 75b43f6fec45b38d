from __future__ import annotations

import argparse
import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping


def _ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    if str(backend_dir) not in sys.path:
        sys.path.insert(0, str(backend_dir))


_ensure_backend_on_path()

from common.project_search.config import parse_batch_size  # noqa: E402
from common.project_search.models import Issue, IssueLevel, IssueReport, SearchOptions  # noqa: E402
from common.project_search.runner import FixIterationLimitExceeded, SearchRunner  # noqa: E402
from pipelines.project_source import get_project_source  # noqa: E402

logger = logging.getLogger("scripts.run_project_lint")


def parse_path(raw: str) -> list[str | int]:
    """`components/home/nodes/root` -> ["components", "home", "nodes", "root"]; digits become indexes."""
    segments: list[str | int] = []
    for token in raw.strip("/").split("/"):
        if not token:
            continue
        segments.append(int(token) if token.isdigit() else token)
    return segments


def run_project_lint(
    files: Mapping[str, Any],
    options: SearchOptions | None = None,
    *,
    runner: SearchRunner | None = None,
) -> IssueReport:
    runner = runner or SearchRunner()
    issues: list[Issue] = []
    runner.find_problems(files, issues.extend, options=options)

    totals: dict[IssueLevel, int] = {}
    for issue in issues:
        totals[issue.level] = totals.get(issue.level, 0) + 1

    return IssueReport(
        run_id=str(uuid.uuid4()),
        generated_at=datetime.now(timezone.utc),
        issues=issues,
        totals=totals,
    )


def render_markdown(report: IssueReport) -> str:
    lines = [
        "# Project Lint",
        "",
        f"Generated at: {report.generated_at.isoformat()}",
        "",
        "## Totals",
    ]
    for level in IssueLevel:
        lines.append(f"- {level.value}: {report.totals.get(level, 0)}")
    lines.append("")
    lines.append("## Issues")
    for issue in report.issues:
        location = "/".join(str(segment) for segment in issue.path)
        lines.append("")
        lines.append(f"### {issue.rule} ({issue.level.value})")
        lines.append(f"- Path: `{location}`")
        lines.append(f"- Category: {issue.category.value}")
        if issue.data is not None:
            lines.append(f"- Data: `{json.dumps(issue.data, sort_keys=True, default=str)}`")
        if issue.fixes:
            lines.append(f"- Fixes: {', '.join(issue.fixes)}")
    return "\n".join(lines)


def render_json(report: IssueReport) -> str:
    return json.dumps(report.model_dump(mode="json"), indent=2)


def build_options(args: argparse.Namespace) -> SearchOptions:
    values: dict[str, Any] = {}
    if args.levels:
        values["levels"] = [level.strip() for level in args.levels.split(",") if level.strip()]
    if args.rule:
        values["rules"] = list(args.rule)
    if args.path:
        values["paths_to_visit"] = [parse_path(p) for p in args.path]
    if args.batch_size:
        values["batch_size"] = parse_batch_size(args.batch_size)
    return SearchOptions(**values)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Lint a project document and optionally apply a fix until nothing is left to fix."
    )
    parser.add_argument("project", help="Path to the project JSON (bare files tree or export envelope).")
    parser.add_argument(
        "--levels",
        default=None,
        help="Comma-separated issue levels to report (error,warning,info).",
    )
    parser.add_argument(
        "--rule",
        action="append",
        default=None,
        help="Rule code to run; repeat to run several (default: all rules).",
    )
    parser.add_argument(
        "--path",
        action="append",
        default=None,
        help="Only report issues under this path prefix, e.g. components/home (repeatable).",
    )
    parser.add_argument(
        "--batch-size",
        default=None,
        help="Delivery batching: 'all', 'per-file' or a positive integer.",
    )
    parser.add_argument(
        "--format",
        choices=("json", "markdown"),
        default="json",
        help="Report format (default: json).",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write the report (or the fixed project with --fix) to this path instead of stdout/in place.",
    )
    parser.add_argument(
        "--fix",
        nargs=2,
        metavar=("RULE", "FIX_TYPE"),
        default=None,
        help="Apply a rule's fix repeatedly and save the resulting project.",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Give up fixing after this many passes (default: LAYR_SEARCH_MAX_FIX_ITERATIONS).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Validate the project against the document schema before linting.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        options = build_options(args)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    source = get_project_source(args.project, validate=args.strict)
    files = source.load_files()

    if args.fix:
        fix_rule, fix_type = args.fix
        try:
            fixed = SearchRunner().fix_project(
                files, fix_rule, fix_type, options=options, max_iterations=args.max_iterations
            )
        except FixIterationLimitExceeded as exc:
            logger.error("%s", exc)
            return 2
        source.save_files(dict(fixed), path=Path(args.output) if args.output else None)
        return 0

    report = run_project_lint(files, options)
    rendered = render_markdown(report) if args.format == "markdown" else render_json(report)
    if args.output:
        Path(args.output).write_text(rendered)
        print(f"Wrote {args.output}")
    else:
        print(rendered)
    logger.info("Found %d issue(s).", len(report.issues))
    return 1 if report.has_errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
