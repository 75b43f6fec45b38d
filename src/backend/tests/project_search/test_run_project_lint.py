import json
from pathlib import Path

from common.project_search.models import IssueLevel, SearchOptions
from pipelines.project_source import get_project_source
from scripts.run_project_lint import main, parse_path, render_markdown, run_project_lint


FIXTURE = Path(__file__).parent / "fixtures" / "storefront.json"


def _issues_by_rule(report):
    found = {}
    for issue in report.issues:
        found.setdefault(issue.rule, []).append(issue.path)
    return found


def test_storefront_lint_is_deterministic():
    files = get_project_source(FIXTURE).load_files()
    report = run_project_lint(files)
    assert _issues_by_rule(report) == {
        "unknown component": [["components", "home", "nodes", "list"]],
        "no reference component": [["components", "legacy-footer"]],
        "no reference variable": [["components", "home", "variables", "cartCount"]],
        "no static node condition": [["components", "home", "nodes", "promo", "condition"]],
        "no unnecessary condition falsy": [["components", "home", "nodes", "promo", "condition"]],
    }
    assert report.totals == {IssueLevel.ERROR: 1, IssueLevel.WARNING: 4}
    assert report.has_errors


def test_lint_options_filter_levels_and_paths():
    files = get_project_source(FIXTURE).load_files()
    report = run_project_lint(files, SearchOptions(levels=["warning"], paths_to_visit=[["components", "home"]]))
    assert set(_issues_by_rule(report)) == {
        "no reference variable",
        "no static node condition",
        "no unnecessary condition falsy",
    }
    assert not report.has_errors


def test_parse_path():
    assert parse_path("components/home/nodes/root") == ["components", "home", "nodes", "root"]
    assert parse_path("/components/home/workflows/w/actions/0/") == [
        "components", "home", "workflows", "w", "actions", 0,
    ]


def test_markdown_report():
    report = run_project_lint(get_project_source(FIXTURE).load_files())
    text = render_markdown(report)
    assert "- error: 1" in text
    assert "### unknown component (error)" in text
    assert "`components/home/nodes/list`" in text


def test_main_writes_report_and_signals_errors(tmp_path):
    out = tmp_path / "report.json"
    assert main([str(FIXTURE), "--output", str(out)]) == 1
    payload = json.loads(out.read_text())
    assert len(payload["issues"]) == 5

    assert main([str(FIXTURE), "--levels", "warning", "--output", str(tmp_path / "w.json")]) == 0


def test_main_applies_fix_to_output(tmp_path):
    out = tmp_path / "fixed.json"
    assert main([str(FIXTURE), "--fix", "no unnecessary condition falsy", "remove-node", "--output", str(out)]) == 0
    saved = json.loads(out.read_text())
    nodes = saved["files"]["components"]["home"]["nodes"]
    assert "promo" not in nodes and "promo-text" not in nodes
    assert nodes["root"]["children"] == ["banner", "list"]
    assert saved["commit"] == "3f9c2a1"
