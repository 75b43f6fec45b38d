import copy

import pytest

from common.project_search.config import ProjectRulesConfig, SearchConfig
from common.project_search.models import IssueLevel, NodeKind, RuleCategory, SearchOptions
from common.project_search.patches import apply_patches
from common.project_search.rule import Rule
from common.project_search.runner import FixIterationLimitExceeded, SearchRunner
from common.project_search.walker import Visitor, run_visitors


class ComponentNameRule(Rule):
    """Reports every component and offers the `mark` fix."""

    code = "component name"
    level = IssueLevel.INFO
    category = RuleCategory.COMPONENTS

    def visit(self, report, ctx):
        def on_component(component, report, ctx, path):
            report({"name": path[1]}, path, ["mark"])

        run_visitors(ctx, [Visitor(NodeKind.COMPONENT, on_component)], report)


class VariableRule(Rule):
    code = "every variable"
    level = IssueLevel.ERROR
    category = RuleCategory.VARIABLES

    def visit(self, report, ctx):
        def on_variable(variable, report, ctx, path):
            report(None, path)

        run_visitors(ctx, [Visitor(NodeKind.VARIABLE, on_variable)], report)


def _mark(*, files, path, data=None):
    component = files["components"][path[1]]
    if component.get("marked"):
        return None
    fixed = copy.deepcopy(files)
    fixed["components"][path[1]]["marked"] = True
    return fixed


def _never_settles(*, files, path, data=None):
    fixed = copy.deepcopy(files)
    fixed["components"][path[1]]["counter"] = files["components"][path[1]].get("counter", 0) + 1
    return fixed


class MarkRule(ComponentNameRule):
    code = "mark components"
    fixes = {"mark": _mark}


class RunawayRule(ComponentNameRule):
    code = "runaway"
    fixes = {"mark": _never_settles}


@pytest.fixture
def runner():
    return SearchRunner(rules=[ComponentNameRule(), VariableRule()], config=SearchConfig())


@pytest.fixture
def two_components(make_project, make_component):
    return make_project(
        components={
            "A": make_component(variables={"x": {}, "y": {}}),
            "B": make_component(variables={"z": {}}),
        }
    )


def test_batch_all_responds_once(runner, two_components):
    calls = []
    issues = runner.find_problems(two_components, calls.append, options={"batchSize": "all"})
    assert len(calls) == 1
    assert [i.rule for i in calls[0]] == ["component name"] * 2 + ["every variable"] * 3
    assert calls[0] == issues


def test_batch_all_responds_even_without_issues(runner, make_project):
    calls = []
    runner.find_problems(make_project(), calls.append, options=SearchOptions(batch_size="all"))
    assert calls == [[]]


def test_batch_per_file_groups_within_each_rule(runner, two_components):
    calls = []
    runner.find_problems(two_components, calls.append)
    assert [(batch[0].rule, batch[0].path[1], len(batch)) for batch in calls] == [
        ("component name", "A", 1),
        ("component name", "B", 1),
        ("every variable", "A", 2),
        ("every variable", "B", 1),
    ]


def test_single_rule_two_components_per_file(two_components):
    calls = []
    SearchRunner(rules=[ComponentNameRule()], config=SearchConfig()).find_problems(
        two_components, calls.append, options={"batchSize": "per-file"}
    )
    assert len(calls) == 2


def test_numeric_batch_size_chunks_each_rule(runner, two_components):
    calls = []
    runner.find_problems(two_components, calls.append, options={"batchSize": 2})
    assert [len(batch) for batch in calls] == [2, 2, 1]


def test_default_batch_size_comes_from_config(two_components):
    calls = []
    runner = SearchRunner(rules=[VariableRule()], config=SearchConfig(batch_size="all"))
    runner.find_problems(two_components, calls.append)
    assert len(calls) == 1


def test_invalid_batch_size_is_rejected():
    with pytest.raises(ValueError):
        SearchOptions(batch_size=0)


def test_rule_selection_by_level_and_code(runner, two_components):
    issues = runner.find_problems(two_components, lambda batch: None, options={"levels": ["error"]})
    assert {i.rule for i in issues} == {"every variable"}
    issues = runner.find_problems(two_components, lambda batch: None, options={"rules": ["component name"]})
    assert {i.rule for i in issues} == {"component name"}


def test_disabled_rule_is_skipped(runner, two_components):
    cfg = ProjectRulesConfig(rules={"every variable": {"enabled": False}})
    issues = runner.find_problems(two_components, lambda batch: None, rules_config=cfg)
    assert {i.rule for i in issues} == {"component name"}


def test_issues_carry_rule_metadata(runner, two_components):
    issues = runner.find_problems(two_components, lambda batch: None)
    first = issues[0]
    assert first.level == IssueLevel.INFO
    assert first.category == RuleCategory.COMPONENTS
    assert first.path == ["components", "A"]
    assert first.fixes == ["mark"]
    assert issues[2].fixes is None


def test_paths_to_visit_limits_reported_issues(runner, two_components):
    issues = runner.find_problems(
        two_components, lambda batch: None, options={"pathsToVisit": [["components", "B"]]}
    )
    assert [i.path for i in issues] == [["components", "B"], ["components", "B", "variables", "z"]]


def test_fix_problems_unknown_rule_or_fix_responds_empty(two_components):
    runner = SearchRunner(rules=[MarkRule()], config=SearchConfig())
    calls = []
    assert runner.fix_problems(two_components, "missing", "mark", calls.append) == []
    assert runner.fix_problems(two_components, "mark components", "missing", calls.append) == []
    assert calls == [[], []]


def test_fix_problems_patches_replay_onto_original(two_components):
    runner = SearchRunner(rules=[MarkRule()], config=SearchConfig())
    calls = []
    patches = runner.fix_problems(two_components, "mark components", "mark", calls.append)
    assert calls == [patches]
    assert [(p.op, p.path) for p in patches] == [
        ("add", "/components/A/marked"),
        ("add", "/components/B/marked"),
    ]
    fixed = apply_patches(two_components, patches)
    assert fixed["components"]["A"]["marked"] is True
    assert "marked" not in two_components["components"]["A"]


def test_fix_project_reaches_fixed_point(two_components):
    runner = SearchRunner(rules=[MarkRule()], config=SearchConfig())
    fixed = runner.fix_project(two_components, "mark components", "mark")
    assert all(component["marked"] for component in fixed["components"].values())
    assert runner.fix_project(fixed, "mark components", "mark") == fixed


def test_fix_project_raises_when_fix_never_settles(two_components):
    runner = SearchRunner(rules=[RunawayRule()], config=SearchConfig(max_fix_iterations=3))
    with pytest.raises(FixIterationLimitExceeded) as exc_info:
        runner.fix_project(two_components, "runaway", "mark")
    assert exc_info.value.iterations == 3
    assert exc_info.value.files["components"]["A"]["counter"] == 3
    with pytest.raises(FixIterationLimitExceeded):
        runner.fix_project(two_components, "runaway", "mark", max_iterations=1)


def test_rules_share_one_memo_per_call(two_components):
    seen = []

    class MemoRule(VariableRule):
        code = "memo probe"

        def visit(self, report, ctx):
            seen.append(ctx.memo)
            ctx.memo("count", lambda: len(seen))

    class OtherMemoRule(MemoRule):
        code = "memo probe 2"

    runner = SearchRunner(rules=[MemoRule(), OtherMemoRule()], config=SearchConfig())
    runner.find_problems(two_components, lambda batch: None)
    runner.find_problems(two_components, lambda batch: None)
    assert seen[0] is seen[1]
    assert seen[2] is not seen[0]
    assert seen[0]("count", lambda: 99) == 1


def test_rule_without_code_is_rejected():
    class Nameless(VariableRule):
        code = ""

    with pytest.raises(ValueError):
        Nameless()
