"""Rules for node conditions that can be decided without runtime data."""

from __future__ import annotations

import copy
from typing import Any, Mapping, Optional, Sequence, Set, Tuple

from ..config import RuleConfigBase
from ..context import RuleContext
from ..contextless import contextless_evaluate_formula, is_always_true, is_truthy
from ..document import mapping, node_children
from ..models import IssueLevel, NodeKind, PathSegment, RuleCategory
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors


def _condition_target(path: Sequence[PathSegment]) -> Optional[Tuple[str, str]]:
    """(component, node id) when `path` points at a node condition."""
    if (
        len(path) == 5
        and path[0] == "components"
        and path[2] == "nodes"
        and path[4] == "condition"
        and isinstance(path[1], str)
        and isinstance(path[3], str)
    ):
        return path[1], path[3]
    return None


def _static_condition(files: Mapping[str, Any], path: Sequence[PathSegment]) -> Optional[Tuple[str, str, bool]]:
    target = _condition_target(path)
    if target is None:
        return None
    component, node_id = target
    node = mapping(mapping(mapping(mapping(files.get("components")).get(component)).get("nodes")).get(node_id))
    if "condition" not in node:
        return None
    evaluated = contextless_evaluate_formula(node["condition"])
    if not evaluated.is_static:
        return None
    return component, node_id, is_truthy(evaluated.result)


def remove_condition(
    *, files: Mapping[str, Any], path: Sequence[PathSegment], data: Any = None
) -> Optional[Mapping[str, Any]]:
    """Drop a condition that always holds; the node renders unconditionally."""
    found = _static_condition(files, path)
    if found is None or not found[2]:
        return None
    component, node_id, _ = found
    fixed = copy.deepcopy(dict(files))
    del fixed["components"][component]["nodes"][node_id]["condition"]
    return fixed


def remove_node(
    *, files: Mapping[str, Any], path: Sequence[PathSegment], data: Any = None
) -> Optional[Mapping[str, Any]]:
    """Delete a node whose condition never holds, with its subtree and parent references."""
    found = _static_condition(files, path)
    if found is None or found[2]:
        return None
    component, node_id, _ = found
    if node_id == "root":
        return None

    fixed = copy.deepcopy(dict(files))
    nodes = fixed["components"][component]["nodes"]

    doomed: Set[str] = set()
    pending = [node_id]
    while pending:
        current = pending.pop()
        if current in doomed or current not in nodes:
            continue
        doomed.add(current)
        pending.extend(node_children(nodes[current]))

    for key in doomed:
        del nodes[key]
    for node in nodes.values():
        children = mapping(node).get("children")
        if isinstance(children, list) and any(isinstance(child, str) and child in doomed for child in children):
            node["children"] = [child for child in children if not (isinstance(child, str) and child in doomed)]
    return fixed


def _node_conditions(ctx: RuleContext, report: Reporter, check) -> None:
    def on_formula(formula: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
        if _condition_target(path) is not None:
            check(formula, report, path)

    run_visitors(ctx, [Visitor(NodeKind.FORMULA, on_formula)], report)


@register_rule
class NO_STATIC_NODE_CONDITION(Rule):
    code = "no static node condition"
    level = IssueLevel.WARNING
    category = RuleCategory.LOGIC
    title = "Node condition is statically known"
    config_model = RuleConfigBase
    fixes = {"remove-condition": remove_condition, "remove-node": remove_node}

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        if not ctx.rules_config.get_rule_config(self.code, RuleConfigBase).enabled:
            return

        def check(formula: Any, report: Reporter, path: Path) -> None:
            evaluated = contextless_evaluate_formula(formula, max_depth=ctx.config.max_formula_depth)
            if not evaluated.is_static:
                return
            truthy = is_truthy(evaluated.result)
            report(
                {"isTruthy": truthy, "value": evaluated.result},
                path,
                ["remove-condition"] if truthy else ["remove-node"],
            )

        _node_conditions(ctx, report, check)


@register_rule
class NO_UNNECESSARY_CONDITION_TRUTHY(Rule):
    code = "no unnecessary condition truthy"
    level = IssueLevel.WARNING
    category = RuleCategory.LOGIC
    title = "Node condition is always true"
    config_model = RuleConfigBase
    fixes = {"remove-condition": remove_condition}

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        if not ctx.rules_config.get_rule_config(self.code, RuleConfigBase).enabled:
            return

        def check(formula: Any, report: Reporter, path: Path) -> None:
            if is_always_true(formula, max_depth=ctx.config.max_formula_depth):
                report(None, path, ["remove-condition"])

        _node_conditions(ctx, report, check)


@register_rule
class NO_UNNECESSARY_CONDITION_FALSY(Rule):
    code = "no unnecessary condition falsy"
    level = IssueLevel.WARNING
    category = RuleCategory.LOGIC
    title = "Node condition is never true"
    config_model = RuleConfigBase
    fixes = {"remove-node": remove_node}

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        if not ctx.rules_config.get_rule_config(self.code, RuleConfigBase).enabled:
            return

        def check(formula: Any, report: Reporter, path: Path) -> None:
            evaluated = contextless_evaluate_formula(formula, max_depth=ctx.config.max_formula_depth)
            if evaluated.is_static and not is_truthy(evaluated.result):
                report(None, path, ["remove-node"])

        _node_conditions(ctx, report, check)
