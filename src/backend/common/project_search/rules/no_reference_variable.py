from __future__ import annotations

import copy
from typing import Any, Mapping, Optional, Sequence, Set

from ..config import RuleConfigBase
from ..context import RuleContext
from ..document import ActionType, action_type, mapping
from ..models import IssueLevel, NodeKind, PathSegment, RuleCategory
from ..references import is_path_referenced
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors, walk_project


def _assigned_variables(files: Mapping[str, Any], component: str) -> Set[str]:
    names: Set[str] = set()

    def collect(action: Any, report: Any, ctx: Any, path: Path) -> None:
        if action_type(action) is ActionType.SET_VARIABLE and isinstance(action.get("name"), str):
            names.add(action["name"])

    visitor = Visitor(NodeKind.ACTION_MODEL, collect)
    for point in walk_project(files, [visitor], paths_to_visit=[["components", component]]):
        point.visitor.visit(point.value, None, point.ctx, point.path)
    return names


def delete_variable(
    *, files: Mapping[str, Any], path: Sequence[PathSegment], data: Any = None
) -> Optional[Mapping[str, Any]]:
    if len(path) < 4:
        return None
    component, name = path[1], path[3]
    variables = mapping(mapping(mapping(files.get("components")).get(component)).get("variables"))
    if name not in variables:
        return None
    # Removing a variable that is still assigned would leave a dangling SetVariable.
    if name in _assigned_variables(files, component):
        return None
    fixed = copy.deepcopy(dict(files))
    del fixed["components"][component]["variables"][name]
    return fixed


@register_rule
class NO_REFERENCE_VARIABLE(Rule):
    code = "no reference variable"
    level = IssueLevel.WARNING
    category = RuleCategory.VARIABLES
    title = "Variable is never read"
    config_model = RuleConfigBase
    fixes = {"delete-variable": delete_variable}

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        cfg = ctx.rules_config.get_rule_config(self.code, RuleConfigBase)
        if not cfg.enabled:
            return

        def on_variable(variable: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            component, name = path[1], path[3]
            if not is_path_referenced(ctx, component, "Variables", name):
                report({"name": name}, path, ["delete-variable"])

        run_visitors(ctx, [Visitor(NodeKind.VARIABLE, on_variable)], report)
