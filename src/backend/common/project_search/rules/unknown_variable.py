from __future__ import annotations

from typing import Any

from ..config import UnknownVariableRuleConfig
from ..context import RuleContext, component_name
from ..document import ActionType, FormulaType, action_type, formula_type, mapping, sequence
from ..models import IssueLevel, NodeKind, RuleCategory
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors


@register_rule
class UNKNOWN_VARIABLE(Rule):
    code = "unknown variable"
    level = IssueLevel.ERROR
    category = RuleCategory.VARIABLES
    title = "Referenced variable is not declared"
    config_model = UnknownVariableRuleConfig

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        cfg = ctx.rules_config.get_rule_config(self.code, UnknownVariableRuleConfig)
        if not cfg.enabled:
            return

        def declared(component: str) -> Any:
            return mapping(mapping(mapping(ctx.files.get("components")).get(component)).get("variables"))

        def on_formula(formula: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            component = component_name(path)
            if component is None or formula_type(formula) is not FormulaType.PATH:
                return
            segments = sequence(formula.get("path"))
            if len(segments) < 2 or segments[0] != "Variables" or not isinstance(segments[1], str):
                return
            if segments[1] not in declared(component):
                report({"name": segments[1]}, path)

        def on_action(action: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            component = component_name(path)
            if component is None or action_type(action) is not ActionType.SET_VARIABLE:
                return
            name = action.get("name")
            if isinstance(name, str) and name not in declared(component):
                report({"name": name}, path)

        visitors = [Visitor(NodeKind.FORMULA, on_formula)]
        if cfg.check_set_variable_actions:
            visitors.append(Visitor(NodeKind.ACTION_MODEL, on_action))
        run_visitors(ctx, visitors, report)
