from __future__ import annotations

from typing import Any

from ..config import UnknownFormulaRuleConfig
from ..context import RuleContext, component_name
from ..document import FormulaType, formula_type, mapping, sequence
from ..models import IssueLevel, NodeKind, RuleCategory
from ..references import is_builtin, known_formulas, reference_name
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors


@register_rule
class UNKNOWN_FORMULA(Rule):
    code = "unknown formula"
    level = IssueLevel.ERROR
    category = RuleCategory.FORMULAS
    title = "Referenced formula does not exist"
    config_model = UnknownFormulaRuleConfig

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        cfg = ctx.rules_config.get_rule_config(self.code, UnknownFormulaRuleConfig)
        if not cfg.enabled:
            return

        def local_formulas(path: Path) -> Any:
            component = mapping(mapping(ctx.files.get("components")).get(component_name(path)))
            return mapping(component.get("formulas"))

        def on_formula(formula: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            kind = formula_type(formula)
            if kind is FormulaType.FUNCTION:
                name = reference_name(formula)
                if not name or is_builtin(name, cfg.builtin_prefixes):
                    return
                if name in known_formulas(ctx) or name in local_formulas(path):
                    return
                report({"name": name}, path)
            elif kind is FormulaType.PATH:
                segments = sequence(formula.get("path"))
                if len(segments) < 2 or segments[0] != "Formulas" or not isinstance(segments[1], str):
                    return
                if segments[1] in local_formulas(path) or segments[1] in known_formulas(ctx):
                    return
                report({"name": segments[1]}, path)

        run_visitors(ctx, [Visitor(NodeKind.FORMULA, on_formula)], report)
