from __future__ import annotations

from typing import Any

from ..config import UnknownComponentRuleConfig
from ..context import RuleContext
from ..document import NodeType, node_type, qualified_name
from ..models import IssueLevel, NodeKind, RuleCategory
from ..references import is_builtin, known_components, reference_name
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors


@register_rule
class UNKNOWN_COMPONENT(Rule):
    code = "unknown component"
    level = IssueLevel.ERROR
    category = RuleCategory.COMPONENTS
    title = "Referenced component does not exist"
    config_model = UnknownComponentRuleConfig

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        cfg = ctx.rules_config.get_rule_config(self.code, UnknownComponentRuleConfig)
        if not cfg.enabled:
            return

        def check(name: str, path: Path) -> None:
            if not name or is_builtin(name, cfg.builtin_prefixes):
                return
            if name in known_components(ctx) or ctx.get_component(name) is not None:
                return
            report({"name": name}, path)

        def on_node(node: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            if node_type(node) is NodeType.COMPONENT:
                check(reference_name(node), path)

        def on_context(context: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            name = context.get("componentName") or path[-1]
            if isinstance(name, str):
                check(qualified_name(name, context.get("package")), path)

        run_visitors(
            ctx,
            [
                Visitor(NodeKind.COMPONENT_NODE, on_node),
                Visitor(NodeKind.CONTEXT, on_context),
            ],
            report,
        )
