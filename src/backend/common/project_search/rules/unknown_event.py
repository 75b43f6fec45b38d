from __future__ import annotations

from typing import Any

from ..config import UnknownEventRuleConfig
from ..context import RuleContext, component_name
from ..document import ActionType, NodeType, action_type, declared_event_names, entries, mapping, node_type
from ..models import IssueLevel, NodeKind, RuleCategory
from ..references import reference_name
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors


@register_rule
class UNKNOWN_EVENT(Rule):
    code = "unknown event"
    level = IssueLevel.ERROR
    category = RuleCategory.EVENTS
    title = "Event is not declared by its component"
    config_model = UnknownEventRuleConfig

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        cfg = ctx.rules_config.get_rule_config(self.code, UnknownEventRuleConfig)
        if not cfg.enabled:
            return

        def on_node(node: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            if node_type(node) is not NodeType.COMPONENT:
                return
            target = ctx.get_component(node.get("name"), node.get("package"))
            if target is None:
                # Missing components are reported by "unknown component".
                return
            declared = declared_event_names(target)
            for key, _ in entries(mapping(node.get("events"))):
                if key not in declared:
                    report({"name": key, "component": reference_name(node)}, path + ("events", key))

        def on_action(action: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            component = component_name(path)
            if component is None or action_type(action) is not ActionType.TRIGGER_EVENT:
                return
            name = action.get("name")
            declared = declared_event_names(mapping(ctx.files.get("components")).get(component))
            if isinstance(name, str) and name not in declared:
                report({"name": name}, path)

        visitors = [Visitor(NodeKind.COMPONENT_NODE, on_node)]
        if cfg.check_trigger_event_actions:
            visitors.append(Visitor(NodeKind.ACTION_MODEL, on_action))
        run_visitors(ctx, visitors, report)
