from __future__ import annotations

from typing import Any

from ..config import UnknownActionRuleConfig
from ..context import RuleContext
from ..document import ActionType, action_type
from ..models import IssueLevel, NodeKind, RuleCategory
from ..references import is_builtin, known_actions, reference_name
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors


@register_rule
class UNKNOWN_ACTION(Rule):
    code = "unknown action"
    level = IssueLevel.ERROR
    category = RuleCategory.ACTIONS
    title = "Referenced action does not exist"
    config_model = UnknownActionRuleConfig

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        cfg = ctx.rules_config.get_rule_config(self.code, UnknownActionRuleConfig)
        if not cfg.enabled:
            return
        builtin = set(cfg.builtin_actions)

        def on_action(action: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            if action_type(action) is not ActionType.CUSTOM:
                return
            # ("actions", name) is a project action definition, not a call.
            if len(path) == 2 and path[0] == "actions":
                return
            name = reference_name(action)
            if not name or name in builtin or is_builtin(name, cfg.builtin_prefixes):
                return
            if name in known_actions(ctx):
                return
            report({"name": name}, path)

        run_visitors(ctx, [Visitor(NodeKind.ACTION_MODEL, on_action)], report)
