from __future__ import annotations

import copy
from typing import Any, Mapping, Optional, Sequence

from ..config import NoReferenceComponentRuleConfig
from ..context import RuleContext
from ..document import mapping
from ..models import IssueLevel, NodeKind, PathSegment, RuleCategory
from ..references import referenced_components
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors


def delete_component(
    *, files: Mapping[str, Any], path: Sequence[PathSegment], data: Any = None
) -> Optional[Mapping[str, Any]]:
    name = path[1] if len(path) > 1 else None
    if name not in mapping(files.get("components")):
        return None
    fixed = copy.deepcopy(dict(files))
    del fixed["components"][name]
    return fixed


@register_rule
class NO_REFERENCE_COMPONENT(Rule):
    code = "no reference component"
    level = IssueLevel.WARNING
    category = RuleCategory.COMPONENTS
    title = "Component is never used"
    config_model = NoReferenceComponentRuleConfig
    fixes = {"delete-component": delete_component}

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        cfg = ctx.rules_config.get_rule_config(self.code, NoReferenceComponentRuleConfig)
        if not cfg.enabled:
            return

        def on_component(component: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            if cfg.ignore_pages and component.get("route"):
                return
            if cfg.ignore_exported and component.get("exported"):
                return
            if path[1] in referenced_components(ctx):
                return
            report({"name": path[1]}, path, ["delete-component"])

        run_visitors(ctx, [Visitor(NodeKind.COMPONENT, on_component)], report)
