from __future__ import annotations

import copy
from typing import Any, Mapping, Optional, Sequence

from ..config import RuleConfigBase
from ..context import RuleContext
from ..document import mapping
from ..models import IssueLevel, NodeKind, PathSegment, RuleCategory
from ..references import is_path_referenced
from ..registry import register_rule
from ..rule import Reporter, Rule
from ..walker import Path, Visitor, run_visitors


def delete_attribute(
    *, files: Mapping[str, Any], path: Sequence[PathSegment], data: Any = None
) -> Optional[Mapping[str, Any]]:
    if len(path) < 4:
        return None
    component, name = path[1], path[3]
    attributes = mapping(mapping(mapping(files.get("components")).get(component)).get("attributes"))
    if name not in attributes:
        return None
    fixed = copy.deepcopy(dict(files))
    del fixed["components"][component]["attributes"][name]
    return fixed


@register_rule
class NO_REFERENCE_ATTRIBUTE(Rule):
    code = "no reference attribute"
    level = IssueLevel.WARNING
    category = RuleCategory.ATTRIBUTES
    title = "Attribute is never read"
    config_model = RuleConfigBase
    fixes = {"delete-attribute": delete_attribute}

    def visit(self, report: Reporter, ctx: RuleContext) -> None:
        cfg = ctx.rules_config.get_rule_config(self.code, RuleConfigBase)
        if not cfg.enabled:
            return

        def on_attribute(attribute: Any, report: Reporter, ctx: RuleContext, path: Path) -> None:
            component, name = path[1], path[3]
            if not is_path_referenced(ctx, component, "Attributes", name):
                report({"name": name}, path, ["delete-attribute"])

        run_visitors(ctx, [Visitor(NodeKind.ATTRIBUTE, on_attribute)], report)
