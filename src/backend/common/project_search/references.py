"""Project-wide reference indexes shared between rules through the run memo."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Mapping, Set

from .context import RuleContext, component_name
from .document import (
    FormulaType,
    NodeType,
    entries,
    formula_type,
    mapping,
    node_type,
    package_name,
    qualified_name,
    sequence,
)
from .models import NodeKind
from .walker import Path, Visitor, walk_project

PathIndex = Dict[str, Dict[str, Set[str]]]


def _collect(ctx: RuleContext, kind: NodeKind, collect: Callable[[Any, Path], None]) -> None:
    # Indexes always see the whole project; `paths_to_visit` only narrows reporting.
    visitor = Visitor(node_type=kind, visit=lambda value, report, ctx, path: collect(value, path))
    for point in walk_project(ctx.files, [visitor], ctx=ctx):
        point.visitor.visit(point.value, _discard, point.ctx, point.path)


def _discard(data: Any, path: Any, fixes: Any = None) -> None:
    return None


def path_references(ctx: RuleContext) -> PathIndex:
    """component name -> root path segment ("Variables", "Attributes", ...) -> names read."""

    def build() -> PathIndex:
        index: PathIndex = {}

        def collect(formula: Any, path: Path) -> None:
            component = component_name(path)
            if component is None or formula_type(formula) is not FormulaType.PATH:
                return
            segments = sequence(formula.get("path"))
            if len(segments) < 2 or not isinstance(segments[0], str) or not isinstance(segments[1], str):
                return
            index.setdefault(component, {}).setdefault(segments[0], set()).add(segments[1])

        _collect(ctx, NodeKind.FORMULA, collect)
        return index

    return ctx.memo("path-references", build)


def is_path_referenced(ctx: RuleContext, component: str, root: str, name: str) -> bool:
    return name in path_references(ctx).get(component, {}).get(root, set())


def referenced_components(ctx: RuleContext) -> Set[str]:
    """Every component name used by a component node or a context, qualified when packaged."""

    def build() -> Set[str]:
        names: Set[str] = set()

        def from_node(node: Any, path: Path) -> None:
            if node_type(node) is NodeType.COMPONENT and isinstance(node.get("name"), str):
                names.add(qualified_name(node["name"], node.get("package")))

        def from_context(context: Any, path: Path) -> None:
            # Context entries are keyed by the provider's name unless componentName says otherwise.
            name = context.get("componentName") or path[-1]
            if isinstance(name, str):
                names.add(qualified_name(name, context.get("package")))

        _collect(ctx, NodeKind.COMPONENT_NODE, from_node)
        _collect(ctx, NodeKind.CONTEXT, from_context)
        return names

    return ctx.memo("referenced-components", build)


def _package_names(ctx: RuleContext, section: str) -> Set[str]:
    names: Set[str] = set()
    for key, package in entries(ctx.files.get("packages")):
        pkg_name = package_name(str(key), package)
        for name, _ in entries(mapping(package).get(section)):
            names.add(qualified_name(str(name), pkg_name))
    return names


def _known(ctx: RuleContext, section: str) -> Set[str]:
    def build() -> Set[str]:
        names = {str(name) for name, _ in entries(ctx.files.get(section))}
        return names | _package_names(ctx, section)

    return ctx.memo(f"known-{section}", build)


def known_components(ctx: RuleContext) -> Set[str]:
    return _known(ctx, "components")


def known_formulas(ctx: RuleContext) -> Set[str]:
    return _known(ctx, "formulas")


def known_actions(ctx: RuleContext) -> Set[str]:
    return _known(ctx, "actions")


def is_builtin(name: str, prefixes: Iterable[str]) -> bool:
    return any(name.startswith(prefix) for prefix in prefixes)


def reference_name(value: Mapping[str, Any]) -> str:
    """`name` qualified by `package`, or "" when the value names nothing."""
    name = value.get("name")
    if not isinstance(name, str) or not name:
        return ""
    return qualified_name(name, value.get("package"))
