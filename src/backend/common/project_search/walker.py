"""Generic visitor-dispatched traversal over a project document.

This module is the only place that knows how the document nests: which
fields of a node, action, API or route carry formulas, which action kinds
carry nested action lists, and how node children are resolved. Visitors
subscribe to a single `NodeKind` and receive every value of that kind, in a
deterministic depth-first order, together with the path at which it was
found.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from .context import RuleContext, matches_paths, normalize_paths
from .document import (
    ActionType,
    FormulaType,
    NodeType,
    action_type,
    entries,
    formula_type,
    is_formula,
    mapping,
    node_children,
    node_type,
    sequence,
)
from .models import NodeKind, PathSegment
from .rule import Reporter

logger = logging.getLogger(__name__)

Path = Tuple[PathSegment, ...]

ROUTE_FORMULA_FIELDS = ("title", "description", "icon")

NODE_FORMULA_FIELDS = ("condition", "repeat", "repeatKey")

API_FORMULA_FIELDS = (
    "url",
    "method",
    "body",
    "path",
    "headersV1",
    "bodyV1",
    "methodV1",
    "autoFetch",
    "timeout",
    "credentials",
    "parserMode",
    "isError",
)

FETCH_CALLBACKS = ("onSuccess", "onError", "onMessage")

_ACTIONS_WITH_DATA = (
    ActionType.SET_VARIABLE,
    ActionType.TRIGGER_EVENT,
    ActionType.SWITCH,
    ActionType.CUSTOM,
    ActionType.SET_URL_PARAMETER,
    ActionType.TRIGGER_WORKFLOW_CALLBACK,
)


@dataclass(frozen=True)
class Visitor:
    node_type: NodeKind
    visit: Callable[[Any, Reporter, RuleContext, Path], None]


@dataclass(frozen=True)
class WalkPoint:
    visitor: Visitor
    value: Any
    path: Path
    ctx: RuleContext


def walk_project(
    files: Mapping[str, Any],
    visitors: Iterable[Visitor],
    *,
    paths_to_visit: Optional[Sequence[Sequence[PathSegment]]] = None,
    ctx: Optional[RuleContext] = None,
) -> Iterator[WalkPoint]:
    """Lazily yield a `WalkPoint` for every (visitor, value) pair in `files`.

    Without `ctx`, a fresh context (and with it a fresh memo cache) is created
    for this walk. `paths_to_visit` only filters delivery; the whole document
    is still traversed.
    """
    if ctx is None:
        ctx = RuleContext(files=files)
    return _ProjectWalker(files, visitors, ctx, normalize_paths(paths_to_visit)).walk()


def run_visitors(ctx: RuleContext, visitors: Iterable[Visitor], report: Reporter) -> None:
    """Walk `ctx.files`, honouring `ctx.paths_to_visit`, and dispatch every point."""
    for point in walk_project(ctx.files, visitors, paths_to_visit=ctx.paths_to_visit, ctx=ctx):
        point.visitor.visit(point.value, report, point.ctx, point.path)


class _ProjectWalker:
    def __init__(
        self,
        files: Mapping[str, Any],
        visitors: Iterable[Visitor],
        ctx: RuleContext,
        paths_to_visit: Optional[Tuple[Path, ...]],
    ) -> None:
        self._files = mapping(files)
        self._ctx = ctx
        self._paths_to_visit = paths_to_visit
        self._max_formula_depth = ctx.config.max_formula_depth
        self._by_type: Dict[NodeKind, List[Visitor]] = {}
        for visitor in visitors:
            self._by_type.setdefault(NodeKind(visitor.node_type), []).append(visitor)

    def walk(self) -> Iterator[WalkPoint]:
        for name, component in entries(self._files.get("components")):
            if isinstance(component, Mapping):
                yield from self._walk_component(name, component)

        for name, route in entries(self._files.get("routes")):
            if not isinstance(route, Mapping):
                continue
            path = ("routes", name)
            yield from self._emit(NodeKind.ROUTE, route, path)
            for key in ROUTE_FORMULA_FIELDS:
                if route.get(key):
                    yield from self._emit(NodeKind.ROUTE_FORMULA, route[key], path + (key,))

        for name, theme in entries(self._files.get("themes")):
            if theme:
                yield from self._emit(NodeKind.THEME, theme, ("themes", name))

        for name, formula in entries(self._files.get("formulas")):
            if isinstance(formula, Mapping):
                yield from self._walk_formula(formula.get("formula"), ("formulas", name, "formula"))

        for name, action in entries(self._files.get("actions")):
            if isinstance(action, Mapping):
                yield from self._walk_action(action, ("actions", name))

    def _emit(self, kind: NodeKind, value: Any, path: Path) -> Iterator[WalkPoint]:
        if not matches_paths(path, self._paths_to_visit):
            return
        for visitor in self._by_type.get(kind, ()):
            yield WalkPoint(visitor=visitor, value=value, path=path, ctx=self._ctx)

    # Components

    def _walk_component(self, name: PathSegment, component: Mapping[str, Any]) -> Iterator[WalkPoint]:
        base: Path = ("components", name)
        yield from self._emit(NodeKind.COMPONENT, component, base)
        yield from self._walk_nodes(component, base)

        for key, formula in entries(component.get("formulas")):
            if isinstance(formula, Mapping):
                yield from self._walk_formula(formula.get("formula"), base + ("formulas", key, "formula"))

        for key, variable in entries(component.get("variables")):
            if not isinstance(variable, Mapping):
                continue
            path = base + ("variables", key)
            yield from self._emit(NodeKind.VARIABLE, variable, path)
            yield from self._walk_formula(variable.get("initialValue"), path + ("initialValue",))

        for key, workflow in entries(component.get("workflows")):
            if not isinstance(workflow, Mapping):
                continue
            path = base + ("workflows", key)
            yield from self._emit(NodeKind.WORKFLOW, workflow, path)
            yield from self._walk_action_list(workflow.get("actions"), path + ("actions",))

        for key, event in entries(component.get("events")):
            if not isinstance(event, Mapping):
                continue
            path = base + ("events", key)
            yield from self._emit(NodeKind.EVENT, event, path)
            yield from self._walk_action_list(event.get("actions"), path + ("actions",))

        for key, attribute in entries(component.get("attributes")):
            if isinstance(attribute, Mapping):
                yield from self._emit(NodeKind.ATTRIBUTE, attribute, base + ("attributes", key))

        for key, context in entries(component.get("contexts")):
            if isinstance(context, Mapping):
                yield from self._emit(NodeKind.CONTEXT, context, base + ("contexts", key))

        for hook in ("onLoad", "onAttributeChange"):
            yield from self._walk_action_list(mapping(component.get(hook)).get("actions"), base + (hook, "actions"))

        for key, api in entries(component.get("apis")):
            if not isinstance(api, Mapping):
                continue
            path = base + ("apis", key)
            yield from self._emit(NodeKind.API, api, path)
            for suffix, formula in _api_formulas(api):
                yield from self._walk_formula(formula, path + suffix)

    def _walk_nodes(self, component: Mapping[str, Any], base: Path) -> Iterator[WalkPoint]:
        nodes = mapping(component.get("nodes"))
        root = nodes.get("root")
        if isinstance(root, Mapping):
            yield from self._walk_node("root", root, nodes, base, set())

    def _walk_node(
        self,
        node_id: str,
        node: Mapping[str, Any],
        nodes: Mapping[str, Any],
        base: Path,
        visited: Set[str],
    ) -> Iterator[WalkPoint]:
        visited.add(node_id)
        path = base + ("nodes", node_id)
        yield from self._emit(NodeKind.COMPONENT_NODE, node, path)

        for key in NODE_FORMULA_FIELDS:
            yield from self._walk_formula(node.get(key), path + (key,))

        kind = node_type(node)
        if kind is NodeType.TEXT:
            yield from self._walk_formula(node.get("value"), path + ("value",))

        if kind in (NodeType.ELEMENT, NodeType.COMPONENT):
            for key, attr in entries(node.get("attrs")):
                yield from self._walk_formula(attr, path + ("attrs", key))
            for key, style in entries(node.get("style")):
                style_path = path + ("style", key)
                yield from self._emit(NodeKind.STYLE_DECLARATION, {"name": key, "value": style}, style_path)
                yield from self._walk_formula(style, style_path)
            for key, event in entries(node.get("events")):
                yield from self._walk_action_list(mapping(event).get("actions"), path + ("events", key, "actions"))

        # Dangling and already-walked ids are skipped; the latter keeps cyclic graphs finite.
        for child_id in node_children(node):
            child = nodes.get(child_id)
            if child_id in visited or not isinstance(child, Mapping):
                continue
            yield from self._walk_node(child_id, child, nodes, base, visited)

    # Formulas

    def _walk_formula(self, formula: Any, path: Path, depth: int = 0) -> Iterator[WalkPoint]:
        if not is_formula(formula):
            return
        yield from self._emit(NodeKind.FORMULA, formula, path)
        if depth >= self._max_formula_depth:
            logger.debug("Formula nesting exceeds %d at %s; not descending.", self._max_formula_depth, path)
            return
        for suffix, sub in _sub_formulas(formula):
            yield from self._walk_formula(sub, path + suffix, depth + 1)

    # Actions

    def _walk_action_list(self, actions: Any, path: Path) -> Iterator[WalkPoint]:
        for index, action in enumerate(sequence(actions)):
            if isinstance(action, Mapping):
                yield from self._walk_action(action, path + (index,))

    def _walk_action(self, action: Mapping[str, Any], path: Path) -> Iterator[WalkPoint]:
        yield from self._emit(NodeKind.ACTION_MODEL, action, path)
        for suffix, formula in _action_formulas(action):
            yield from self._walk_formula(formula, path + suffix)
        for suffix, actions in _action_branches(action):
            yield from self._walk_action_list(actions, path + suffix)


def _sub_formulas(formula: Mapping[str, Any]) -> Iterator[Tuple[Path, Any]]:
    kind = formula_type(formula)
    if kind is FormulaType.FUNCTION:
        for index, argument in enumerate(sequence(formula.get("arguments"))):
            yield ("arguments", index, "formula"), mapping(argument).get("formula")
    elif kind is FormulaType.ARRAY:
        for index, item in enumerate(sequence(formula.get("items"))):
            yield ("items", index), item
    elif kind is FormulaType.RECORD:
        for key, value in entries(formula.get("properties")):
            yield ("properties", key), value
    elif kind is FormulaType.SWITCH:
        for index, case in enumerate(sequence(formula.get("cases"))):
            yield ("cases", index, "condition"), mapping(case).get("condition")
            yield ("cases", index, "formula"), mapping(case).get("formula")
        yield ("default",), formula.get("default")
    elif kind in (FormulaType.AND, FormulaType.OR):
        for index, operand in enumerate(sequence(formula.get("operands"))):
            yield ("operands", index), operand
    elif kind is FormulaType.NOT:
        yield ("operand",), formula.get("operand")


def _action_formulas(action: Mapping[str, Any]) -> Iterator[Tuple[Path, Any]]:
    kind = action_type(action)
    if kind in _ACTIONS_WITH_DATA:
        yield ("data",), action.get("data")
    if kind is ActionType.SWITCH:
        for index, case in enumerate(sequence(action.get("cases"))):
            yield ("cases", index, "condition"), mapping(case).get("condition")
    elif kind is ActionType.FETCH:
        for key, entry in entries(action.get("inputs")):
            yield ("inputs", key, "formula"), mapping(entry).get("formula")
    elif kind is ActionType.CUSTOM:
        for index, argument in enumerate(sequence(action.get("arguments"))):
            yield ("arguments", index, "formula"), mapping(argument).get("formula")
    elif kind in (ActionType.SET_URL_PARAMETERS, ActionType.TRIGGER_WORKFLOW):
        for index, parameter in enumerate(sequence(action.get("parameters"))):
            yield ("parameters", index, "formula"), mapping(parameter).get("formula")


def _action_branches(action: Mapping[str, Any]) -> Iterator[Tuple[Path, Any]]:
    kind = action_type(action)
    if kind is ActionType.SWITCH:
        for index, case in enumerate(sequence(action.get("cases"))):
            yield ("cases", index, "actions"), mapping(case).get("actions")
        yield ("default", "actions"), mapping(action.get("default")).get("actions")
    elif kind is ActionType.FETCH:
        for callback in FETCH_CALLBACKS:
            yield (callback, "actions"), mapping(action.get(callback)).get("actions")
    elif kind is ActionType.TRIGGER_WORKFLOW:
        for key, callback in entries(action.get("callbacks")):
            yield ("callbacks", key, "actions"), mapping(callback).get("actions")
    elif kind is ActionType.CUSTOM:
        for key, event in entries(action.get("events")):
            yield ("events", key, "actions"), mapping(event).get("actions")


def _api_formulas(api: Mapping[str, Any]) -> Iterator[Tuple[Path, Any]]:
    for key in API_FORMULA_FIELDS:
        yield (key,), api.get(key)
    for group in ("headers", "queryParams"):
        for key, entry in entries(api.get(group)):
            yield (group, key, "formula"), mapping(entry).get("formula")
            yield (group, key, "enabled"), mapping(entry).get("enabled")
    for index, entry in enumerate(sequence(api.get("searchParams"))):
        yield ("searchParams", index, "value"), mapping(entry).get("value")
    yield ("server", "ssr", "enabled"), mapping(mapping(api.get("server")).get("ssr")).get("enabled")
