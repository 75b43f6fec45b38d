import copy

from common.project_search.config import SearchConfig
from common.project_search.patches import apply_patches
from common.project_search.rules.static_condition import (
    NO_STATIC_NODE_CONDITION,
    NO_UNNECESSARY_CONDITION_FALSY,
    NO_UNNECESSARY_CONDITION_TRUTHY,
    remove_condition,
    remove_node,
)
from common.project_search.runner import SearchRunner


def value(v):
    return {"type": "value", "value": v}


def and_(*operands):
    return {"type": "and", "operands": list(operands)}


def _page(make_project, make_component, **conditions):
    nodes = {"root": {"type": "element", "tag": "div", "children": list(conditions)}}
    for node_id, condition in conditions.items():
        nodes[node_id] = {
            "type": "element",
            "tag": "section",
            "condition": condition,
            "children": [f"{node_id}-text"],
        }
        nodes[f"{node_id}-text"] = {"type": "text", "value": value(node_id)}
    return make_project(components={"page": make_component(nodes=nodes)})


def _condition_path(node_id):
    return ["components", "page", "nodes", node_id, "condition"]


def test_always_true_condition_end_to_end(make_project, make_component):
    files = _page(make_project, make_component, shown=and_(value(True), value(True)))
    runner = SearchRunner(config=SearchConfig())

    issues = runner.find_problems(files, lambda batch: None, options={"rules": ["no static node condition"]})
    assert len(issues) == 1
    assert issues[0].path == _condition_path("shown")
    assert issues[0].data == {"isTruthy": True, "value": True}
    assert issues[0].fixes == ["remove-condition"]

    patches = runner.fix_problems(files, "no static node condition", "remove-condition", lambda patches: None)
    fixed = apply_patches(files, patches)
    expected = copy.deepcopy(files)
    del expected["components"]["page"]["nodes"]["shown"]["condition"]
    assert fixed == expected


def test_static_node_condition_offers_fix_by_truthiness(make_project, make_component, make_ctx, collect):
    files = _page(
        make_project,
        make_component,
        a=value(1),
        b=value(""),
        c={"type": "path", "path": ["Variables", "open"]},
    )
    found = collect(NO_STATIC_NODE_CONDITION(), make_ctx(files))
    assert found == [
        ({"isTruthy": True, "value": 1}, _condition_path("a"), ["remove-condition"]),
        ({"isTruthy": False, "value": ""}, _condition_path("b"), ["remove-node"]),
    ]


def test_truthy_and_falsy_rules(make_project, make_component, make_ctx, collect):
    files = _page(
        make_project,
        make_component,
        yes=value(True),
        one=value(1),
        no={"type": "not", "operand": value(True)},
        empty=value(None),
    )
    ctx = make_ctx(files)
    truthy = collect(NO_UNNECESSARY_CONDITION_TRUTHY(), ctx)
    assert [path for data, path, fixes in truthy] == [_condition_path("yes")]
    falsy = collect(NO_UNNECESSARY_CONDITION_FALSY(), ctx)
    assert [path for data, path, fixes in falsy] == [_condition_path("no"), _condition_path("empty")]
    assert falsy[0][2] == ["remove-node"]


def test_conditions_outside_nodes_are_ignored(make_project, make_component, make_ctx, collect):
    switch_action = {"type": "Switch", "cases": [{"condition": value(True), "actions": []}]}
    files = make_project(components={"page": make_component(onLoad={"actions": [switch_action]})})
    assert collect(NO_STATIC_NODE_CONDITION(), make_ctx(files)) == []


def test_remove_node_drops_subtree_and_parent_reference(make_project, make_component):
    files = _page(make_project, make_component, hidden=value(False), kept={"type": "path", "path": ["x"]})
    fixed = remove_node(files=files, path=_condition_path("hidden"))
    nodes = fixed["components"]["page"]["nodes"]
    assert set(nodes) == {"root", "kept", "kept-text"}
    assert nodes["root"]["children"] == ["kept"]
    assert "hidden" in files["components"]["page"]["nodes"]


def test_fixes_decline_unsafe_rewrites(make_project, make_component):
    files = _page(make_project, make_component, hidden=value(False), shown=value(True))
    assert remove_condition(files=files, path=_condition_path("hidden")) is None
    assert remove_node(files=files, path=_condition_path("shown")) is None
    assert remove_node(files=files, path=_condition_path("gone")) is None
    assert remove_condition(files=files, path=["components", "page"]) is None

    root_hidden = copy.deepcopy(files)
    root_hidden["components"]["page"]["nodes"]["root"]["condition"] = value(False)
    assert remove_node(files=root_hidden, path=_condition_path("root")) is None


def test_fix_project_removes_every_dead_node(make_project, make_component):
    files = _page(make_project, make_component, a=value(False), b=value(0), c=value(True))
    fixed = SearchRunner(config=SearchConfig()).fix_project(files, "no unnecessary condition falsy", "remove-node")
    assert fixed["components"]["page"]["nodes"]["root"]["children"] == ["c"]
    assert set(fixed["components"]["page"]["nodes"]) == {"root", "c", "c-text"}


def test_remove_node_keeps_malformed_children(make_project, make_component):
    files = _page(make_project, make_component, hidden=value(False))
    files["components"]["page"]["nodes"]["root"]["children"] = ["hidden", ["stray"], 7]
    fixed = remove_node(files=files, path=_condition_path("hidden"))
    assert fixed["components"]["page"]["nodes"]["root"]["children"] == [["stray"], 7]


def _nested_not(depth, inner):
    formula = inner
    for _ in range(depth):
        formula = {"type": "not", "operand": formula}
    return formula


def test_deeply_nested_condition_is_not_reported(make_project, make_component):
    files = _page(make_project, make_component, deep=_nested_not(3000, value(True)))
    issues = SearchRunner(config=SearchConfig()).find_problems(
        files, lambda batch: None, options={"rules": ["no static node condition"]}
    )
    assert issues == []


def test_condition_depth_follows_config(make_project, make_component):
    files = _page(make_project, make_component, flipped=_nested_not(3, value(True)))
    options = {"rules": ["no unnecessary condition falsy"]}

    found = SearchRunner(config=SearchConfig()).find_problems(files, lambda batch: None, options=options)
    assert [issue.path for issue in found] == [_condition_path("flipped")]

    shallow = SearchRunner(config=SearchConfig(max_formula_depth=2))
    assert shallow.find_problems(files, lambda batch: None, options=options) == []


def test_orphan_node_conditions_are_not_reported(make_project, make_component, make_ctx, collect):
    # Only nodes reachable from "root" are rendered, so only their conditions are checked.
    files = _page(make_project, make_component, shown=value(True))
    files["components"]["page"]["nodes"]["orphan"] = {"type": "element", "tag": "div", "condition": value(False)}
    found = collect(NO_STATIC_NODE_CONDITION(), make_ctx(files))
    assert [path for data, path, fixes in found] == [_condition_path("shown")]
