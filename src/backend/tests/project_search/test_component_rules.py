from common.project_search.rules.no_reference_component import NO_REFERENCE_COMPONENT, delete_component
from common.project_search.rules.unknown_component import UNKNOWN_COMPONENT


def _component_node(name, package=None, **extra):
    node = {"type": "component", "name": name, "attrs": {}, "events": {}, "children": []}
    if package:
        node["package"] = package
    node.update(extra)
    return node


def _using(make_component, *names):
    children = [f"n{i}" for i in range(len(names))]
    nodes = {"root": {"type": "element", "tag": "div", "children": children}}
    for child, name in zip(children, names):
        nodes[child] = _component_node(name)
    return make_component(nodes=nodes)


def test_unknown_component_reported_at_node(make_project, make_component, make_ctx, collect):
    files = make_project(components={"page": _using(make_component, "card", "ghost"), "card": make_component()})
    found = collect(UNKNOWN_COMPONENT(), make_ctx(files))
    assert found == [({"name": "ghost"}, ["components", "page", "nodes", "n1"], None)]


def test_package_and_builtin_components_are_known(make_project, make_component, make_ctx, collect):
    page = make_component(
        nodes={
            "root": {"type": "element", "tag": "div", "children": ["a", "b", "c"]},
            "a": _component_node("button", package="ui"),
            "b": _component_node("ui/button"),
            "c": _component_node("@toddle/icon"),
        }
    )
    files = make_project(
        components={"page": page},
        packages={"ui-lib": {"manifest": {"name": "ui"}, "components": {"button": make_component()}}},
    )
    assert collect(UNKNOWN_COMPONENT(), make_ctx(files)) == []


def test_unknown_context_provider(make_project, make_component, make_ctx, collect):
    files = make_project(
        components={
            "page": make_component(contexts={"provider": {"formulas": ["value"]}, "gone": {"componentName": "missing"}}),
            "provider": make_component(),
        }
    )
    found = collect(UNKNOWN_COMPONENT(), make_ctx(files))
    assert found == [({"name": "missing"}, ["components", "page", "contexts", "gone"], None)]


def test_unknown_component_can_be_disabled(make_project, make_component, make_ctx, collect):
    files = make_project(components={"page": _using(make_component, "ghost")})
    ctx = make_ctx(files, rules={"unknown component": {"enabled": False}})
    assert collect(UNKNOWN_COMPONENT(), ctx) == []


def test_unreferenced_component_is_reported(make_project, make_component, make_ctx, collect):
    files = make_project(
        components={
            "home": _using(make_component, "card"),
            "card": make_component(),
            "orphan": make_component(),
        }
    )
    found = collect(NO_REFERENCE_COMPONENT(), make_ctx(files))
    # `home` has no route in this fixture, so it is unreferenced too.
    assert [path for data, path, fixes in found] == [["components", "home"], ["components", "orphan"]]
    assert found[1] == ({"name": "orphan"}, ["components", "orphan"], ["delete-component"])


def test_pages_exported_and_context_providers_are_referenced(make_project, make_component, make_ctx, collect):
    files = make_project(
        components={
            "home": make_component(route={"path": [], "query": {}}, contexts={"theme": {"formulas": []}}),
            "shared": make_component(exported=True),
            "theme": make_component(),
        }
    )
    assert collect(NO_REFERENCE_COMPONENT(), make_ctx(files)) == []

    ctx = make_ctx(files, rules={"no reference component": {"ignore_pages": False, "ignore_exported": False}})
    assert [path for data, path, fixes in collect(NO_REFERENCE_COMPONENT(), ctx)] == [
        ["components", "home"],
        ["components", "shared"],
    ]


def test_delete_component_fix(make_project, make_component):
    files = make_project(components={"orphan": make_component(), "home": make_component()})
    fixed = delete_component(files=files, path=["components", "orphan"])
    assert list(fixed["components"]) == ["home"]
    assert "orphan" in files["components"]
    assert delete_component(files=fixed, path=["components", "orphan"]) is None
