import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

import pytest

from common.project_search.config import ProjectRulesConfig, SearchConfig
from common.project_search.context import RuleContext, normalize_paths


@pytest.fixture
def search_config() -> SearchConfig:
    return SearchConfig()


@pytest.fixture
def make_component():
    def _make(
        *,
        nodes=None,
        variables=None,
        attributes=None,
        formulas=None,
        workflows=None,
        events=None,
        contexts=None,
        apis=None,
        **extra,
    ) -> dict:
        component = {
            "nodes": nodes if nodes is not None else {"root": {"type": "element", "tag": "div", "children": []}},
            "variables": variables or {},
            "attributes": attributes or {},
            "formulas": formulas or {},
            "workflows": workflows or {},
            "events": events or {},
            "contexts": contexts or {},
            "apis": apis or {},
        }
        component.update(extra)
        return component

    return _make


@pytest.fixture
def make_project():
    def _make(
        *,
        components=None,
        formulas=None,
        actions=None,
        routes=None,
        themes=None,
        packages=None,
    ) -> dict:
        return {
            "components": components or {},
            "formulas": formulas or {},
            "actions": actions or {},
            "routes": routes or {},
            "themes": themes or {},
            "packages": packages or {},
        }

    return _make


@pytest.fixture
def make_ctx(search_config):
    def _make(files: dict, *, rules: dict | None = None, paths_to_visit=None) -> RuleContext:
        return RuleContext(
            files=files,
            paths_to_visit=normalize_paths(paths_to_visit),
            rules_config=ProjectRulesConfig(rules=rules or {}),
            config=search_config,
        )

    return _make


@pytest.fixture
def collect():
    """Run one rule's visit and return its reports as (data, path, fixes) tuples."""

    def _collect(rule, ctx) -> list[tuple]:
        found: list[tuple] = []
        rule.visit(lambda data, path, fixes=None: found.append((data, list(path), fixes)), ctx)
        return found

    return _collect
