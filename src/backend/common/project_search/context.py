from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, TypeVar

from .config import ProjectRulesConfig, SearchConfig
from .document import entries, mapping, package_name
from .models import PathSegment

T = TypeVar("T")


class Memo:
    """Key/value cache scoped to a single top-level engine call."""

    def __init__(self) -> None:
        self._cache: Dict[str, Any] = {}

    def __call__(self, key: str, factory: Callable[[], T]) -> T:
        if key in self._cache:
            return self._cache[key]
        value = factory()
        self._cache[key] = value
        return value

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)


@dataclass(frozen=True)
class RuleContext:
    files: Mapping[str, Any]
    memo: Memo = field(default_factory=Memo)
    paths_to_visit: Optional[tuple[tuple[PathSegment, ...], ...]] = None
    rules_config: ProjectRulesConfig = field(default_factory=ProjectRulesConfig)
    config: SearchConfig = field(default_factory=SearchConfig)

    def get_component(self, name: Any, package: Optional[str] = None) -> Optional[Mapping[str, Any]]:
        """Resolve a component by plain name, `<package>/<name>`, or explicit package."""
        if not isinstance(name, str) or not name:
            return None
        if not package and "/" in name:
            package, name = name.split("/", 1)
        if package:
            for key, pkg in entries(self.files.get("packages")):
                if package in (key, package_name(str(key), pkg)):
                    component = mapping(mapping(pkg).get("components")).get(name)
                    return component if isinstance(component, Mapping) else None
            return None
        component = mapping(self.files.get("components")).get(name)
        return component if isinstance(component, Mapping) else None


def normalize_paths(paths: Optional[Sequence[Sequence[PathSegment]]]) -> Optional[tuple[tuple[PathSegment, ...], ...]]:
    if not paths:
        return None
    return tuple(tuple(p) for p in paths)


def matches_paths(path: Sequence[PathSegment], paths_to_visit: Optional[Sequence[Sequence[PathSegment]]]) -> bool:
    if not paths_to_visit:
        return True
    return any(
        len(path) >= len(prefix) and all(seg == path[i] for i, seg in enumerate(prefix))
        for prefix in paths_to_visit
    )


def component_name(path: Sequence[PathSegment]) -> Optional[str]:
    if len(path) >= 2 and path[0] == "components" and isinstance(path[1], str):
        return path[1]
    return None
