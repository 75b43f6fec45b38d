from __future__ import annotations

from typing import Dict, Iterable, Type

from .rule import Rule


class RuleRegistry:
    def __init__(self):
        self._rules: Dict[str, Type[Rule]] = {}

    def register(self, rule_cls: Type[Rule]) -> None:
        code = getattr(rule_cls, "code", None)
        if not code:
            raise ValueError("Rule class missing code")
        if code in self._rules:
            raise ValueError(f"Duplicate rule code registered: {code}")
        self._rules[code] = rule_cls

    def create_all(self) -> list[Rule]:
        return [cls() for cls in self._rules.values()]

    def get(self, code: str) -> Type[Rule]:
        return self._rules[code]

    def codes(self) -> Iterable[str]:
        return self._rules.keys()


registry = RuleRegistry()


def register_rule(rule_cls: Type[Rule]) -> Type[Rule]:
    registry.register(rule_cls)
    return rule_cls
