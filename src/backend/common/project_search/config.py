from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type, TypeVar

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import BatchSize


load_dotenv()

T = TypeVar("T", bound=BaseModel)

DEFAULT_MAX_FIX_ITERATIONS = 100
DEFAULT_MAX_FORMULA_DEPTH = 64

BUILTIN_PREFIX = "@toddle/"


@dataclass(frozen=True)
class SearchConfig:
    max_fix_iterations: int = DEFAULT_MAX_FIX_ITERATIONS
    max_formula_depth: int = DEFAULT_MAX_FORMULA_DEPTH
    batch_size: BatchSize = "per-file"


def get_search_config() -> SearchConfig:
    """
    Load engine settings from environment variables (a `.env` file is honoured).

    Reads:
      LAYR_SEARCH_MAX_FIX_ITERATIONS, LAYR_SEARCH_MAX_FORMULA_DEPTH, LAYR_SEARCH_BATCH_SIZE
    """
    return SearchConfig(
        max_fix_iterations=_positive_int_env("LAYR_SEARCH_MAX_FIX_ITERATIONS", DEFAULT_MAX_FIX_ITERATIONS),
        max_formula_depth=_positive_int_env("LAYR_SEARCH_MAX_FORMULA_DEPTH", DEFAULT_MAX_FORMULA_DEPTH),
        batch_size=parse_batch_size(os.getenv("LAYR_SEARCH_BATCH_SIZE", "per-file")),
    )


def parse_batch_size(raw: str) -> BatchSize:
    value = (raw or "").strip().lower()
    if value in ("", "per-file"):
        return "per-file"
    if value == "all":
        return "all"
    try:
        size = int(value)
    except ValueError:
        raise ValueError(f"Batch size must be 'all', 'per-file' or a positive integer (got '{raw}').") from None
    if size < 1:
        raise ValueError(f"Batch size must be >= 1 (got {size}).")
    return size


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got '{raw}').") from None
    if value < 1:
        raise ValueError(f"{name} must be >= 1 (got {value}).")
    return value


class RuleConfigBase(BaseModel):
    enabled: bool = True


class BuiltinAwareRuleConfig(RuleConfigBase):
    # Names starting with one of these prefixes resolve to the standard library.
    builtin_prefixes: List[str] = Field(default_factory=lambda: [BUILTIN_PREFIX])


class UnknownComponentRuleConfig(BuiltinAwareRuleConfig):
    pass


class NoReferenceComponentRuleConfig(RuleConfigBase):
    # Pages are entry points reached through routing, not through component nodes.
    ignore_pages: bool = True
    # Exported components are consumed by other projects.
    ignore_exported: bool = True


class UnknownFormulaRuleConfig(BuiltinAwareRuleConfig):
    pass


class UnknownActionRuleConfig(BuiltinAwareRuleConfig):
    builtin_actions: List[str] = Field(
        default_factory=lambda: [
            "@toddle/gotoURL",
            "@toddle/refresh",
            "@toddle/copyToClipboard",
            "@toddle/setLocalStorage",
            "@toddle/getLocalStorage",
            "@toddle/console",
            "@toddle/scrollIntoView",
            "@toddle/pushDataLayer",
        ]
    )


class UnknownVariableRuleConfig(RuleConfigBase):
    # Also flag SetVariable actions that target an undeclared variable.
    check_set_variable_actions: bool = True


class UnknownEventRuleConfig(RuleConfigBase):
    # Also flag TriggerEvent actions for events the component does not declare.
    check_trigger_event_actions: bool = True


class ProjectRulesConfig(BaseModel):
    """Project-specific configuration for all rules.

    Rules pull their typed config via `get_rule_config`.
    """

    rules: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def get_rule_config(
        self,
        code: str,
        model: Type[T],
        default: Optional[T] = None,
    ) -> T:
        if code not in self.rules:
            if default is not None:
                return default
            return model()  # type: ignore[call-arg]
        raw = self.rules.get(code, {})
        return model.model_validate(raw)

    def is_enabled(self, code: str) -> bool:
        return bool(self.rules.get(code, {}).get("enabled", True))
