"""Static evaluation of formulas without any runtime data binding.

Only literals and the boolean/collection combinators built from them are
folded. Path reads, function calls and switch dispatch depend on runtime
state and are never treated as constant, even when every part of them is.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from .config import DEFAULT_MAX_FORMULA_DEPTH
from .document import FormulaType, entries, formula_type, sequence


@dataclass(frozen=True)
class ContextlessResult:
    is_static: bool
    result: Any = None


_DYNAMIC = ContextlessResult(is_static=False)


def is_truthy(value: Any) -> bool:
    """Truthiness as the formula runtime sees it (empty lists/records are truthy)."""
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return not (value == 0 or (isinstance(value, float) and math.isnan(value)))
    if isinstance(value, str):
        return value != ""
    return True


def contextless_evaluate_formula(formula: Any, *, max_depth: int = DEFAULT_MAX_FORMULA_DEPTH) -> ContextlessResult:
    """Fold `formula` to a constant when it does not depend on runtime data.

    Formulas nested deeper than `max_depth` are treated as dynamic.
    """
    if isinstance(formula, BaseModel):
        formula = formula.model_dump()
    return _evaluate(formula, 0, max_depth)


def _evaluate(formula: Any, depth: int, max_depth: int) -> ContextlessResult:
    if depth > max_depth:
        return _DYNAMIC

    kind = formula_type(formula)
    if kind is None:
        return _DYNAMIC

    if kind is FormulaType.VALUE:
        return ContextlessResult(is_static=True, result=formula.get("value"))

    if kind is FormulaType.ARRAY:
        items = []
        for item in sequence(formula.get("items")):
            evaluated = _evaluate(item, depth + 1, max_depth)
            if not evaluated.is_static:
                return _DYNAMIC
            items.append(evaluated.result)
        return ContextlessResult(is_static=True, result=items)

    if kind is FormulaType.RECORD:
        record = {}
        for key, value in entries(formula.get("properties")):
            evaluated = _evaluate(value, depth + 1, max_depth)
            if not evaluated.is_static:
                return _DYNAMIC
            record[key] = evaluated.result
        return ContextlessResult(is_static=True, result=record)

    if kind is FormulaType.AND:
        # Left to right; the first dynamic operand wins even if a later one is falsy.
        for operand in sequence(formula.get("operands")):
            evaluated = _evaluate(operand, depth + 1, max_depth)
            if not evaluated.is_static:
                return _DYNAMIC
            if not is_truthy(evaluated.result):
                return ContextlessResult(is_static=True, result=False)
        return ContextlessResult(is_static=True, result=True)

    if kind is FormulaType.OR:
        for operand in sequence(formula.get("operands")):
            evaluated = _evaluate(operand, depth + 1, max_depth)
            if not evaluated.is_static:
                return _DYNAMIC
            if is_truthy(evaluated.result):
                return ContextlessResult(is_static=True, result=True)
        return ContextlessResult(is_static=True, result=False)

    if kind is FormulaType.NOT:
        evaluated = _evaluate(formula.get("operand"), depth + 1, max_depth)
        if not evaluated.is_static:
            return _DYNAMIC
        return ContextlessResult(is_static=True, result=not is_truthy(evaluated.result))

    if kind is FormulaType.ERROR:
        return ContextlessResult(is_static=True, result=None)

    # PATH, FUNCTION, SWITCH
    return _DYNAMIC


def is_always_true(formula: Any, *, max_depth: int = DEFAULT_MAX_FORMULA_DEPTH) -> bool:
    evaluated = contextless_evaluate_formula(formula, max_depth=max_depth)
    return evaluated.is_static and evaluated.result is True


def is_always_false(formula: Any, *, max_depth: int = DEFAULT_MAX_FORMULA_DEPTH) -> bool:
    evaluated = contextless_evaluate_formula(formula, max_depth=max_depth)
    return evaluated.is_static and evaluated.result is False


def is_static_condition(formula: Any, *, max_depth: int = DEFAULT_MAX_FORMULA_DEPTH) -> bool:
    return contextless_evaluate_formula(formula, max_depth=max_depth).is_static
