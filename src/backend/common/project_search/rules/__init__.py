from .unknown_component import UNKNOWN_COMPONENT
from .no_reference_component import NO_REFERENCE_COMPONENT
from .unknown_formula import UNKNOWN_FORMULA
from .unknown_action import UNKNOWN_ACTION
from .unknown_variable import UNKNOWN_VARIABLE
from .no_reference_variable import NO_REFERENCE_VARIABLE
from .no_reference_attribute import NO_REFERENCE_ATTRIBUTE
from .unknown_event import UNKNOWN_EVENT
from .static_condition import (
    NO_STATIC_NODE_CONDITION,
    NO_UNNECESSARY_CONDITION_FALSY,
    NO_UNNECESSARY_CONDITION_TRUTHY,
)

__all__ = [
    "UNKNOWN_COMPONENT",
    "NO_REFERENCE_COMPONENT",
    "UNKNOWN_FORMULA",
    "UNKNOWN_ACTION",
    "UNKNOWN_VARIABLE",
    "NO_REFERENCE_VARIABLE",
    "NO_REFERENCE_ATTRIBUTE",
    "UNKNOWN_EVENT",
    "NO_STATIC_NODE_CONDITION",
    "NO_UNNECESSARY_CONDITION_TRUTHY",
    "NO_UNNECESSARY_CONDITION_FALSY",
]
