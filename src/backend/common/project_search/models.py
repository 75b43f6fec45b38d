from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

PathSegment = Union[str, int]
BatchSize = Union[int, Literal["all", "per-file"]]


class IssueLevel(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class RuleCategory(str, Enum):
    ACTIONS = "actions"
    APIS = "apis"
    ATTRIBUTES = "attributes"
    COMPONENTS = "components"
    CONTEXTS = "contexts"
    DOM = "dom"
    EVENTS = "events"
    FORMULAS = "formulas"
    LOGIC = "logic"
    MISC = "misc"
    ROUTING = "routing"
    SLOTS = "slots"
    STYLES = "styles"
    VARIABLES = "variables"
    WORKFLOWS = "workflows"


class NodeKind(str, Enum):
    """Kinds of document values a walker visitor can subscribe to."""

    COMPONENT = "component"
    COMPONENT_NODE = "component-node"
    FORMULA = "formula"
    STYLE_DECLARATION = "style-declaration"
    ACTION_MODEL = "action-model"
    ROUTE = "route"
    ROUTE_FORMULA = "route-formula"
    API = "api"
    VARIABLE = "variable"
    WORKFLOW = "workflow"
    EVENT = "event"
    ATTRIBUTE = "attribute"
    CONTEXT = "context"
    THEME = "theme"


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule: str
    level: IssueLevel
    category: RuleCategory
    path: List[PathSegment] = Field(default_factory=list)
    data: Any = None
    fixes: Optional[List[str]] = None

    @property
    def file_key(self) -> tuple:
        # ("components", "<name>") for component issues; grouping key for per-file batches.
        return tuple(self.path[:2])


class FixPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    op: Literal["add", "remove", "replace", "move", "copy", "test"]
    path: str
    value: Any = None
    from_: Optional[str] = Field(default=None, alias="from")


class SearchOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    levels: Optional[List[IssueLevel]] = None
    rules: Optional[List[str]] = None
    paths_to_visit: Optional[List[List[PathSegment]]] = Field(default=None, alias="pathsToVisit")
    batch_size: BatchSize = Field(default="per-file", alias="batchSize")

    @field_validator("batch_size")
    @classmethod
    def _positive_batch_size(cls, value: BatchSize) -> BatchSize:
        if isinstance(value, int) and value < 1:
            raise ValueError("batchSize must be >= 1")
        return value


class IssueReport(BaseModel):
    run_id: str
    generated_at: datetime

    issues: List[Issue] = Field(default_factory=list)
    totals: Dict[IssueLevel, int] = Field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return self.totals.get(IssueLevel.ERROR, 0) > 0
