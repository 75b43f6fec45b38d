from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, Iterator, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


class FormulaType(str, Enum):
    VALUE = "value"
    PATH = "path"
    FUNCTION = "function"
    ARRAY = "array"
    RECORD = "record"
    SWITCH = "switch"
    AND = "and"
    OR = "or"
    NOT = "not"
    ERROR = "error"


class ActionType(str, Enum):
    SET_VARIABLE = "SetVariable"
    TRIGGER_EVENT = "TriggerEvent"
    SWITCH = "Switch"
    FETCH = "Fetch"
    ABORT_FETCH = "AbortFetch"
    CUSTOM = "Custom"
    SET_URL_PARAMETER = "SetURLParameter"
    SET_URL_PARAMETERS = "SetURLParameters"
    TRIGGER_WORKFLOW = "TriggerWorkflow"
    TRIGGER_WORKFLOW_CALLBACK = "TriggerWorkflowCallback"


class NodeType(str, Enum):
    ELEMENT = "element"
    TEXT = "text"
    COMPONENT = "component"
    SLOT = "slot"


# ---------------------------------------------------------------------------
# Tolerant accessors over raw (possibly malformed) documents.
# ---------------------------------------------------------------------------


def mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def sequence(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def entries(value: Any) -> Iterator[Tuple[Union[str, int], Any]]:
    """Yield (key, item) for a mapping, or (index, item) for a list."""
    if isinstance(value, Mapping):
        yield from value.items()
    elif isinstance(value, list):
        yield from enumerate(value)


def formula_type(value: Any) -> Optional[FormulaType]:
    if not isinstance(value, Mapping):
        return None
    try:
        return FormulaType(value.get("type"))
    except ValueError:
        return None


def action_type(value: Any) -> Optional[ActionType]:
    # Custom actions predate the `type` tag and may omit it.
    if not isinstance(value, Mapping):
        return None
    raw = value.get("type")
    if raw is None:
        return ActionType.CUSTOM
    try:
        return ActionType(raw)
    except ValueError:
        return None


def node_type(value: Any) -> Optional[NodeType]:
    if not isinstance(value, Mapping):
        return None
    try:
        return NodeType(value.get("type"))
    except ValueError:
        return None


def is_formula(value: Any) -> bool:
    return isinstance(value, Mapping) and "type" in value


def node_children(node: Any) -> List[str]:
    if node_type(node) is NodeType.TEXT:
        return []
    return [child for child in sequence(mapping(node).get("children")) if isinstance(child, str)]


def qualified_name(name: str, package: Optional[str] = None) -> str:
    if package:
        return f"{package}/{name}"
    return name


def package_name(key: str, package: Any) -> str:
    manifest = mapping(mapping(package).get("manifest"))
    name = manifest.get("name")
    return name if isinstance(name, str) and name else key


def declared_event_names(component: Any) -> set[str]:
    names: set[str] = set()
    for key, event in entries(mapping(component).get("events")):
        if isinstance(key, str):
            names.add(key)
        event_name = mapping(event).get("name")
        if isinstance(event_name, str):
            names.add(event_name)
    return names


# ---------------------------------------------------------------------------
# Typed schema. Used for strict validation of loaded projects; the engine
# itself reads raw dicts so that partially broken documents can be linted.
# ---------------------------------------------------------------------------


class _DocumentModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class ValueOperation(_DocumentModel):
    type: Literal["value"] = "value"
    value: Any = None


class PathOperation(_DocumentModel):
    type: Literal["path"] = "path"
    path: List[str] = Field(default_factory=list)


class FunctionArgument(_DocumentModel):
    name: str = ""
    formula: Optional[Formula] = None
    isFunction: bool = False


class FunctionOperation(_DocumentModel):
    type: Literal["function"] = "function"
    name: str
    package: Optional[str] = None
    arguments: List[FunctionArgument] = Field(default_factory=list)


class ArrayOperation(_DocumentModel):
    type: Literal["array"] = "array"
    items: List[Formula] = Field(default_factory=list)


class RecordOperation(_DocumentModel):
    type: Literal["record"] = "record"
    properties: Dict[str, Formula] = Field(default_factory=dict)


class SwitchCase(_DocumentModel):
    condition: Formula
    formula: Formula


class SwitchOperation(_DocumentModel):
    type: Literal["switch"] = "switch"
    cases: List[SwitchCase] = Field(default_factory=list)
    default: Optional[Formula] = None


class AndOperation(_DocumentModel):
    type: Literal["and"] = "and"
    operands: List[Formula] = Field(default_factory=list)


class OrOperation(_DocumentModel):
    type: Literal["or"] = "or"
    operands: List[Formula] = Field(default_factory=list)


class NotOperation(_DocumentModel):
    type: Literal["not"] = "not"
    operand: Optional[Formula] = None


class ErrorOperation(_DocumentModel):
    type: Literal["error"] = "error"
    message: Optional[str] = None


Formula = Annotated[
    Union[
        ValueOperation,
        PathOperation,
        FunctionOperation,
        ArrayOperation,
        RecordOperation,
        SwitchOperation,
        AndOperation,
        OrOperation,
        NotOperation,
        ErrorOperation,
    ],
    Field(discriminator="type"),
]


class NamedFormula(_DocumentModel):
    name: str = ""
    formula: Optional[Formula] = None


class EventModel(_DocumentModel):
    actions: List[ActionModel] = Field(default_factory=list)


class SetVariableAction(_DocumentModel):
    type: Literal["SetVariable"] = "SetVariable"
    name: str
    data: Optional[Formula] = None


class TriggerEventAction(_DocumentModel):
    type: Literal["TriggerEvent"] = "TriggerEvent"
    name: str
    data: Optional[Formula] = None


class SwitchActionCase(_DocumentModel):
    condition: Optional[Formula] = None
    actions: List[ActionModel] = Field(default_factory=list)


class SwitchAction(_DocumentModel):
    type: Literal["Switch"] = "Switch"
    data: Optional[Formula] = None
    cases: List[SwitchActionCase] = Field(default_factory=list)
    default: Optional[EventModel] = None


class FetchAction(_DocumentModel):
    type: Literal["Fetch"] = "Fetch"
    name: str
    inputs: Union[List[NamedFormula], Dict[str, NamedFormula]] = Field(default_factory=list)
    onSuccess: Optional[EventModel] = None
    onError: Optional[EventModel] = None
    onMessage: Optional[EventModel] = None


class AbortFetchAction(_DocumentModel):
    type: Literal["AbortFetch"] = "AbortFetch"
    name: str


class CustomAction(_DocumentModel):
    type: Optional[Literal["Custom"]] = None
    name: str
    package: Optional[str] = None
    arguments: List[NamedFormula] = Field(default_factory=list)
    data: Optional[Formula] = None
    events: Dict[str, EventModel] = Field(default_factory=dict)


class SetURLParameterAction(_DocumentModel):
    type: Literal["SetURLParameter"] = "SetURLParameter"
    name: str
    data: Optional[Formula] = None
    historyMode: Optional[Literal["push", "replace"]] = None


class SetURLParametersAction(_DocumentModel):
    type: Literal["SetURLParameters"] = "SetURLParameters"
    parameters: List[NamedFormula] = Field(default_factory=list)
    historyMode: Optional[Literal["push", "replace"]] = None


class TriggerWorkflowAction(_DocumentModel):
    type: Literal["TriggerWorkflow"] = "TriggerWorkflow"
    name: str
    parameters: List[NamedFormula] = Field(default_factory=list)
    callbacks: Dict[str, EventModel] = Field(default_factory=dict)
    componentName: Optional[str] = None
    package: Optional[str] = None


class TriggerWorkflowCallbackAction(_DocumentModel):
    type: Literal["TriggerWorkflowCallback"] = "TriggerWorkflowCallback"
    name: str
    data: Optional[Formula] = None


def _action_tag(value: Any) -> str:
    if isinstance(value, Mapping):
        return value.get("type") or ActionType.CUSTOM.value
    return getattr(value, "type", None) or ActionType.CUSTOM.value


ActionModel = Annotated[
    Union[
        Annotated[SetVariableAction, Tag("SetVariable")],
        Annotated[TriggerEventAction, Tag("TriggerEvent")],
        Annotated[SwitchAction, Tag("Switch")],
        Annotated[FetchAction, Tag("Fetch")],
        Annotated[AbortFetchAction, Tag("AbortFetch")],
        Annotated[CustomAction, Tag("Custom")],
        Annotated[SetURLParameterAction, Tag("SetURLParameter")],
        Annotated[SetURLParametersAction, Tag("SetURLParameters")],
        Annotated[TriggerWorkflowAction, Tag("TriggerWorkflow")],
        Annotated[TriggerWorkflowCallbackAction, Tag("TriggerWorkflowCallback")],
    ],
    Discriminator(_action_tag),
]


class _NodeBase(_DocumentModel):
    id: Optional[str] = None
    condition: Optional[Formula] = None
    repeat: Optional[Formula] = None
    repeatKey: Optional[Formula] = None
    slot: Optional[str] = None


class ElementNodeModel(_NodeBase):
    type: Literal["element"] = "element"
    tag: str
    attrs: Dict[str, Formula] = Field(default_factory=dict)
    style: Dict[str, Any] = Field(default_factory=dict)
    events: Dict[str, EventModel] = Field(default_factory=dict)
    children: List[str] = Field(default_factory=list)


class TextNodeModel(_NodeBase):
    type: Literal["text"] = "text"
    value: Optional[Formula] = None


class ComponentNodeModel(_NodeBase):
    type: Literal["component"] = "component"
    name: str
    package: Optional[str] = None
    attrs: Dict[str, Formula] = Field(default_factory=dict)
    style: Dict[str, Any] = Field(default_factory=dict)
    events: Dict[str, EventModel] = Field(default_factory=dict)
    children: List[str] = Field(default_factory=list)


class SlotNodeModel(_NodeBase):
    type: Literal["slot"] = "slot"
    name: Optional[str] = None
    children: List[str] = Field(default_factory=list)


NodeModel = Annotated[
    Union[ElementNodeModel, TextNodeModel, ComponentNodeModel, SlotNodeModel],
    Field(discriminator="type"),
]


class ComponentAttribute(_DocumentModel):
    name: str = ""
    testValue: Any = None


class ComponentVariable(_DocumentModel):
    initialValue: Optional[Formula] = None


class ComponentFormula(_DocumentModel):
    name: str = ""
    arguments: List[Dict[str, Any]] = Field(default_factory=list)
    memoize: bool = False
    exposeInContext: bool = False
    formula: Optional[Formula] = None


class ComponentWorkflow(_DocumentModel):
    name: str = ""
    parameters: List[Dict[str, Any]] = Field(default_factory=list)
    callbacks: List[Dict[str, Any]] = Field(default_factory=list)
    actions: List[ActionModel] = Field(default_factory=list)
    exposeInContext: bool = False


class ComponentContext(_DocumentModel):
    formulas: List[str] = Field(default_factory=list)
    workflows: List[str] = Field(default_factory=list)
    componentName: Optional[str] = None
    package: Optional[str] = None


class ComponentEvent(_DocumentModel):
    name: str = ""
    testValue: Any = None
    actions: List[ActionModel] = Field(default_factory=list)


class ApiParameter(_DocumentModel):
    formula: Optional[Formula] = None
    enabled: Optional[Formula] = None


class ApiSearchParameter(_DocumentModel):
    name: str = ""
    value: Optional[Formula] = None


class ComponentAPI(_DocumentModel):
    name: str = ""
    type: Optional[Literal["v1", "v2"]] = None
    method: Optional[Formula] = None
    url: Optional[Formula] = None
    headers: Dict[str, ApiParameter] = Field(default_factory=dict)
    queryParams: Dict[str, ApiParameter] = Field(default_factory=dict)
    body: Optional[Formula] = None
    timeout: Optional[Formula] = None
    credentials: Optional[Formula] = None
    parserMode: Optional[Formula] = None
    isError: Optional[Formula] = None
    path: Optional[Formula] = None
    searchParams: List[ApiSearchParameter] = Field(default_factory=list)
    headersV1: Optional[Formula] = None
    bodyV1: Optional[Formula] = None
    methodV1: Optional[Formula] = None
    autoFetch: Optional[Formula] = None


class PageRoute(_DocumentModel):
    path: Any = None
    query: Dict[str, Any] = Field(default_factory=dict)


class Component(_DocumentModel):
    name: str = ""
    route: Optional[PageRoute] = None
    exported: bool = False
    nodes: Dict[str, NodeModel] = Field(default_factory=dict)
    formulas: Dict[str, ComponentFormula] = Field(default_factory=dict)
    variables: Dict[str, ComponentVariable] = Field(default_factory=dict)
    workflows: Dict[str, ComponentWorkflow] = Field(default_factory=dict)
    events: Union[Dict[str, ComponentEvent], List[ComponentEvent]] = Field(default_factory=dict)
    attributes: Dict[str, ComponentAttribute] = Field(default_factory=dict)
    contexts: Dict[str, ComponentContext] = Field(default_factory=dict)
    apis: Dict[str, ComponentAPI] = Field(default_factory=dict)
    onLoad: Optional[EventModel] = None
    onAttributeChange: Optional[EventModel] = None


class CustomRoute(_DocumentModel):
    name: str = ""
    type: Optional[Literal["redirect", "rewrite"]] = None
    source: Dict[str, Any] = Field(default_factory=dict)
    destination: Dict[str, Any] = Field(default_factory=dict)
    enabled: Optional[Formula] = None
    title: Optional[Formula] = None
    description: Optional[Formula] = None
    icon: Optional[Formula] = None


class PackageManifest(_DocumentModel):
    name: str
    commit: str = ""


class InstalledPackage(_DocumentModel):
    manifest: PackageManifest
    components: Dict[str, Component] = Field(default_factory=dict)
    formulas: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    actions: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class ProjectFiles(_DocumentModel):
    components: Dict[str, Component] = Field(default_factory=dict)
    packages: Dict[str, InstalledPackage] = Field(default_factory=dict)
    actions: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    formulas: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    routes: Dict[str, CustomRoute] = Field(default_factory=dict)
    themes: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    config: Optional[Dict[str, Any]] = None
    services: Optional[Dict[str, Any]] = None


for _model in list(globals().values()):
    if isinstance(_model, type) and issubclass(_model, _DocumentModel):
        _model.model_rebuild()


def validate_project(files: Mapping[str, Any]) -> ProjectFiles:
    """Validate a raw project document against the typed schema.

    Raises pydantic.ValidationError on malformed input.
    """
    return ProjectFiles.model_validate(files)
