from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Protocol, Sequence, Type

from pydantic import BaseModel

from .config import RuleConfigBase
from .context import RuleContext
from .models import IssueLevel, PathSegment, RuleCategory


class Reporter(Protocol):
    def __call__(
        self,
        data: Any,
        path: Sequence[PathSegment],
        fixes: Optional[List[str]] = None,
    ) -> None:
        ...


# fix(files=..., path=..., data=...) -> new document, or None when no safe rewrite exists.
FixFunction = Callable[..., Optional[Mapping[str, Any]]]


class Rule(ABC):
    code: str
    level: IssueLevel
    category: RuleCategory
    title: str = ""
    config_model: Type[BaseModel] = RuleConfigBase
    fixes: ClassVar[Dict[str, FixFunction]] = {}

    def __init__(self):
        if not getattr(self, "code", None):
            raise ValueError("Rule must define code")

    def get_fix(self, fix_type: str) -> Optional[FixFunction]:
        return self.fixes.get(fix_type)

    @abstractmethod
    def visit(self, report: Reporter, ctx: RuleContext) -> None:  # pragma: no cover
        raise NotImplementedError
