"""Static analysis and auto-fix engine for project documents.

This package only consumes a project document (plain dicts, as loaded from
JSON) and produces issues and patches:
- No file or network I/O lives here; loading is `pipelines.project_source`.
- Rules never mutate the document they are given.
"""

from .context import Memo, RuleContext
from .contextless import (
    ContextlessResult,
    contextless_evaluate_formula,
    is_always_false,
    is_always_true,
    is_static_condition,
)
from .models import FixPatch, Issue, IssueLevel, IssueReport, NodeKind, RuleCategory, SearchOptions
from .patches import PatchError, apply_patches, compute_diff
from .runner import FixIterationLimitExceeded, SearchRunner, find_problems, fix_problems, fix_project
from .walker import Visitor, WalkPoint, walk_project

# Import built-in rules so they self-register with the global registry.
from . import rules as _builtin_rules  # noqa: F401
