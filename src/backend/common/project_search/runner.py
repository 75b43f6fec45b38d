from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .config import ProjectRulesConfig, SearchConfig, get_search_config
from .context import Memo, RuleContext, normalize_paths
from .models import BatchSize, FixPatch, Issue, PathSegment, SearchOptions
from .patches import apply_patches, compute_diff
from .registry import registry
from .rule import Rule

logger = logging.getLogger(__name__)

IssueCallback = Callable[[List[Issue]], None]
PatchCallback = Callable[[List[FixPatch]], None]
OptionsLike = Union[SearchOptions, Mapping[str, Any], None]


class FixIterationLimitExceeded(RuntimeError):
    """A fix kept producing patches after the configured number of passes."""

    def __init__(self, fix_rule: str, fix_type: str, iterations: int, files: Mapping[str, Any]):
        super().__init__(
            f"Fix '{fix_type}' of rule '{fix_rule}' still produced patches after {iterations} iterations"
        )
        self.fix_rule = fix_rule
        self.fix_type = fix_type
        self.iterations = iterations
        self.files = files


def _coerce_options(options: OptionsLike) -> SearchOptions:
    if options is None:
        return SearchOptions()
    if isinstance(options, SearchOptions):
        return options
    return SearchOptions.model_validate(dict(options))


class SearchRunner:
    def __init__(self, rules: Optional[Iterable[Rule]] = None, *, config: Optional[SearchConfig] = None):
        self._rules = list(rules) if rules is not None else registry.create_all()
        self._config = config or get_search_config()

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules)

    def get_rule(self, code: str) -> Optional[Rule]:
        for rule in self._rules:
            if rule.code == code:
                return rule
        return None

    def select_rules(
        self,
        options: OptionsLike = None,
        rules_config: Optional[ProjectRulesConfig] = None,
    ) -> List[Rule]:
        opts = _coerce_options(options)
        levels = set(opts.levels) if opts.levels is not None else None
        codes = set(opts.rules) if opts.rules is not None else None
        selected = []
        for rule in self._rules:
            if levels is not None and rule.level not in levels:
                continue
            if codes is not None and rule.code not in codes:
                continue
            if rules_config is not None and not rules_config.is_enabled(rule.code):
                continue
            selected.append(rule)
        return selected

    def _context(self, files: Mapping[str, Any], opts: SearchOptions, rules_config: Optional[ProjectRulesConfig]) -> RuleContext:
        return RuleContext(
            files=files,
            memo=Memo(),
            paths_to_visit=normalize_paths(opts.paths_to_visit),
            rules_config=rules_config or ProjectRulesConfig(),
            config=self._config,
        )

    def _batch_size(self, opts: SearchOptions) -> BatchSize:
        if "batch_size" in opts.model_fields_set:
            return opts.batch_size
        return self._config.batch_size

    def find_problems(
        self,
        files: Mapping[str, Any],
        respond: IssueCallback,
        *,
        options: OptionsLike = None,
        rules_config: Optional[ProjectRulesConfig] = None,
    ) -> List[Issue]:
        """Run the selected rules and deliver their issues to `respond`.

        Rules run in registration order against one shared context (and memo).
        With batch size 'all', `respond` is called exactly once at the end.
        Otherwise each rule's issues are delivered right after that rule runs,
        grouped per file ('per-file') or in chunks of the given size.

        Returns every issue found, in delivery order.
        """
        opts = _coerce_options(options)
        batch_size = self._batch_size(opts)
        ctx = self._context(files, opts, rules_config)

        found: List[Issue] = []
        for rule in self.select_rules(opts, rules_config):
            issues = self._visit(rule, ctx)
            logger.debug("Rule '%s' reported %d issue(s).", rule.code, len(issues))
            found.extend(issues)
            if batch_size == "all":
                continue
            for batch in _batches(issues, batch_size):
                respond(batch)

        if batch_size == "all":
            respond(list(found))
        return found

    def fix_problems(
        self,
        files: Mapping[str, Any],
        fix_rule: str,
        fix_type: str,
        respond: PatchCallback,
        *,
        options: OptionsLike = None,
        rules_config: Optional[ProjectRulesConfig] = None,
    ) -> List[FixPatch]:
        rule = self.get_rule(fix_rule)
        fix = rule.get_fix(fix_type) if rule is not None else None
        if fix is None:
            logger.debug("No fix '%s' registered for rule '%s'.", fix_type, fix_rule)
            respond([])
            return []

        ctx = self._context(files, _coerce_options(options), rules_config)
        points: List[Tuple[Any, List[PathSegment]]] = []
        rule.visit(lambda data, path, fixes=None: points.append((data, list(path))), ctx)

        # Each fix sees the result of the previous ones, so the patch list replays in order.
        working: Mapping[str, Any] = files
        patches: List[FixPatch] = []
        for data, path in points:
            fixed = fix(files=working, path=path, data=data)
            if fixed is None:
                continue
            patches.extend(compute_diff(working, fixed))
            working = fixed

        respond(patches)
        return patches

    def fix_project(
        self,
        files: Mapping[str, Any],
        fix_rule: str,
        fix_type: str,
        *,
        options: OptionsLike = None,
        rules_config: Optional[ProjectRulesConfig] = None,
        max_iterations: Optional[int] = None,
    ) -> Mapping[str, Any]:
        """Apply a fix repeatedly until a pass produces no patches.

        Raises FixIterationLimitExceeded when patches are still produced after
        `max_iterations` applied passes.
        """
        limit = max_iterations if max_iterations is not None else self._config.max_fix_iterations
        document = files
        iterations = 0
        while True:
            patches = self.fix_problems(
                document, fix_rule, fix_type, _ignore, options=options, rules_config=rules_config
            )
            if not patches:
                return document
            if iterations >= limit:
                raise FixIterationLimitExceeded(fix_rule, fix_type, iterations, document)
            document = apply_patches(document, patches)
            iterations += 1
            logger.info("Fix '%s/%s' pass %d applied %d patch(es).", fix_rule, fix_type, iterations, len(patches))

    def _visit(self, rule: Rule, ctx: RuleContext) -> List[Issue]:
        issues: List[Issue] = []

        def report(data: Any, path: Sequence[PathSegment], fixes: Optional[List[str]] = None) -> None:
            issues.append(
                Issue(
                    rule=rule.code,
                    level=rule.level,
                    category=rule.category,
                    path=list(path),
                    data=data,
                    fixes=list(fixes) if fixes else None,
                )
            )

        rule.visit(report, ctx)
        return issues


def _ignore(_patches: List[FixPatch]) -> None:
    return None


def _batches(issues: List[Issue], batch_size: BatchSize) -> Iterable[List[Issue]]:
    if not issues:
        return []
    if batch_size == "per-file":
        groups: Dict[tuple, List[Issue]] = {}
        for issue in issues:
            groups.setdefault(issue.file_key, []).append(issue)
        return list(groups.values())
    size = int(batch_size)
    return [issues[i : i + size] for i in range(0, len(issues), size)]


def find_problems(
    files: Mapping[str, Any],
    respond: IssueCallback,
    options: OptionsLike = None,
    rules_config: Optional[ProjectRulesConfig] = None,
) -> List[Issue]:
    return SearchRunner().find_problems(files, respond, options=options, rules_config=rules_config)


def fix_problems(
    files: Mapping[str, Any],
    fix_rule: str,
    fix_type: str,
    respond: PatchCallback,
    options: OptionsLike = None,
    rules_config: Optional[ProjectRulesConfig] = None,
) -> List[FixPatch]:
    return SearchRunner().fix_problems(
        files, fix_rule, fix_type, respond, options=options, rules_config=rules_config
    )


def fix_project(
    files: Mapping[str, Any],
    fix_rule: str,
    fix_type: str,
    options: OptionsLike = None,
    max_iterations: Optional[int] = None,
    rules_config: Optional[ProjectRulesConfig] = None,
) -> Mapping[str, Any]:
    return SearchRunner().fix_project(
        files, fix_rule, fix_type, options=options, rules_config=rules_config, max_iterations=max_iterations
    )
