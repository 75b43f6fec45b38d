"""
Structural diff and patch application over project documents.

Patches use JSON Pointer locators (RFC 6901) and the six JSON Patch
operations. Only what fixes need is covered: diffing two snapshots of the
same document and replaying the result in order.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable, List, Mapping, Sequence, Tuple, Union

from .models import FixPatch, PathSegment


class PatchError(ValueError):
    pass


def _escape(token: PathSegment) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def to_pointer(path: Sequence[PathSegment]) -> str:
    return "".join("/" + _escape(token) for token in path)


def parse_pointer(pointer: str) -> List[str]:
    if pointer == "":
        return []
    if not pointer.startswith("/"):
        raise PatchError(f"Invalid JSON pointer: {pointer!r}")
    return [_unescape(token) for token in pointer.split("/")[1:]]


def values_equal(a: Any, b: Any) -> bool:
    """JSON equality: booleans never equal numbers, ints equal floats of the same value."""
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if type(a) is not type(b):
        return False
    return a == b


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------


def compute_diff(original: Any, modified: Any) -> List[FixPatch]:
    """Return patches that turn `original` into `modified` when applied in order."""
    patches: List[FixPatch] = []
    _diff(original, modified, (), patches)
    return patches


def _diff(original: Any, modified: Any, path: Tuple[PathSegment, ...], out: List[FixPatch]) -> None:
    if values_equal(original, modified):
        return

    if isinstance(original, Mapping) and isinstance(modified, Mapping):
        for key in original:
            if key not in modified:
                out.append(FixPatch(op="remove", path=to_pointer(path + (key,))))
        for key, value in modified.items():
            if key not in original:
                out.append(FixPatch(op="add", path=to_pointer(path + (key,)), value=copy.deepcopy(value)))
            else:
                _diff(original[key], value, path + (key,), out)
        return

    if isinstance(original, list) and isinstance(modified, list):
        if len(original) == len(modified):
            for index, (before, after) in enumerate(zip(original, modified)):
                _diff(before, after, path + (index,), out)
            return
        if _diff_list_ends(original, modified, path, out):
            return

    out.append(FixPatch(op="replace", path=to_pointer(path), value=copy.deepcopy(modified)))


def _diff_list_ends(original: list, modified: list, path: Tuple[PathSegment, ...], out: List[FixPatch]) -> bool:
    # Handles a single contiguous insertion or deletion; anything else is a replace.
    shortest = min(len(original), len(modified))
    prefix = 0
    while prefix < shortest and values_equal(original[prefix], modified[prefix]):
        prefix += 1
    suffix = 0
    while suffix < shortest - prefix and values_equal(original[-1 - suffix], modified[-1 - suffix]):
        suffix += 1

    removed = original[prefix : len(original) - suffix]
    added = modified[prefix : len(modified) - suffix]
    if removed and added:
        return False
    for _ in removed:
        out.append(FixPatch(op="remove", path=to_pointer(path + (prefix,))))
    for offset, value in enumerate(added):
        out.append(FixPatch(op="add", path=to_pointer(path + (prefix + offset,)), value=copy.deepcopy(value)))
    return True


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------


PatchLike = Union[FixPatch, Mapping[str, Any]]


def apply_patches(document: Any, patches: Iterable[PatchLike]) -> Any:
    """Apply `patches` in order to a deep copy of `document` and return the copy.

    Raises PatchError when a pointer does not resolve or a `test` fails; the
    input document is never modified.
    """
    result = copy.deepcopy(document)
    for raw in patches:
        patch = raw if isinstance(raw, FixPatch) else FixPatch.model_validate(raw)
        result = _apply_one(result, patch)
    return result


def _apply_one(document: Any, patch: FixPatch) -> Any:
    tokens = parse_pointer(patch.path)

    if patch.op == "test":
        if not values_equal(_get(document, tokens), patch.value):
            raise PatchError(f"Test failed at {patch.path!r}")
        return document
    if patch.op == "add":
        return _add(document, tokens, copy.deepcopy(patch.value))
    if patch.op == "remove":
        return _remove(document, tokens)
    if patch.op == "replace":
        _get(document, tokens)
        if not tokens:
            return copy.deepcopy(patch.value)
        parent, key = _parent(document, tokens)
        parent[key] = copy.deepcopy(patch.value)
        return document

    if patch.from_ is None:
        raise PatchError(f"'{patch.op}' patch at {patch.path!r} requires 'from'")
    source = parse_pointer(patch.from_)
    value = _get(document, source)
    if patch.op == "move":
        if tokens[: len(source)] == source and len(tokens) > len(source):
            raise PatchError(f"Cannot move {patch.from_!r} into its own child {patch.path!r}")
        document = _remove(document, source)
        return _add(document, tokens, value)
    # copy
    return _add(document, tokens, copy.deepcopy(value))


def _index(container: list, token: str, *, allow_end: bool = False) -> int:
    if token == "-" and allow_end:
        return len(container)
    if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
        raise PatchError(f"Invalid array index: {token!r}")
    index = int(token)
    limit = len(container) if allow_end else len(container) - 1
    if index > limit:
        raise PatchError(f"Array index out of range: {index}")
    return index


def _get(document: Any, tokens: Sequence[str]) -> Any:
    current = document
    for token in tokens:
        if isinstance(current, dict):
            if token not in current:
                raise PatchError(f"Path not found: {to_pointer(tokens)!r}")
            current = current[token]
        elif isinstance(current, list):
            current = current[_index(current, token)]
        else:
            raise PatchError(f"Path not found: {to_pointer(tokens)!r}")
    return current


def _parent(document: Any, tokens: Sequence[str]) -> Tuple[Any, Union[str, int]]:
    parent = _get(document, tokens[:-1])
    token = tokens[-1]
    if isinstance(parent, dict):
        return parent, token
    if isinstance(parent, list):
        return parent, _index(parent, token)
    raise PatchError(f"Path not found: {to_pointer(tokens)!r}")


def _add(document: Any, tokens: Sequence[str], value: Any) -> Any:
    if not tokens:
        return value
    parent = _get(document, tokens[:-1])
    token = tokens[-1]
    if isinstance(parent, dict):
        parent[token] = value
    elif isinstance(parent, list):
        parent.insert(_index(parent, token, allow_end=True), value)
    else:
        raise PatchError(f"Path not found: {to_pointer(tokens)!r}")
    return document


def _remove(document: Any, tokens: Sequence[str]) -> Any:
    if not tokens:
        raise PatchError("Cannot remove the document root")
    parent, key = _parent(document, tokens)
    if isinstance(parent, dict) and key not in parent:
        raise PatchError(f"Path not found: {to_pointer(tokens)!r}")
    del parent[key]
    return document
