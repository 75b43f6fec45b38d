from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from common.project_search.document import validate_project

logger = logging.getLogger(__name__)

class ProjectSource(Protocol):
    def load_files(self) -> dict[str, Any]:
        """Return the project document (the `files` tree) to analyse."""
        ...

    def save_files(self, files: dict[str, Any], *, path: Path | None = None) -> None:
        """Persist a document produced by applying fixes."""
        ...


def get_project_source(path: str | Path, *, validate: bool = False) -> ProjectSource:
    """Resolve a project source for a local path (a `.json` export)."""
    source = Path(path)
    if source.suffix.lower() != ".json":
        raise ValueError(f"Unsupported project source '{path}' (expected a .json export).")
    return FileProjectSource(source, validate=validate)


class FileProjectSource:
    """A project stored as a JSON file.

    Accepts either a bare `files` tree or an export envelope
    `{"project": ..., "commit": ..., "files": {...}}`; saving keeps the
    envelope the file was loaded with.
    """

    def __init__(self, path: Path, *, validate: bool = False) -> None:
        self._path = Path(path)
        self._validate = validate
        self._envelope: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load_files(self) -> dict[str, Any]:
        with self._path.open() as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            raise ValueError(f"{self._path} does not contain a project document.")

        files = payload
        if isinstance(payload.get("files"), dict) and any(key in payload for key in ("project", "commit")):
            self._envelope = {key: value for key, value in payload.items() if key != "files"}
            files = payload["files"]
        else:
            self._envelope = None

        if self._validate:
            # Raises pydantic.ValidationError for documents that do not match the schema.
            validate_project(files)
        logger.debug("Loaded %d component(s) from %s.", len(files.get("components") or {}), self._path)
        return files

    def save_files(self, files: dict[str, Any], *, path: Path | None = None) -> None:
        target = Path(path) if path is not None else self._path
        payload: dict[str, Any] = dict(files)
        if self._envelope is not None:
            payload = {**self._envelope, "files": files}
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(payload, indent=2))
        logger.info("Wrote project document to %s.", target)
