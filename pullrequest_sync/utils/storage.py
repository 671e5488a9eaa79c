"""Reads and writes pull request artifacts as JSON on disk.

Layout beneath a workspace directory::

    pr.json               canonical pull request
    manifests.json        {"labels": [...], "comments": [...]}
    <host>/pr.json        raw host payloads written during download
    <host>/status.json
    <host>/comments/<id>.json
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel

from pullrequest_sync.schemas.pull_request import Manifest, ManifestCategory, PullRequest

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

PULL_REQUEST_FILE = "pr.json"
MANIFESTS_FILE = "manifests.json"


def _to_jsonable(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, list):
        return [_to_jsonable(item) for item in payload]
    return payload


def write_json(path: Path, payload: Any) -> Path:
    """Write a JSON-serializable value or pydantic model to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(_to_jsonable(payload), indent=2, default=str), encoding="utf-8")
    return path


def read_json(path: Path) -> Any:
    """Read and decode a JSON document from ``path``."""
    return json.loads(path.read_text(encoding="utf-8"))


def write_pull_request(directory: Path, pull_request: PullRequest) -> Path:
    """Write the canonical pull request model to ``<directory>/pr.json``."""
    path = directory / PULL_REQUEST_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(pull_request.model_dump_json(indent=2), encoding="utf-8")
    logger.info("Wrote pull request", path=str(path))
    return path


def read_pull_request(directory: Path) -> PullRequest:
    """Read the canonical pull request model from ``<directory>/pr.json``."""
    path = directory / PULL_REQUEST_FILE
    return PullRequest.model_validate_json(path.read_text(encoding="utf-8"))


def write_manifests(directory: Path, manifests: Mapping[ManifestCategory, Manifest]) -> Path:
    """Write manifests to ``<directory>/manifests.json`` with sorted keys per category."""
    document = {ManifestCategory(category).value: sorted(keys) for category, keys in manifests.items()}
    path = write_json(directory / MANIFESTS_FILE, document)
    logger.info("Wrote manifests", path=str(path))
    return path


def read_manifests(directory: Path) -> dict[ManifestCategory, Manifest]:
    """Read manifests from ``<directory>/manifests.json``.

    A missing file yields empty manifests, so nothing already on the host is
    treated as tracked.
    """
    path = directory / MANIFESTS_FILE
    if not path.exists():
        logger.warning("Manifests file not found, treating every remote item as untracked", path=str(path))
        return {category: set() for category in ManifestCategory}
    document = read_json(path)
    return {category: {str(key) for key in document.get(category.value, [])} for category in ManifestCategory}
