"""
In-memory object store.

Behaves like a tiny Kubernetes API server: integer resourceVersions bumped on
every write, merge-patch semantics, conditional writes, deep copies in and out.
Used by the test-suite and by `netclaim reconcile --file` for offline runs
against a YAML/JSON fixture.
"""

from __future__ import annotations

import copy
import json
import threading
import uuid
from pathlib import Path
from typing import Any

import yaml

from netclaim.exceptions import (
    AlreadyExistsError,
    ConflictError,
    ObjectNotFoundError,
    StoreError,
)
from netclaim.store.base import labels_match
from netclaim.store.patch import apply_merge_patch
from netclaim.utils.logger import get_logger

logger = get_logger(__name__)

Key = tuple[str, str, str]  # (kind, namespace, name)


class InMemoryObjectStore:
    """Dict-backed ObjectStore implementation."""

    def __init__(self, objects: list[dict[str, Any]] | None = None):
        self._objects: dict[Key, dict[str, Any]] = {}
        self._version = 0
        self._lock = threading.Lock()

        # Every successful write, in order: (operation, kind, namespace, name)
        self.writes: list[tuple[str, str, str, str]] = []

        for body in objects or []:
            self.add(body)

    # =========================================================================
    # Loading / Dumping
    # =========================================================================

    @classmethod
    def load_file(cls, path: str | Path) -> InMemoryObjectStore:
        """
        Build a store from a YAML (multi-document) or JSON fixture.

        A document may be a single object, a list of objects, or a
        Kubernetes List with an `items` field.
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")

        if path.suffix == ".json":
            docs = [json.loads(text)]
        else:
            docs = list(yaml.safe_load_all(text))

        objects: list[dict[str, Any]] = []
        for doc in docs:
            if doc is None:
                continue
            if isinstance(doc, list):
                objects.extend(doc)
            elif "items" in doc and "metadata" not in doc:
                objects.extend(doc["items"])
            else:
                objects.append(doc)

        logger.debug(f"Loaded {len(objects)} objects from {path}")
        return cls(objects)

    def dump(self) -> list[dict[str, Any]]:
        """All stored objects, sorted by kind/namespace/name."""
        with self._lock:
            return [copy.deepcopy(self._objects[key]) for key in sorted(self._objects)]

    def add(self, body: dict[str, Any]) -> dict[str, Any]:
        """Insert or overwrite an object without conflict checks (fixtures)."""
        key = self._key_of(body)
        with self._lock:
            stored = self._stamp(copy.deepcopy(body))
            self._objects[key] = stored
            return copy.deepcopy(stored)

    # =========================================================================
    # ObjectStore Interface
    # =========================================================================

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        with self._lock:
            obj = self._objects.get((kind, namespace, name))
            if obj is None:
                raise ObjectNotFoundError(
                    "not found", operation="get", kind=kind, key=f"{namespace}/{name}"
                )
            return copy.deepcopy(obj)

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            result = []
            for (k, ns, _), obj in sorted(self._objects.items()):
                if k != kind:
                    continue
                if namespace and ns != namespace:
                    continue
                if not labels_match(obj["metadata"].get("labels"), labels):
                    continue
                result.append(copy.deepcopy(obj))
            return result

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        body = copy.deepcopy(body)
        body.setdefault("kind", kind)
        key = self._key_of(body)

        with self._lock:
            if key in self._objects:
                raise AlreadyExistsError(
                    "already exists",
                    operation="create",
                    kind=kind,
                    key=f"{key[1]}/{key[2]}",
                )
            stored = self._stamp(body)
            self._objects[key] = stored
            self.writes.append(("create", *key))
            return copy.deepcopy(stored)

    def patch(
        self,
        kind: str,
        namespace: str,
        name: str,
        patch: dict[str, Any],
        resource_version: str | None = None,
    ) -> dict[str, Any]:
        key = (kind, namespace, name)
        with self._lock:
            current = self._objects.get(key)
            if current is None:
                raise ObjectNotFoundError(
                    "not found", operation="patch", kind=kind, key=f"{namespace}/{name}"
                )

            stored_version = current["metadata"].get("resourceVersion")
            if resource_version is not None and resource_version != stored_version:
                raise ConflictError(
                    f"resourceVersion {resource_version} is stale (now {stored_version})",
                    operation="patch",
                    kind=kind,
                    key=f"{namespace}/{name}",
                )

            updated = apply_merge_patch(current, patch)
            if self._key_of(updated) != key:
                raise StoreError(
                    "patch may not change kind, namespace or name",
                    operation="patch",
                    kind=kind,
                    key=f"{namespace}/{name}",
                )

            stored = self._stamp(updated)
            self._objects[key] = stored
            self.writes.append(("patch", *key))
            return copy.deepcopy(stored)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _key_of(body: dict[str, Any]) -> Key:
        meta = body.get("metadata") or {}
        if not body.get("kind") or not meta.get("name"):
            raise StoreError("object needs kind and metadata.name")
        return (body["kind"], meta.get("namespace", ""), meta["name"])

    def _stamp(self, body: dict[str, Any]) -> dict[str, Any]:
        """Assign a fresh resourceVersion (and a uid on first write). Lock held."""
        self._version += 1
        meta = body.setdefault("metadata", {})
        meta["resourceVersion"] = str(self._version)
        meta.setdefault("uid", str(uuid.uuid4()))
        meta.setdefault("namespace", "")
        return body
