"""
Object store interface.

The reconciler only needs key-addressed reads, exact-match label queries,
create-if-absent and a conditional merge patch. Backends raise the StoreError
family from netclaim.exceptions; nothing else leaks out of them.
"""

from __future__ import annotations

from typing import Any, Protocol


class ObjectStore(Protocol):
    """Declarative object store (Kubernetes API or an in-memory stand-in)."""

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """
        Fetch one object.

        Raises:
            ObjectNotFoundError: No such object.
            StoreError: Any other backend failure.
        """

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """List objects whose labels contain every key/value in labels."""

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        Create an object and return it as stored.

        Raises:
            AlreadyExistsError: An object with the same name exists.
        """

    def patch(
        self,
        kind: str,
        namespace: str,
        name: str,
        patch: dict[str, Any],
        resource_version: str | None = None,
    ) -> dict[str, Any]:
        """
        Apply a JSON merge patch.

        When resource_version is given the write only succeeds if the stored
        object still has that version.

        Raises:
            ConflictError: The object changed since resource_version was read.
            ObjectNotFoundError: No such object.
        """


def labels_match(obj_labels: dict[str, str] | None, selector: dict[str, str] | None) -> bool:
    """True when obj_labels is a superset of selector."""
    if not selector:
        return True
    obj_labels = obj_labels or {}
    return all(obj_labels.get(k) == v for k, v in selector.items())


def label_selector(labels: dict[str, str] | None) -> str:
    """Render an exact-match label selector string (k1=v1,k2=v2)."""
    if not labels:
        return ""
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
