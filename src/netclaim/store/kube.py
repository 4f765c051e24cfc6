"""
Kubernetes-backed object store.

Every kind netclaim touches is a custom resource, so all calls go through
CustomObjectsApi. The conditional write puts metadata.resourceVersion into the
merge patch; the API server rejects it with 409 Conflict when the object moved
on since it was read.
"""

from __future__ import annotations

from typing import Any

import kubernetes.client
import kubernetes.config

from netclaim.config import config
from netclaim.exceptions import (
    AlreadyExistsError,
    ConflictError,
    ObjectNotFoundError,
    StoreError,
)
from netclaim.store.base import label_selector
from netclaim.utils.logger import get_logger

logger = get_logger(__name__)

# kind -> resource plural
PLURALS: dict[str, str] = {
    "Cluster": "clusters",
    "Machine": "machines",
    "VSphereMachine": "vspheremachines",
    "VSphereMachineTemplate": "vspheremachinetemplates",
    "HAProxyLoadBalancer": "haproxyloadbalancers",
    "KubeadmControlPlane": "kubeadmcontrolplanes",
    "IPPool": "ippools",
    "IPClaim": "ipclaims",
    "IPAddress": "ipaddresses",
}


def load_kube_config() -> None:
    """Load in-cluster or kubeconfig credentials according to config."""
    if config.IN_CLUSTER:
        kubernetes.config.load_incluster_config()
    else:
        kubernetes.config.load_kube_config(
            config_file=config.KUBECONFIG or None,
            context=config.KUBE_CONTEXT or None,
        )


class KubernetesObjectStore:
    """ObjectStore implementation on top of the Kubernetes API."""

    def __init__(self, api: kubernetes.client.CustomObjectsApi | None = None):
        if api is None:
            try:
                load_kube_config()
            except kubernetes.config.ConfigException as e:
                raise StoreError(f"cannot load kubernetes credentials: {e}") from e
            api = kubernetes.client.CustomObjectsApi()
        self.api = api

    def _resource(self, kind: str) -> tuple[str, str, str]:
        """Get (group, version, plural) for a kind."""
        try:
            api_version = config.api_version_for(kind)
            plural = PLURALS[kind]
        except KeyError:
            raise StoreError(f"unknown kind {kind!r}") from None
        group, _, version = api_version.partition("/")
        return group, version, plural

    @staticmethod
    def _translate(
        e: kubernetes.client.exceptions.ApiException,
        operation: str,
        kind: str,
        key: str,
    ) -> StoreError:
        if e.status == 404:
            return ObjectNotFoundError("not found", operation=operation, kind=kind, key=key)
        if e.status == 409:
            if operation == "create":
                return AlreadyExistsError(
                    "already exists", operation=operation, kind=kind, key=key
                )
            return ConflictError(
                "object was modified", operation=operation, kind=kind, key=key
            )
        return StoreError(
            f"api error {e.status}: {e.reason}", operation=operation, kind=kind, key=key
        )

    # =========================================================================
    # ObjectStore Interface
    # =========================================================================

    def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        group, version, plural = self._resource(kind)
        try:
            return self.api.get_namespaced_custom_object(
                group, version, namespace, plural, name
            )
        except kubernetes.client.exceptions.ApiException as e:
            raise self._translate(e, "get", kind, f"{namespace}/{name}") from e

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        labels: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        group, version, plural = self._resource(kind)
        selector = label_selector(labels)
        try:
            if namespace:
                result = self.api.list_namespaced_custom_object(
                    group, version, namespace, plural, label_selector=selector
                )
            else:
                result = self.api.list_cluster_custom_object(
                    group, version, plural, label_selector=selector
                )
        except kubernetes.client.exceptions.ApiException as e:
            raise self._translate(e, "list", kind, namespace or "*") from e

        items = result.get("items", [])
        # List items come back without kind/apiVersion
        for item in items:
            item.setdefault("kind", kind)
            item.setdefault("apiVersion", f"{group}/{version}")
        return items

    def create(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        group, version, plural = self._resource(kind)
        meta = body.get("metadata") or {}
        namespace = meta.get("namespace", "")
        key = f"{namespace}/{meta.get('name', '')}"
        try:
            created = self.api.create_namespaced_custom_object(
                group, version, namespace, plural, body
            )
            logger.debug(f"created {kind} {key}")
            return created
        except kubernetes.client.exceptions.ApiException as e:
            raise self._translate(e, "create", kind, key) from e

    def patch(
        self,
        kind: str,
        namespace: str,
        name: str,
        patch: dict[str, Any],
        resource_version: str | None = None,
    ) -> dict[str, Any]:
        group, version, plural = self._resource(kind)
        if resource_version is not None:
            patch = dict(patch)
            metadata = dict(patch.get("metadata") or {})
            metadata["resourceVersion"] = resource_version
            patch["metadata"] = metadata

        try:
            return self.api.patch_namespaced_custom_object(
                group,
                version,
                namespace,
                plural,
                name,
                patch,
                _content_type="application/merge-patch+json",
            )
        except kubernetes.client.exceptions.ApiException as e:
            raise self._translate(e, "patch", kind, f"{namespace}/{name}") from e
