"""
Pool selector labels for a provisioning object.

A plain machine or load balancer selects pools with its own labels. A
control-plane machine is created by the control plane from a machine template,
and the pool selection labels live on that template, so they are merged in.
"""

from typing import Any

from netclaim.exceptions import ObjectNotFoundError, TemplateResolutionError
from netclaim.models.resources import ProvisioningObject
from netclaim.naming import LABEL_CLUSTER_NAME
from netclaim.store.base import ObjectStore
from netclaim.utils.logger import get_logger

logger = get_logger(__name__)


def resolve_selector_labels(
    store: ObjectStore, obj: ProvisioningObject, cluster_name: str
) -> dict[str, str]:
    """
    Build the label set used to select an IP pool for obj.

    Template labels win over the object's own labels on key collision.

    Raises:
        TemplateResolutionError: Control-plane machine whose cluster does not
            have exactly one control plane, or whose template is missing.
        StoreError: Lookup against the store failed.
    """
    labels = obj.labels

    if obj.is_control_plane:
        template = _control_plane_template(store, obj.namespace, cluster_name)
        template_labels = (template.get("metadata") or {}).get("labels") or {}
        labels.update(template_labels)
        logger.debug(
            f"merged {len(template_labels)} labels from template "
            f"{template['metadata']['name']} into selector for {obj.ref}"
        )

    return labels


def _control_plane_template(
    store: ObjectStore, namespace: str, cluster_name: str
) -> dict[str, Any]:
    """Find the machine template referenced by the cluster's only control plane."""
    control_planes = store.list(
        "KubeadmControlPlane",
        namespace=namespace,
        labels={LABEL_CLUSTER_NAME: cluster_name},
    )
    if len(control_planes) != 1:
        raise TemplateResolutionError(
            f"expected exactly one control plane, found {len(control_planes)}",
            cluster_name,
            namespace,
        )

    kcp = control_planes[0]
    template_name = _template_name(kcp.get("spec") or {})
    if not template_name:
        raise TemplateResolutionError(
            f"control plane {kcp['metadata']['name']} has no infrastructure template",
            cluster_name,
            namespace,
        )

    try:
        return store.get("VSphereMachineTemplate", namespace, template_name)
    except ObjectNotFoundError:
        raise TemplateResolutionError(
            f"machine template {template_name} not found", cluster_name, namespace
        ) from None


def _template_name(kcp_spec: dict[str, Any]) -> str:
    # v1alpha3: spec.infrastructureTemplate, v1beta1: spec.machineTemplate.infrastructureRef
    ref = kcp_spec.get("infrastructureTemplate")
    if not ref:
        ref = (kcp_spec.get("machineTemplate") or {}).get("infrastructureRef")
    return (ref or {}).get("name", "")
