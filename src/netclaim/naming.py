"""Resource naming conventions and well-known labels."""

# Labels
LABEL_CLUSTER_NAME = "cluster.x-k8s.io/cluster-name"
LABEL_CONTROL_PLANE = "cluster.x-k8s.io/control-plane"
LABEL_MANAGED_BY = "netclaim.io/managed-by"

MANAGED_BY_VALUE = "netclaim"


def claim_name(object_name: str, device_index: int) -> str:
    """Generate the IP claim name for one device of a provisioning object."""
    return f"{object_name}-{device_index}"
