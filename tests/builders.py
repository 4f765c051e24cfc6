"""
Builders for Kubernetes-shaped test objects.

The default world: cluster "c1" in namespace "default", a Machine "m1" that
owns VSphereMachine "vm1", and an IPPool "pool-a" whose labels match vm1.
"""

from netclaim.naming import LABEL_CLUSTER_NAME, LABEL_CONTROL_PLANE
from netclaim.store.memory import InMemoryObjectStore

NS = "default"
CLUSTER = "c1"
CAPI = "cluster.x-k8s.io/v1alpha3"
CAPV = "infrastructure.cluster.x-k8s.io/v1alpha3"
METAL3 = "ipam.metal3.io/v1alpha1"


def static_device(network: str = "vm-network", **extra) -> dict:
    return {"networkName": network, "dhcp4": False, **extra}


def dhcp_device(network: str = "vm-network", **extra) -> dict:
    return {"networkName": network, "dhcp4": True, **extra}


def make_cluster(name: str = CLUSTER, namespace: str = NS) -> dict:
    return {
        "apiVersion": CAPI,
        "kind": "Cluster",
        "metadata": {"name": name, "namespace": namespace},
    }


def make_owner_machine(name: str = "m1", cluster: str = CLUSTER, namespace: str = NS) -> dict:
    return {
        "apiVersion": CAPI,
        "kind": "Machine",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": {LABEL_CLUSTER_NAME: cluster},
        },
    }


def make_machine(
    name: str = "vm1",
    devices: list[dict] | None = None,
    labels: dict | None = None,
    owner: str | None = "m1",
    control_plane: bool = False,
    namespace: str = NS,
) -> dict:
    labels = dict(labels if labels is not None else {LABEL_CLUSTER_NAME: CLUSTER, "pool": "a"})
    if control_plane:
        labels[LABEL_CONTROL_PLANE] = ""
    metadata = {"name": name, "namespace": namespace, "labels": labels}
    if owner:
        metadata["ownerReferences"] = [
            {"apiVersion": CAPI, "kind": "Machine", "name": owner, "uid": "uid-" + owner}
        ]
    return {
        "apiVersion": CAPV,
        "kind": "VSphereMachine",
        "metadata": metadata,
        "spec": {
            "template": "ubuntu-2004",
            "network": {"devices": devices if devices is not None else [static_device()]},
        },
    }


def make_load_balancer(
    name: str = CLUSTER,
    devices: list[dict] | None = None,
    labels: dict | None = None,
    namespace: str = NS,
) -> dict:
    return {
        "apiVersion": CAPV,
        "kind": "HAProxyLoadBalancer",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": labels if labels is not None else {LABEL_CLUSTER_NAME: name, "pool": "a"},
        },
        "spec": {
            "virtualMachineConfiguration": {
                "network": {"devices": devices if devices is not None else [static_device()]},
            }
        },
    }


def make_pool(
    name: str = "pool-a",
    labels: dict | None = None,
    cluster: str | None = CLUSTER,
    gateway: str = "10.0.0.1",
    prefix: int = 24,
    dns: list[str] | None = None,
    search: list[str] | None = None,
    namespace: str = NS,
) -> dict:
    spec = {
        "prefix": prefix,
        "gateway": gateway,
        "dnsServers": dns if dns is not None else ["8.8.8.8"],
        "searchDomains": search if search is not None else ["example.com"],
        "pools": [{"start": "10.0.0.10", "end": "10.0.0.200"}],
    }
    if cluster:
        spec["clusterName"] = cluster
    return {
        "apiVersion": METAL3,
        "kind": "IPPool",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": labels if labels is not None else {LABEL_CLUSTER_NAME: CLUSTER, "pool": "a"},
        },
        "spec": spec,
    }


def make_control_plane(
    name: str = "c1-cp",
    template: str = "cp-template",
    cluster: str = CLUSTER,
    namespace: str = NS,
) -> dict:
    return {
        "apiVersion": "controlplane.cluster.x-k8s.io/v1alpha3",
        "kind": "KubeadmControlPlane",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": {LABEL_CLUSTER_NAME: cluster},
        },
        "spec": {
            "infrastructureTemplate": {"kind": "VSphereMachineTemplate", "name": template}
        },
    }


def make_machine_template(
    name: str = "cp-template", labels: dict | None = None, namespace: str = NS
) -> dict:
    return {
        "apiVersion": CAPV,
        "kind": "VSphereMachineTemplate",
        "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
        "spec": {"template": {"spec": {}}},
    }


def fulfill_claim(
    store: InMemoryObjectStore,
    claim: str,
    address: str = "10.0.0.5",
    prefix: int | None = 24,
    gateway: str | None = "10.0.0.1",
    namespace: str = NS,
) -> None:
    """Play the metal3 IPAM controller: create the IPAddress, link it from the claim."""
    spec = {"address": address, "pool": {"name": "pool-a"}, "claim": {"name": claim}}
    if prefix is not None:
        spec["prefix"] = prefix
    if gateway is not None:
        spec["gateway"] = gateway
    store.add(
        {
            "apiVersion": METAL3,
            "kind": "IPAddress",
            "metadata": {"name": f"pool-a-{address}", "namespace": namespace},
            "spec": spec,
        }
    )
    store.patch(
        "IPClaim", namespace, claim, {"status": {"address": {"name": f"pool-a-{address}"}}}
    )


def machine_devices(store: InMemoryObjectStore, name: str = "vm1") -> list[dict]:
    return store.get("VSphereMachine", NS, name)["spec"]["network"]["devices"]
