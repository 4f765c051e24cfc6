"""
Pydantic views over Kubernetes-shaped resources.

Resources move through the object store as plain dicts. The models in this
module give typed access to the parts netclaim reads and writes, and keep every
field they do not know about (extra="allow") so a device or object written back
carries exactly what was read plus netclaim's changes.

Model Categories:
    - Metadata: ObjectMeta, OwnerReference, ObjectRef
    - Provisioning: NetworkDevice, ProvisioningObject
    - IPAM: AddressPool, AllocationClaim, Address
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from netclaim.exceptions import MalformedObjectError
from netclaim.models.enums import AllocationMode
from netclaim.naming import LABEL_CONTROL_PLANE


class KubeModel(BaseModel):
    """Base model: camelCase aliases, unknown fields preserved."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_dict(self) -> dict[str, Any]:
        """Dump back to the wire shape, keeping only fields that were set."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


M = TypeVar("M", bound=BaseModel)


def describe_errors(e: pydantic.ValidationError) -> str:
    """Flatten a pydantic error into one line: "spec.address: Input should be ..."."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
        for err in e.errors()
    )


def parse_resource(model: type[M], body: Any, identity: str) -> M:
    """
    Validate a store dict into model.

    Raises:
        MalformedObjectError: body does not have the shape model expects.
    """
    try:
        return model.model_validate(body)
    except pydantic.ValidationError as e:
        raise MalformedObjectError(identity, describe_errors(e)) from None


# =============================================================================
# Metadata
# =============================================================================


class OwnerReference(KubeModel):
    api_version: str = Field(default="", alias="apiVersion")
    kind: str = ""
    name: str = ""
    uid: str = ""
    controller: bool | None = None
    block_owner_deletion: bool | None = Field(default=None, alias="blockOwnerDeletion")


class ObjectMeta(KubeModel):
    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(
        default_factory=list, alias="ownerReferences"
    )
    resource_version: str | None = Field(default=None, alias="resourceVersion")
    uid: str | None = None


class LocalObjectReference(KubeModel):
    name: str = ""
    namespace: str | None = None


@dataclass(frozen=True)
class ObjectRef:
    """Identity of one object: what the dispatcher queues and reconciles."""

    kind: str
    namespace: str
    name: str

    @classmethod
    def from_object(cls, body: dict[str, Any]) -> ObjectRef:
        meta = body.get("metadata") or {}
        return cls(
            kind=body.get("kind", ""),
            namespace=meta.get("namespace", ""),
            name=meta.get("name", ""),
        )

    def __str__(self) -> str:
        return f"{self.kind} {self.namespace}/{self.name}"


# =============================================================================
# Provisioning Objects
# =============================================================================


class NetworkDevice(KubeModel):
    """
    One virtual NIC in a machine's clone spec.

    A device is DHCP when either dhcp4 or dhcp6 is enabled; otherwise its
    address must be provided statically through ipAddrs.
    """

    network_name: str = Field(default="", alias="networkName")
    dhcp4: bool = False
    dhcp6: bool = False
    ip_addrs: list[str] = Field(default_factory=list, alias="ipAddrs")
    gateway4: str | None = None
    gateway6: str | None = None
    nameservers: list[str] = Field(default_factory=list)
    search_domains: list[str] = Field(default_factory=list, alias="searchDomains")

    @property
    def allocation_mode(self) -> AllocationMode:
        if self.dhcp4 or self.dhcp6:
            return AllocationMode.DHCP
        return AllocationMode.STATIC


# kind -> path of the device list inside the object body
DEVICE_PATHS: dict[str, tuple[str, ...]] = {
    "VSphereMachine": ("spec", "network", "devices"),
    "HAProxyLoadBalancer": ("spec", "virtualMachineConfiguration", "network", "devices"),
}


@dataclass
class ProvisioningObject:
    """A VSphereMachine or HAProxyLoadBalancer body with typed accessors."""

    body: dict[str, Any]

    def __post_init__(self):
        if self.kind not in DEVICE_PATHS:
            raise ValueError(f"not a provisioning object kind: {self.kind!r}")

    @property
    def kind(self) -> str:
        return self.body.get("kind", "")

    @property
    def metadata(self) -> ObjectMeta:
        meta = self.body.get("metadata") or {}
        return parse_resource(
            ObjectMeta, meta, f"{self.kind} {meta.get('namespace', '')}/{meta.get('name', '')}"
        )

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return dict(self.metadata.labels)

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(self.kind, self.namespace, self.name)

    @property
    def is_control_plane(self) -> bool:
        """Control-plane machines inherit pool selector labels from their template."""
        return self.kind == "VSphereMachine" and LABEL_CONTROL_PLANE in self.labels

    @property
    def devices(self) -> list[NetworkDevice]:
        node: Any = self.body
        for key in DEVICE_PATHS[self.kind]:
            if not isinstance(node, dict) or key not in node:
                return []
            node = node[key]
        return [
            parse_resource(NetworkDevice, dev, f"{self.ref} device {index}")
            for index, dev in enumerate(node or [])
        ]

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the body, used as the base of the merge patch."""
        return copy.deepcopy(self.body)

    def with_devices(self, devices: list[NetworkDevice]) -> ProvisioningObject:
        """Return a copy of this object with its whole device list replaced."""
        body = copy.deepcopy(self.body)
        node = body
        path = DEVICE_PATHS[self.kind]
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = [dev.to_dict() for dev in devices]
        return ProvisioningObject(body)

    def owner_reference(self) -> dict[str, Any]:
        """Owner reference pointing at this object, for claims it files."""
        meta = self.metadata
        return {
            "apiVersion": self.body.get("apiVersion", ""),
            "kind": self.kind,
            "name": meta.name,
            "uid": meta.uid or "",
        }


# =============================================================================
# IPAM Objects
# =============================================================================


class AddressPoolSpec(KubeModel):
    cluster_name: str | None = Field(default=None, alias="clusterName")
    prefix: int | None = None
    gateway: str | None = None
    dns_servers: list[str] = Field(default_factory=list, alias="dnsServers")
    search_domains: list[str] = Field(default_factory=list, alias="searchDomains")


class AddressPool(KubeModel):
    """IP pool: selector labels plus the network metadata shared by its addresses."""

    api_version: str = Field(default="", alias="apiVersion")
    kind: str = "IPPool"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: AddressPoolSpec = Field(default_factory=AddressPoolSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels


class ClaimSpec(KubeModel):
    pool: LocalObjectReference = Field(default_factory=LocalObjectReference)


class ClaimStatus(KubeModel):
    address: LocalObjectReference | None = None
    error_message: str | None = Field(default=None, alias="errorMessage")


class AllocationClaim(KubeModel):
    """Request for one address out of a pool, fulfilled by the IPAM controller."""

    api_version: str = Field(default="", alias="apiVersion")
    kind: str = "IPClaim"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ClaimSpec = Field(default_factory=ClaimSpec)
    status: ClaimStatus = Field(default_factory=ClaimStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def is_fulfilled(self) -> bool:
        return self.status.address is not None and bool(self.status.address.name)


class AddressSpec(KubeModel):
    address: str = ""
    prefix: int | None = None
    gateway: str | None = None
    dns_servers: list[str] = Field(default_factory=list, alias="dnsServers")
    pool: LocalObjectReference | None = None
    claim: LocalObjectReference | None = None


class Address(KubeModel):
    """Fulfilled claim result. Immutable once produced."""

    api_version: str = Field(default="", alias="apiVersion")
    kind: str = "IPAddress"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: AddressSpec = Field(default_factory=AddressSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def value(self) -> str:
        return self.spec.address

    @property
    def prefix(self) -> int | None:
        return self.spec.prefix

    @property
    def gateway(self) -> str | None:
        return self.spec.gateway
