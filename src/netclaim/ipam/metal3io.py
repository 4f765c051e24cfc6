"""
metal3 IPAM provider.

Works against the ipam.metal3.io resources:
- IPPool: selected by labels, carries prefix / gateway / DNS servers
- IPClaim: one per device, filed by netclaim, fulfilled by the metal3 IPAM
  controller which sets status.address
- IPAddress: the allocated address referenced from the claim status

Claim lifecycle as seen from here:
    absent -> (allocate_address) -> created, status empty
    created -> (metal3 controller) -> status.address set -> get_address returns it
    created -> (metal3 controller) -> status.errorMessage set -> stays not ready
"""

from __future__ import annotations

from typing import Any

import pydantic

from netclaim.config import config
from netclaim.exceptions import AlreadyExistsError, InvalidAddressError, ObjectNotFoundError
from netclaim.ipam.provider import register_provider
from netclaim.models.enums import ProviderType
from netclaim.models.resources import (
    Address,
    AddressPool,
    AllocationClaim,
    ProvisioningObject,
    describe_errors,
    parse_resource,
)
from netclaim.naming import LABEL_CLUSTER_NAME, LABEL_MANAGED_BY, MANAGED_BY_VALUE
from netclaim.store.base import ObjectStore
from netclaim.utils.logger import get_logger


@register_provider(ProviderType.METAL3IO.value)
class Metal3IPAMProvider:
    """AllocationProvider backed by metal3 IPPool / IPClaim / IPAddress objects."""

    def __init__(self, store: ObjectStore, logger: Any = None):
        self.store = store
        self.logger = logger or get_logger(__name__)

    # =========================================================================
    # Pools
    # =========================================================================

    def resolve_pool(
        self, selector_labels: dict[str, str], cluster_name: str, namespace: str
    ) -> AddressPool | None:
        """
        Find the pool for a selector within one cluster.

        A pool matches when its labels contain every selector label plus the
        cluster-name label, and its spec.clusterName (if set) is this cluster.
        Ties are broken by pool name.
        """
        selector = dict(selector_labels)
        selector[LABEL_CLUSTER_NAME] = cluster_name

        pools = [
            parse_resource(
                AddressPool, body, f"IPPool {namespace}/{body['metadata']['name']}"
            )
            for body in self.store.list("IPPool", namespace=namespace, labels=selector)
        ]
        pools = [
            p
            for p in pools
            if not p.spec.cluster_name or p.spec.cluster_name == cluster_name
        ]

        if not pools:
            self.logger.debug(f"no IPPool in {namespace} matches {selector}")
            return None

        pools.sort(key=lambda p: p.name)
        if len(pools) > 1:
            self.logger.info(
                f"{len(pools)} IPPools match {selector}, using {pools[0].name}"
            )
        return pools[0]

    # =========================================================================
    # Claims and Addresses
    # =========================================================================

    def get_address(self, claim_name: str, pool: AddressPool) -> Address | None:
        """
        Get the address allocated to a claim.

        Returns None when the claim does not exist, is not fulfilled yet, was
        rejected by the IPAM controller, or points at an address that is not
        visible yet.
        """
        namespace = pool.namespace
        try:
            body = self.store.get("IPClaim", namespace, claim_name)
        except ObjectNotFoundError:
            return None
        claim = parse_resource(AllocationClaim, body, f"IPClaim {namespace}/{claim_name}")

        if claim.status.error_message:
            self.logger.warning(
                f"IPClaim {namespace}/{claim_name} has error: {claim.status.error_message}"
            )
            return None

        if not claim.is_fulfilled:
            return None

        address_ref = claim.status.address
        try:
            body = self.store.get(
                "IPAddress", address_ref.namespace or namespace, address_ref.name
            )
        except ObjectNotFoundError:
            self.logger.debug(
                f"IPClaim {namespace}/{claim_name} references missing "
                f"IPAddress {address_ref.name}"
            )
            return None

        try:
            return Address.model_validate(body)
        except pydantic.ValidationError as e:
            spec = body.get("spec")
            spec = spec if isinstance(spec, dict) else {}
            raise InvalidAddressError(
                f"malformed IPAddress {address_ref.name}: {describe_errors(e)}",
                str(spec.get("address") or ""),
            ) from None

    def allocate_address(
        self, claim_name: str, pool: AddressPool, owner: ProvisioningObject
    ) -> AllocationClaim:
        """
        File an IPClaim against pool, owned by the provisioning object.

        An existing claim with the same name is returned as-is.
        """
        labels = {LABEL_MANAGED_BY: MANAGED_BY_VALUE}
        cluster_name = pool.labels.get(LABEL_CLUSTER_NAME)
        if cluster_name:
            labels[LABEL_CLUSTER_NAME] = cluster_name

        body = {
            "apiVersion": config.METAL3_IPAM_API_VERSION,
            "kind": "IPClaim",
            "metadata": {
                "name": claim_name,
                "namespace": pool.namespace,
                "labels": labels,
                "ownerReferences": [owner.owner_reference()],
            },
            "spec": {
                "pool": {"name": pool.name, "namespace": pool.namespace},
            },
        }

        try:
            created = self.store.create("IPClaim", body)
            self.logger.info(
                f"created IPClaim {pool.namespace}/{claim_name} on pool {pool.name}"
            )
            return parse_resource(
                AllocationClaim, created, f"IPClaim {pool.namespace}/{claim_name}"
            )
        except AlreadyExistsError:
            self.logger.debug(f"IPClaim {pool.namespace}/{claim_name} already exists")
            return parse_resource(
                AllocationClaim,
                self.store.get("IPClaim", pool.namespace, claim_name),
                f"IPClaim {pool.namespace}/{claim_name}",
            )
