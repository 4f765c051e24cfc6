"""
Static IP address reconciliation for VSphereMachines and HAProxyLoadBalancers.

One pass walks the object's network devices in order and, for every static
device without an address, resolves the IP pool, reads or files the IP claim,
validates the address and applies it. The pass either commits the whole device
list in one conditional patch or writes nothing:

    start
      -> SKIPPED            no devices, or every device uses DHCP
      -> UNSUPPORTED        configured IPAM provider not registered
      -> per-device loop
           -> WAIT_FOR_POOL     no pool matches yet (no claim, no patch)
           -> WAIT_FOR_ADDRESS  claim filed or still pending (requeue, no patch)
           -> FAILED            invalid address / store / template error
      -> DONE               single patch committed (or nothing changed)

Passes are idempotent and restart from device 0 every time. Devices processed
before a wait or a failure are discarded, not committed.
"""

from __future__ import annotations

from dataclasses import dataclass

from netclaim.config import config
from netclaim.exceptions import ConfigurationError, NetClaimError, ObjectNotFoundError
from netclaim.ipam.devices import (
    address_cidr,
    apply_address,
    is_object_dhcp,
    needs_allocation,
    validate_address,
)
from netclaim.ipam.provider import get_provider_factory, registered_provider_types
from netclaim.ipam.selector import resolve_selector_labels
from netclaim.models.enums import ReconcileStatus
from netclaim.models.resources import (
    DEVICE_PATHS,
    NetworkDevice,
    ObjectMeta,
    ObjectRef,
    ProvisioningObject,
    parse_resource,
)
from netclaim.naming import LABEL_CLUSTER_NAME, claim_name
from netclaim.store.base import ObjectStore
from netclaim.store.patch import create_merge_patch
from netclaim.utils.logger import format_traceback, get_logger

logger = get_logger(__name__)


@dataclass
class ReconcileResult:
    """Explicit outcome of one pass, handed back to the dispatcher."""

    status: ReconcileStatus
    requeue_after: float | None = None  # seconds
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.status == ReconcileStatus.FAILED


class AddressReconciler:
    """
    Assigns pool addresses to the static network devices of provisioning objects.

    Holds no per-object state; every pass reads fresh from the store, so one
    reconciler can serve concurrent passes for different objects.
    """

    def __init__(
        self,
        store: ObjectStore,
        provider_type: str | None = None,
        requeue_after: float | None = None,
    ):
        self.store = store
        self.provider_type = provider_type or config.IPAM_PROVIDER
        self.requeue_after = (
            config.ADDRESS_REQUEUE_SECONDS if requeue_after is None else requeue_after
        )

    # =========================================================================
    # Entry Point
    # =========================================================================

    def reconcile(self, ref: ObjectRef) -> ReconcileResult:
        """
        Reconcile the object behind ref.

        Never raises netclaim errors: they come back as a FAILED result so the
        dispatcher can retry with backoff.
        """
        log = logger.bind(object=str(ref))
        try:
            if ref.kind not in DEVICE_PATHS:
                raise ConfigurationError(f"cannot reconcile kind {ref.kind!r}")

            try:
                body = self.store.get(ref.kind, ref.namespace, ref.name)
            except ObjectNotFoundError:
                log.debug(f"{ref} not found, nothing to reconcile")
                return ReconcileResult(ReconcileStatus.DONE)

            obj = ProvisioningObject(body)
            cluster_name = self._find_cluster_name(obj)
            if cluster_name is None:
                return ReconcileResult(ReconcileStatus.DONE)

            return self.reconcile_addresses(obj, cluster_name)

        except NetClaimError as e:
            log.error(f"failed to reconcile IP address for {ref}: {e}")
            log.debug(format_traceback(e))
            return ReconcileResult(ReconcileStatus.FAILED, error=e)

    def _find_cluster_name(self, obj: ProvisioningObject) -> str | None:
        """
        Name of the cluster obj belongs to, or None while it is not linked yet.

        A VSphereMachine reaches its cluster through the owning Machine's
        cluster-name label; a load balancer shares its cluster's name.
        """
        if obj.kind == "HAProxyLoadBalancer":
            cluster_name = obj.name
        else:
            owner = next(
                (o for o in obj.metadata.owner_references if o.kind == "Machine"), None
            )
            if owner is None:
                logger.info(
                    f"waiting for machine controller to set ownerRef on {obj.ref}"
                )
                return None

            try:
                body = self.store.get("Machine", obj.namespace, owner.name)
            except ObjectNotFoundError:
                logger.info(f"owner Machine {owner.name} of {obj.ref} not found")
                return None
            machine = parse_resource(
                ObjectMeta, body.get("metadata") or {}, f"Machine {obj.namespace}/{owner.name}"
            )

            cluster_name = machine.labels.get(LABEL_CLUSTER_NAME)
            if not cluster_name:
                logger.info(f"Machine {machine.name} is missing the cluster label")
                return None

        try:
            self.store.get("Cluster", obj.namespace, cluster_name)
        except ObjectNotFoundError:
            logger.info(f"Cluster {obj.namespace}/{cluster_name} does not exist")
            return None

        return cluster_name

    # =========================================================================
    # Reconciliation Pass
    # =========================================================================

    def reconcile_addresses(
        self, obj: ProvisioningObject, cluster_name: str
    ) -> ReconcileResult:
        """
        Run one allocation pass over obj's devices.

        Raises:
            InvalidAddressError: A fulfilled address failed validation.
            TemplateResolutionError: Control-plane template lookup was ambiguous.
            StoreError: Any store failure, including a conflicting patch.
        """
        log = logger.bind(object=str(obj.ref))
        devices = obj.devices

        log.info(f"reconcile IP address for {obj.ref}")
        if not devices:
            log.info(f"no network device found for {obj.ref}")
            return ReconcileResult(ReconcileStatus.SKIPPED)

        if is_object_dhcp(devices):
            log.info(f"{obj.ref} has allocation type DHCP")
            return ReconcileResult(ReconcileStatus.SKIPPED)

        factory = get_provider_factory(self.provider_type)
        if factory is None:
            log.info(
                f"ipam type {self.provider_type!r} not supported "
                f"(registered: {', '.join(registered_provider_types()) or 'none'})"
            )
            return ReconcileResult(ReconcileStatus.UNSUPPORTED)
        provider = factory(self.store, log)

        snapshot = obj.snapshot()
        selector_labels: dict[str, str] | None = None
        updated: list[NetworkDevice] = []

        for index, device in enumerate(devices):
            if not needs_allocation(device):
                updated.append(device)
                continue

            if selector_labels is None:
                selector_labels = resolve_selector_labels(self.store, obj, cluster_name)

            pool = provider.resolve_pool(selector_labels, cluster_name, obj.namespace)
            if pool is None:
                log.info(f"waiting for IPPool to be available for {obj.ref}")
                return ReconcileResult(ReconcileStatus.WAIT_FOR_POOL)

            name = claim_name(obj.name, index)
            address = provider.get_address(name, pool)
            if address is None:
                provider.allocate_address(name, pool, obj)
                log.info(f"waiting for IP address to be available for {obj.ref}")
                return ReconcileResult(
                    ReconcileStatus.WAIT_FOR_ADDRESS, requeue_after=self.requeue_after
                )

            validate_address(address)
            log.info(
                f"assigning IP address {address_cidr(address)} ({address.name}) "
                f"to device {index} of {obj.ref}"
            )
            updated.append(apply_address(device, address, pool))

        self._commit(obj, snapshot, updated)
        return ReconcileResult(ReconcileStatus.DONE)

    def _commit(
        self,
        obj: ProvisioningObject,
        snapshot: dict,
        devices: list[NetworkDevice],
    ) -> None:
        """Write the whole device list in one patch conditioned on the snapshot."""
        desired = obj.with_devices(devices)
        patch = create_merge_patch(snapshot, desired.body)
        if not patch:
            logger.debug(f"no device changes for {obj.ref}")
            return

        self.store.patch(
            obj.kind,
            obj.namespace,
            obj.name,
            patch,
            resource_version=obj.metadata.resource_version,
        )
        logger.info(f"successfully reconciled IP address for {obj.ref}")
