"""
IPAM provider interface and registry.

A provider knows one IPAM backend's resources: how to find the pool for a set
of selector labels, how to read the address a claim was given, and how to file
a claim. Providers register themselves under a type key:

    @register_provider("metal3io")
    class Metal3IPAMProvider:
        def __init__(self, store, logger): ...

The reconciler looks the type up at the start of each pass. An unknown type is
not an error there: the pass ends as UNSUPPORTED and leaves devices alone.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol

from netclaim.exceptions import UnsupportedProviderError
from netclaim.models.resources import (
    Address,
    AddressPool,
    AllocationClaim,
    ProvisioningObject,
)
from netclaim.store.base import ObjectStore


class AllocationProvider(Protocol):
    """Capabilities the reconciler needs from an IPAM backend."""

    def resolve_pool(
        self, selector_labels: dict[str, str], cluster_name: str, namespace: str
    ) -> AddressPool | None:
        """
        Find the pool matching selector_labels for a cluster.

        Returns None when no pool matches yet. When several match, the choice
        must be deterministic.
        """

    def get_address(self, claim_name: str, pool: AddressPool) -> Address | None:
        """Return the address behind a fulfilled claim, None when not ready."""

    def allocate_address(
        self, claim_name: str, pool: AddressPool, owner: ProvisioningObject
    ) -> AllocationClaim:
        """Create the claim if it does not exist; never modify an existing one."""


ProviderFactory = Callable[[ObjectStore, Any], AllocationProvider]

_REGISTRY: dict[str, ProviderFactory] = {}


def register_provider(provider_type: str) -> Callable[[ProviderFactory], ProviderFactory]:
    """Class decorator registering a provider constructor under a type key."""

    def decorator(factory: ProviderFactory) -> ProviderFactory:
        _REGISTRY[provider_type] = factory
        return factory

    return decorator


def unregister_provider(provider_type: str) -> None:
    _REGISTRY.pop(provider_type, None)


def get_provider_factory(provider_type: str) -> ProviderFactory | None:
    """Look up a provider constructor; None when the type is not registered."""
    return _REGISTRY.get(provider_type)


def get_provider(provider_type: str, store: ObjectStore, logger: Any) -> AllocationProvider:
    """
    Build a provider, failing hard on an unknown type.

    Raises:
        UnsupportedProviderError: No provider registered for provider_type.
    """
    factory = get_provider_factory(provider_type)
    if factory is None:
        raise UnsupportedProviderError(provider_type)
    return factory(store, logger)


def registered_provider_types() -> list[str]:
    return sorted(_REGISTRY)
