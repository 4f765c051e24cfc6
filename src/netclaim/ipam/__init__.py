"""
IPAM integration for netclaim.

Provides:
- Device classification, address validation and device update
- Pool selector label resolution (control-plane template merge)
- AllocationProvider protocol and provider registry
- metal3 IPAM provider (registered as "metal3io" on import)
"""

from netclaim.ipam.devices import (
    address_cidr,
    apply_address,
    is_object_dhcp,
    needs_allocation,
    validate_address,
)
from netclaim.ipam.provider import (
    AllocationProvider,
    get_provider,
    get_provider_factory,
    register_provider,
    registered_provider_types,
    unregister_provider,
)
from netclaim.ipam.selector import resolve_selector_labels
from netclaim.ipam import metal3io
from netclaim.ipam.metal3io import Metal3IPAMProvider

__all__ = [
    # Devices
    "needs_allocation",
    "is_object_dhcp",
    "validate_address",
    "apply_address",
    "address_cidr",
    # Selector
    "resolve_selector_labels",
    # Providers
    "AllocationProvider",
    "register_provider",
    "unregister_provider",
    "get_provider",
    "get_provider_factory",
    "registered_provider_types",
    "Metal3IPAMProvider",
    "metal3io",
]
