"""
Per-device decisions: does it need an address, is the address usable, and
what does the device look like once the address is applied.

All functions here are pure.
"""

import ipaddress

from netclaim.exceptions import InvalidAddressError
from netclaim.models.enums import AllocationMode
from netclaim.models.resources import Address, AddressPool, NetworkDevice


def needs_allocation(device: NetworkDevice) -> bool:
    """True only for a static device that has no address yet."""
    if device.allocation_mode == AllocationMode.DHCP:
        return False
    return len(device.ip_addrs) == 0


def is_object_dhcp(devices: list[NetworkDevice]) -> bool:
    """True when every device of an object uses DHCP."""
    return all(dev.allocation_mode == AllocationMode.DHCP for dev in devices)


def validate_address(address: Address) -> None:
    """
    Check a fulfilled address before it is written to a device.

    Raises:
        InvalidAddressError: Empty or unparsable address, or a prefix length
            outside 1..32 (IPv4) / 1..128 (IPv6).
    """
    value = (address.value or "").strip()
    prefix = address.prefix

    if not value:
        raise InvalidAddressError("address is empty", value, prefix)

    try:
        ip = ipaddress.ip_address(value)
    except ValueError:
        raise InvalidAddressError("not an IP address", value, prefix) from None

    if prefix is None or not 1 <= prefix <= ip.max_prefixlen:
        raise InvalidAddressError(
            f"prefix length must be between 1 and {ip.max_prefixlen}", value, prefix
        )


def address_cidr(address: Address) -> str:
    """Render an address in the CIDR form the machine spec expects (10.0.0.5/24)."""
    return f"{address.value.strip()}/{address.prefix}"


def apply_address(
    device: NetworkDevice, address: Address, pool: AddressPool
) -> NetworkDevice:
    """
    Return a copy of device carrying the address, gateway and DNS settings.

    Only ipAddrs, gateway4, nameservers and searchDomains change. The IPv6
    gateway is never set.
    """
    update = {
        "ip_addrs": [address_cidr(address)],
        "nameservers": list(pool.spec.dns_servers),
        "search_domains": list(pool.spec.search_domains),
    }

    # TODO: set gateway6 once dual-stack pools are supported
    gateway = address.gateway or pool.spec.gateway
    if gateway and ipaddress.ip_address(address.value.strip()).version == 4:
        update["gateway4"] = gateway

    return device.model_copy(update=update, deep=True)
