import pytest

from netclaim.exceptions import InvalidAddressError, ValidationError
from netclaim.ipam.devices import (
    address_cidr,
    apply_address,
    is_object_dhcp,
    needs_allocation,
    validate_address,
)
from netclaim.models.enums import AllocationMode
from netclaim.models.resources import Address, AddressPool, NetworkDevice
from netclaim.naming import claim_name


def make_address(value: str = "10.0.0.5", prefix: int | None = 24, gateway=None) -> Address:
    spec = {"address": value, "prefix": prefix}
    if gateway:
        spec["gateway"] = gateway
    return Address.model_validate({"metadata": {"name": "addr"}, "spec": spec})


def make_pool_model(gateway="10.0.0.1", dns=None, search=None) -> AddressPool:
    return AddressPool.model_validate(
        {
            "metadata": {"name": "pool-a", "namespace": "default"},
            "spec": {
                "prefix": 24,
                "gateway": gateway,
                "dnsServers": dns if dns is not None else ["8.8.8.8"],
                "searchDomains": search if search is not None else ["example.com"],
            },
        }
    )


def test_needs_allocation_only_for_static_without_address():
    assert needs_allocation(NetworkDevice.model_validate({"networkName": "n"}))
    assert not needs_allocation(NetworkDevice.model_validate({"dhcp4": True}))
    assert not needs_allocation(NetworkDevice.model_validate({"dhcp6": True}))
    assert not needs_allocation(
        NetworkDevice.model_validate({"ipAddrs": ["192.168.1.10/24"]})
    )


def test_allocation_mode():
    assert NetworkDevice.model_validate({"dhcp4": True}).allocation_mode == AllocationMode.DHCP
    assert NetworkDevice.model_validate({}).allocation_mode == AllocationMode.STATIC


def test_is_object_dhcp():
    dhcp = NetworkDevice.model_validate({"dhcp4": True})
    static = NetworkDevice.model_validate({"dhcp4": False})
    assert is_object_dhcp([dhcp, dhcp])
    assert not is_object_dhcp([dhcp, static])


@pytest.mark.parametrize(
    "value, prefix",
    [
        ("", 24),
        ("   ", 24),
        ("not-an-ip", 24),
        ("10.0.0.5", None),
        ("10.0.0.5", 0),
        ("10.0.0.5", 33),
        ("fd00::5", 129),
    ],
)
def test_validate_address_rejects(value, prefix):
    with pytest.raises(InvalidAddressError):
        validate_address(make_address(value, prefix))


def test_validate_address_error_is_a_validation_error():
    with pytest.raises(ValidationError):
        validate_address(make_address("", 24))


def test_validate_address_accepts_v4_and_v6():
    validate_address(make_address("10.0.0.5", 24))
    validate_address(make_address("10.0.0.5", 32))
    validate_address(make_address("fd00::5", 64))


def test_apply_address_builds_cidr_and_copies_pool_settings():
    device = NetworkDevice.model_validate({"networkName": "vm-network", "dhcp4": False})

    updated = apply_address(device, make_address("10.0.0.5", 24), make_pool_model())

    assert updated.ip_addrs == ["10.0.0.5/24"]
    assert updated.gateway4 == "10.0.0.1"
    assert updated.nameservers == ["8.8.8.8"]
    assert updated.search_domains == ["example.com"]
    assert updated.to_dict() == {
        "networkName": "vm-network",
        "dhcp4": False,
        "ipAddrs": ["10.0.0.5/24"],
        "gateway4": "10.0.0.1",
        "nameservers": ["8.8.8.8"],
        "searchDomains": ["example.com"],
    }


def test_apply_address_prefers_address_gateway():
    device = NetworkDevice.model_validate({})
    updated = apply_address(
        device, make_address("10.0.0.5", 24, gateway="10.0.0.254"), make_pool_model()
    )
    assert updated.gateway4 == "10.0.0.254"


def test_apply_address_leaves_ipv6_gateway_unset():
    device = NetworkDevice.model_validate({"networkName": "v6"})
    updated = apply_address(
        device, make_address("fd00::5", 64, gateway="fd00::1"), make_pool_model()
    )
    assert updated.ip_addrs == ["fd00::5/64"]
    assert updated.gateway4 is None
    assert updated.gateway6 is None
    assert "gateway4" not in updated.to_dict()


def test_apply_address_keeps_other_fields_and_does_not_mutate_input():
    device = NetworkDevice.model_validate(
        {"networkName": "vm-network", "macAddr": "00:50:56:aa:bb:cc", "dhcp6": False}
    )

    updated = apply_address(device, make_address(), make_pool_model())

    assert updated.to_dict()["macAddr"] == "00:50:56:aa:bb:cc"
    assert updated.dhcp6 is False
    assert updated.allocation_mode == AllocationMode.STATIC
    assert device.ip_addrs == []
    assert "ipAddrs" not in device.to_dict()


def test_address_cidr():
    assert address_cidr(make_address("10.1.2.3", 16)) == "10.1.2.3/16"


def test_claim_name_is_deterministic():
    assert claim_name("vm1", 0) == claim_name("vm1", 0) == "vm1-0"
    assert claim_name("vm1", 1) != claim_name("vm1", 0)
