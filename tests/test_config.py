import pytest

from netclaim.config import NetClaimConfig
from netclaim.models.enums import LogLevel


def test_defaults():
    cfg = NetClaimConfig()

    assert cfg.IPAM_PROVIDER == "metal3io"
    assert cfg.ADDRESS_REQUEUE_SECONDS == 30.0
    assert cfg.WATCHED_KINDS == ["VSphereMachine", "HAProxyLoadBalancer"]


def test_load_from_env_coerces_types():
    cfg = NetClaimConfig()

    cfg.load_from_env(
        {
            "NETCLAIM_ADDRESS_REQUEUE_SECONDS": "10",
            "NETCLAIM_WORKER_COUNT": "4",
            "NETCLAIM_IN_CLUSTER": "true",
            "NETCLAIM_LOG_LEVEL": "DEBUG",
            "NETCLAIM_WATCHED_KINDS": "VSphereMachine, ",
            "NETCLAIM_NAMESPACE": "capi",
            "UNRELATED": "x",
        }
    )

    assert cfg.ADDRESS_REQUEUE_SECONDS == 10.0
    assert cfg.WORKER_COUNT == 4
    assert cfg.IN_CLUSTER is True
    assert cfg.LOG_LEVEL == LogLevel.DEBUG
    assert cfg.WATCHED_KINDS == ["VSphereMachine"]
    assert cfg.NAMESPACE == "capi"


def test_load_from_env_rejects_bad_values():
    with pytest.raises(ValueError):
        NetClaimConfig().load_from_env({"NETCLAIM_WORKER_COUNT": "many"})


def test_api_version_for():
    cfg = NetClaimConfig()

    assert cfg.api_version_for("IPClaim") == "ipam.metal3.io/v1alpha1"
    with pytest.raises(KeyError):
        cfg.api_version_for("Pod")
