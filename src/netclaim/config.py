"""
netclaim configuration.

This module defines the configuration dataclass for the reconciler, the
controller loop and the CLI, providing a centralized place for all
configurable parameters.

Configuration can be modified at runtime by importing the global config
instance and updating its attributes before building a reconciler.

Usage:
    from netclaim.config import config

    config.NAMESPACE = "capi-system"
    config.LOG_LEVEL = LogLevel.DEBUG
"""

import os
from dataclasses import dataclass, field, fields

from netclaim.models.enums import LogLevel, ProviderType

ENV_PREFIX = "NETCLAIM_"


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class NetClaimConfig:
    """
    netclaim configuration.

    Attributes:
        IPAM_PROVIDER: Provider type key looked up in the provider registry.
        ADDRESS_REQUEUE_SECONDS: Delay before re-checking a pending claim.
        NAMESPACE: Namespace to watch (empty = all namespaces).
        LOG_LEVEL: Logging verbosity level.
    """

    # -------------------------------------------------------------------------
    # IPAM Configuration
    # -------------------------------------------------------------------------

    IPAM_PROVIDER: str = ProviderType.METAL3IO.value
    ADDRESS_REQUEUE_SECONDS: float = 30.0

    # -------------------------------------------------------------------------
    # Kubernetes Configuration
    # -------------------------------------------------------------------------

    NAMESPACE: str = ""
    KUBECONFIG: str = ""  # Empty = default kubeconfig lookup
    KUBE_CONTEXT: str = ""
    IN_CLUSTER: bool = False

    # API group/version per resource family
    CAPI_API_VERSION: str = "cluster.x-k8s.io/v1alpha3"
    CAPV_API_VERSION: str = "infrastructure.cluster.x-k8s.io/v1alpha3"
    KCP_API_VERSION: str = "controlplane.cluster.x-k8s.io/v1alpha3"
    METAL3_IPAM_API_VERSION: str = "ipam.metal3.io/v1alpha1"

    # -------------------------------------------------------------------------
    # Controller Configuration
    # -------------------------------------------------------------------------

    WORKER_COUNT: int = 2
    RESYNC_INTERVAL_SECONDS: float = 60.0
    ERROR_BACKOFF_BASE_SECONDS: float = 1.0
    ERROR_BACKOFF_MAX_SECONDS: float = 300.0
    WATCHED_KINDS: list[str] = field(
        default_factory=lambda: ["VSphereMachine", "HAProxyLoadBalancer"]
    )

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------

    LOG_LEVEL: LogLevel = LogLevel.INFO
    LOG_FILE: str = ""

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def load_from_env(self, environ: dict[str, str] | None = None) -> None:
        """
        Override fields from NETCLAIM_* environment variables.

        Values are coerced to the type of the current default. Lists are
        comma separated.
        """
        environ = os.environ if environ is None else environ

        for f in fields(self):
            raw = environ.get(ENV_PREFIX + f.name)
            if raw is None:
                continue

            current = getattr(self, f.name)
            if isinstance(current, bool):
                value = raw.strip().lower() in ("1", "true", "yes", "on")
            elif isinstance(current, LogLevel):
                value = LogLevel(raw.strip().lower())
            elif isinstance(current, int):
                value = int(raw)
            elif isinstance(current, float):
                value = float(raw)
            elif isinstance(current, list):
                value = [item.strip() for item in raw.split(",") if item.strip()]
            else:
                value = raw
            setattr(self, f.name, value)

    def api_version_for(self, kind: str) -> str:
        """
        Get the apiVersion used for a resource kind.

        Raises:
            KeyError: If the kind is not one netclaim reads or writes.
        """
        return {
            "Cluster": self.CAPI_API_VERSION,
            "Machine": self.CAPI_API_VERSION,
            "VSphereMachine": self.CAPV_API_VERSION,
            "VSphereMachineTemplate": self.CAPV_API_VERSION,
            "HAProxyLoadBalancer": self.CAPV_API_VERSION,
            "KubeadmControlPlane": self.KCP_API_VERSION,
            "IPPool": self.METAL3_IPAM_API_VERSION,
            "IPClaim": self.METAL3_IPAM_API_VERSION,
            "IPAddress": self.METAL3_IPAM_API_VERSION,
        }[kind]


# =============================================================================
# Global Instance
# =============================================================================

# Global config instance - modify before building the reconciler
config = NetClaimConfig()
