"""
Enumeration types for netclaim.

This module defines the enumerations shared by the reconciler, the IPAM
providers, the controller and the CLI.
"""

from enum import Enum


# =============================================================================
# Device-Related Enums
# =============================================================================


class AllocationMode(str, Enum):
    """
    How a network device obtains its address.

    - DHCP: address handed out by a DHCP server, never touched by netclaim
    - STATIC: address drawn from an IP pool and written into the device spec
    """

    DHCP = "dhcp"
    STATIC = "static"


# =============================================================================
# Reconcile-Related Enums
# =============================================================================


class ReconcileStatus(str, Enum):
    """
    Outcome of one reconciliation pass.

    State transitions within a pass:
        start -> SKIPPED (no devices, all DHCP)
        start -> UNSUPPORTED (no provider registered for the configured type)
        per-device loop -> WAIT_FOR_POOL | WAIT_FOR_ADDRESS | FAILED
        per-device loop -> DONE (single patch committed or nothing to change)
    """

    DONE = "done"  # All devices addressed, patch committed (or nothing to do)
    SKIPPED = "skipped"  # No devices or every device uses DHCP
    UNSUPPORTED = "unsupported"  # IPAM provider type not registered
    WAIT_FOR_POOL = "wait_for_pool"  # No matching IP pool yet
    WAIT_FOR_ADDRESS = "wait_for_address"  # Claim filed, address not yet fulfilled
    FAILED = "failed"  # Error returned to the dispatcher

    @property
    def is_not_ready(self) -> bool:
        """True for outcomes that mean "try again later" without an error."""
        return self in (
            ReconcileStatus.UNSUPPORTED,
            ReconcileStatus.WAIT_FOR_POOL,
            ReconcileStatus.WAIT_FOR_ADDRESS,
        )


class ProviderType(str, Enum):
    """Known IPAM provider types."""

    METAL3IO = "metal3io"


# =============================================================================
# Configuration Enums
# =============================================================================


class LogLevel(str, Enum):
    """
    Logging verbosity levels for netclaim components.

    Levels (from most to least verbose):
        - FULL: Complete trace with detailed stack information
        - DEBUG: Debug messages and above
        - INFO: Informational messages and above
        - WARNING: Only warnings and errors
    """

    FULL = "full"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
