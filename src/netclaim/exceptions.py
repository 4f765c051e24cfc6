"""netclaim exception classes."""


class NetClaimError(Exception):
    """Base exception for netclaim operations."""

    pass


# =============================================================================
# Validation
# =============================================================================


class ValidationError(NetClaimError):
    """A value read from the IPAM backend is not safe to apply."""

    pass


class InvalidAddressError(ValidationError):
    """Fulfilled address is empty, unparsable or has a bad prefix length."""

    def __init__(self, message: str, address: str = "", prefix: int | None = None):
        self.address = address
        self.prefix = prefix
        super().__init__(f"invalid address {address!r}/{prefix}: {message}")


class MalformedObjectError(ValidationError):
    """Object read from the store does not have the expected shape."""

    def __init__(self, identity: str, message: str):
        self.identity = identity
        super().__init__(f"malformed {identity}: {message}")


# =============================================================================
# Object Store
# =============================================================================


class StoreError(NetClaimError):
    """Read, list, create or patch against the object store failed."""

    def __init__(self, message: str, operation: str = "", kind: str = "", key: str = ""):
        self.operation = operation
        self.kind = kind
        self.key = key
        if operation:
            message = f"{operation} {kind} {key}: {message}"
        super().__init__(message)


class ObjectNotFoundError(StoreError):
    """Object does not exist."""

    pass


class AlreadyExistsError(StoreError):
    """Create hit an object with the same name."""

    pass


class ConflictError(StoreError):
    """Conditional write rejected because the object changed since it was read."""

    pass


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(NetClaimError):
    """Cluster objects are not arranged the way reconciliation requires."""

    pass


class TemplateResolutionError(ConfigurationError):
    """No unique control plane / machine template could be found."""

    def __init__(self, message: str, cluster_name: str, namespace: str):
        self.cluster_name = cluster_name
        self.namespace = namespace
        super().__init__(f"cluster {namespace}/{cluster_name}: {message}")


class UnsupportedProviderError(ConfigurationError):
    """No IPAM provider registered for the requested type."""

    def __init__(self, provider_type: str):
        self.provider_type = provider_type
        super().__init__(f"ipam provider type not supported: {provider_type}")
