"""Custom exception hierarchy for region tracking."""


class CorralError(Exception):
    """Base exception for all corral errors."""


# --- Configuration ---
class ConfigError(CorralError):
    """Invalid or missing configuration."""


# --- Input ---
class ValidationError(CorralError):
    """Malformed boundary, direction, callback or region identifier."""


# --- Lookup ---
class NotFoundError(CorralError):
    """Operation against something that is not registered."""


class RegionNotFoundError(NotFoundError):
    """No region is registered under the given id."""

    def __init__(self, region_id: str):
        self.region_id = region_id
        super().__init__(f"Region not found: {region_id}")


class NamespaceNotFoundError(NotFoundError):
    """No callback on the region carries the given namespace tag."""

    def __init__(self, region_id: str, namespace: str):
        self.region_id = region_id
        self.namespace = namespace
        super().__init__(
            f"Namespace {namespace!r} not found on region {region_id}"
        )
