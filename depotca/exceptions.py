"""Custom exceptions.
"""

__all__ = (
    "DepotCAError", "ParseError", "CryptoError",
    "PolicyViolation", "UnsupportedParameter",
    "StorageError", "ArtifactExists", "ArtifactMissing", "PermissionTooLax",
)


class DepotCAError(Exception):
    """Base for all errors raised by depotca."""


class ParseError(DepotCAError, ValueError):
    """Malformed PEM, DER or OID input, unknown block type."""


class CryptoError(DepotCAError, ValueError):
    """Signature mismatch, wrong passphrase, unusable key type."""


class PolicyViolation(DepotCAError, ValueError):
    """Request not allowed by certificate policy."""


class UnsupportedParameter(PolicyViolation):
    """Invalid key algorithm parameter."""


class StorageError(DepotCAError, OSError):
    """Depot read or write failed."""


class ArtifactExists(StorageError):
    """Artifact already exists in depot."""


class ArtifactMissing(StorageError):
    """Artifact not found in depot."""


class PermissionTooLax(StorageError):
    """Artifact file mode exceeds the allowed mask."""
