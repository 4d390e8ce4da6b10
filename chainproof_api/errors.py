"""Error taxonomy for the protection pipeline and certificate issuance.

Mandatory-stage errors (validation, hashing, primary storage, rendering)
propagate to the caller. Optional-stage errors (PublishError, AnchorError)
are caught by the orchestrator and folded into a degraded result.
"""


class ChainProofError(Exception):
    """Base class for all domain errors. `message` is safe to show to users."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ProtectionError(ChainProofError):
    """Fatal failure of a protection request."""


class InputError(ProtectionError):
    """The input bytes could not be read."""


class ValidationError(ProtectionError):
    """Input violates a size, type or required-field constraint."""


class Unauthenticated(ProtectionError):
    """No valid subject for the request."""


class StorageError(ProtectionError):
    """A mandatory persistence step failed."""


class PublishError(ChainProofError):
    """Distributed storage publish failed."""


class AnchorError(ChainProofError):
    """Ledger anchoring failed."""


class IssuanceError(ChainProofError):
    """Certificate issuance failed."""


class RenderError(IssuanceError):
    """Certificate artifact could not be constructed."""


class NotFoundError(ChainProofError):
    """Unknown asset or certificate id."""


class AlreadyRevoked(ChainProofError):
    """Target was already revoked."""
