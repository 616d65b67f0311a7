"""Base exceptions for pairline."""


class PairlineError(Exception):
    """Base exception for all pairline errors."""

    kind = "error"


class InvalidInputError(PairlineError):
    """Caller supplied malformed input (e.g. a bad phone number)."""

    kind = "invalid_input"


class NotReadyError(PairlineError):
    """Linked-device connection is not ready to issue codes. Retryable."""

    kind = "not_ready"


class NotFoundError(PairlineError):
    """Unknown pairing code."""

    kind = "not_found"


class InvalidTransitionError(PairlineError):
    """Pairing session status change not allowed from its current status."""

    kind = "invalid_transition"


class CollaboratorUnavailableError(PairlineError):
    """Device-link client could not be initialized or connected."""

    kind = "collaborator_unavailable"


class DuplicateCodeError(PairlineError):
    """Generated code collided with a live session."""

    kind = "duplicate_code"


class StorageError(PairlineError):
    """Credential storage operation failed."""

    kind = "storage_error"
