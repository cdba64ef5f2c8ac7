# enigma/services/errors.py
"""
Error kinds raised by the service layer.

None of them is fatal for the process: the HTTP error middleware and the
socket handler turn them into client-facing responses.
"""


class EnigmaError(Exception):
    """Base class for service errors."""

    code = "internal_error"
    status = 500


class ReputationProviderUnavailable(EnigmaError):
    """The reputation provider failed (network, timeout, quota, malformed payload)."""

    code = "reputation_unavailable"
    status = 503


class UnknownIdentity(EnigmaError):
    """An operation referenced an identity absent from the store."""

    code = "unknown_identity"
    status = 404

    def __init__(self, identity_id: str):
        super().__init__(f"Identity '{identity_id}' not found")
        self.identity_id = identity_id


class PersistenceWriteFailure(EnigmaError):
    """The backing store rejected or timed out a counter write."""

    code = "persistence_failure"
    status = 503


class MalformedRequest(EnigmaError):
    """Missing or invalid request fields."""

    code = "malformed_request"
    status = 400
