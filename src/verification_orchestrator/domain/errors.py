"""Error taxonomy for verification sessions."""


class VerificationError(Exception):
    """Base error carrying a human-readable detail."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class InitializationError(VerificationError):
    """The prover SDK could not build a presentable request."""


class ProofError(VerificationError):
    """The prover rejected the request or the user aborted it."""


class PersistenceError(VerificationError):
    """A valid proof could not be recorded by the backend."""


class SessionStateError(VerificationError):
    """A command was issued in a lifecycle state that does not allow it."""
