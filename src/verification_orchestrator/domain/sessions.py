"""Domain models for verification sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from verification_orchestrator.domain.policy import AppIdentity, DisclosurePolicy


class LifecycleState(StrEnum):
    """Session lifecycle states."""

    INITIALIZING = "INITIALIZING"
    AWAITING_PROOF = "AWAITING_PROOF"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class FailureReason(StrEnum):
    """Which stage of the session failed."""

    INITIALIZATION = "initialization"
    PROOF = "proof"
    PERSISTENCE = "persistence"


ALLOWED_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.INITIALIZING: frozenset(
        {LifecycleState.AWAITING_PROOF, LifecycleState.FAILED}
    ),
    LifecycleState.AWAITING_PROOF: frozenset(
        {LifecycleState.SUCCEEDED, LifecycleState.FAILED}
    ),
    LifecycleState.SUCCEEDED: frozenset(),
    LifecycleState.FAILED: frozenset(),
}


@dataclass(frozen=True)
class SessionFailure:
    """Reason and detail attached to a failed session."""

    reason: FailureReason
    detail: str


@dataclass(frozen=True)
class SessionDescriptor:
    """Everything the prover SDK needs to build a request."""

    app: AppIdentity
    policy: DisclosurePolicy
    session_id: str


@dataclass(frozen=True)
class PresentableRequest:
    """Opaque request handed to the prover (descriptor payload plus link)."""

    session_id: str
    payload: dict[str, object]
    universal_link: str


@dataclass(frozen=True)
class ProofSucceeded:
    """The prover reported a valid proof."""


@dataclass(frozen=True)
class ProofFailed:
    """The prover reported a rejection or user-side failure."""

    error: str = "Identity verification failed"


ProofEvent = ProofSucceeded | ProofFailed


@dataclass(frozen=True)
class VerificationOutcome:
    """Terminal result of a session, emitted once."""

    session_id: str
    verified: bool
    timestamp: datetime
    source: str
    persistence_error: str | None = None
    proof_error: str | None = None

    @property
    def durable(self) -> bool:
        """Whether a verified result was recorded by the backend."""
        return self.verified and self.persistence_error is None


@dataclass
class Session:
    """A single verification attempt."""

    session_id: str
    policy: DisclosurePolicy
    state: LifecycleState = LifecycleState.INITIALIZING
    request: PresentableRequest | None = None
    backend_reachable: bool = False
    presented: bool = False
    result_received: bool = False
    failure: SessionFailure | None = None
    outcome: VerificationOutcome | None = None
    history: list[LifecycleState] = field(
        default_factory=lambda: [LifecycleState.INITIALIZING]
    )
