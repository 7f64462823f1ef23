"""Pydantic models for the session HTTP API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from verification_orchestrator.domain.sessions import (
    ProofEvent,
    ProofFailed,
    ProofSucceeded,
    VerificationOutcome,
)
from verification_orchestrator.services.orchestrator import SessionSnapshot


class ProofCallback(BaseModel):
    """Result reported by the prover integration."""

    session_id: str
    status: Literal["success", "error"]
    error: str | None = None

    def to_event(self) -> ProofEvent:
        """Convert the payload into a proof event."""
        if self.status == "success":
            return ProofSucceeded()
        if self.error:
            return ProofFailed(error=self.error)
        return ProofFailed()


class FailureModel(BaseModel):
    """Failure reason and detail."""

    reason: str
    detail: str


class OutcomeModel(BaseModel):
    """Verification outcome payload."""

    session_id: str
    verified: bool
    timestamp: datetime
    source: str
    persistence_error: str | None = None
    proof_error: str | None = None
    durable: bool

    @classmethod
    def from_outcome(cls, outcome: VerificationOutcome) -> "OutcomeModel":
        return cls(
            session_id=outcome.session_id,
            verified=outcome.verified,
            timestamp=outcome.timestamp,
            source=outcome.source,
            persistence_error=outcome.persistence_error,
            proof_error=outcome.proof_error,
            durable=outcome.durable,
        )


class SessionModel(BaseModel):
    """Session state exposed to the presentation layer."""

    session_id: str
    state: str
    failure: FailureModel | None = None
    backend_reachable: bool
    universal_link: str | None = None
    presented: bool
    outcome: OutcomeModel | None = None

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "SessionModel":
        failure = (
            FailureModel(
                reason=str(snapshot.failure.reason), detail=snapshot.failure.detail
            )
            if snapshot.failure
            else None
        )
        outcome = (
            OutcomeModel.from_outcome(snapshot.outcome) if snapshot.outcome else None
        )
        return cls(
            session_id=snapshot.session_id,
            state=str(snapshot.state),
            failure=failure,
            backend_reachable=snapshot.backend_reachable,
            universal_link=snapshot.universal_link,
            presented=snapshot.presented,
            outcome=outcome,
        )


class PresentResponse(BaseModel):
    """Request to open with the prover."""

    session_id: str
    universal_link: str


class CallbackResponse(BaseModel):
    """Result of handling a prover callback."""

    status: Literal["accepted", "ignored"]
    outcome: OutcomeModel | None = None
