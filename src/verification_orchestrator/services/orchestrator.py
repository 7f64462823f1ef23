"""Verification session orchestrator.

Drives one verification session at a time through
``INITIALIZING -> AWAITING_PROOF -> (SUCCEEDED | FAILED)``. A failed session
can be retried, which supersedes it with a fresh session id.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from verification_orchestrator.domain.errors import (
    InitializationError,
    PersistenceError,
    ProofError,
    SessionStateError,
    VerificationError,
)
from verification_orchestrator.domain.policy import AppIdentity, DisclosurePolicy
from verification_orchestrator.domain.sessions import (
    ALLOWED_TRANSITIONS,
    FailureReason,
    LifecycleState,
    PresentableRequest,
    ProofEvent,
    ProofFailed,
    Session,
    SessionDescriptor,
    SessionFailure,
    VerificationOutcome,
)
from verification_orchestrator.services.audit import AuditService

logger = logging.getLogger(__name__)

_MAX_SESSION_ID_ATTEMPTS = 5

OutcomeListener = Callable[[VerificationOutcome], None]


class ProverSdk(Protocol):
    """Interface for building prover-facing requests."""

    async def build_request(self, descriptor: SessionDescriptor) -> PresentableRequest:
        """Return a presentable request or raise InitializationError."""


class VerificationBackend(Protocol):
    """Interface for the remote verification service."""

    async def check_health(self) -> bool:
        """Return whether the backend answered its health check."""

    async def persist(
        self, session_correlation_id: str, claim_metadata: dict[str, object]
    ) -> None:
        """Record a verified claim or raise PersistenceError."""


def _default_session_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the active session for the presentation layer."""

    session_id: str
    state: LifecycleState
    failure: SessionFailure | None
    backend_reachable: bool
    universal_link: str | None
    presented: bool
    outcome: VerificationOutcome | None


@dataclass
class VerificationOrchestrator:
    """Coordinates initialization, connectivity, reconciliation and retry."""

    app: AppIdentity
    policy: DisclosurePolicy
    prover: ProverSdk
    backend: VerificationBackend
    source: str = "self-protocol"
    session_id_factory: Callable[[], str] = _default_session_id
    audit_service: AuditService | None = None
    session: Session = field(init=False)
    used_session_ids: set[str] = field(init=False, default_factory=set)
    _listeners: list[OutcomeListener] = field(init=False, default_factory=list)
    _init_lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        self.session = Session(
            session_id=self._allocate_session_id(), policy=self.policy
        )

    def subscribe(self, listener: OutcomeListener) -> None:
        """Register a callable that receives every emitted outcome."""
        self._listeners.append(listener)

    async def start(self) -> SessionSnapshot:
        """Initialize the session and check the backend concurrently."""
        await asyncio.gather(self.initialize(), self.check_connectivity())
        return self.snapshot()

    async def initialize(self) -> PresentableRequest | None:
        """Build the presentable request for the active session."""
        async with self._init_lock:
            session = self.session
            if session.state is LifecycleState.AWAITING_PROOF and session.request:
                return session.request
            if session.state is not LifecycleState.INITIALIZING:
                raise SessionStateError(
                    f"Cannot initialize a session in state {session.state}"
                )
            descriptor = SessionDescriptor(
                app=self.app, policy=session.policy, session_id=session.session_id
            )
            try:
                request = await self.prover.build_request(descriptor)
            except InitializationError as exc:
                logger.error(
                    "Failed to initialize session %s: %s", session.session_id, exc
                )
                self._fail(session, FailureReason.INITIALIZATION, exc)
                return None
            session.request = request
            self._transition(session, LifecycleState.AWAITING_PROOF)
            logger.info("Session %s ready for the prover", session.session_id)
            return request

    async def check_connectivity(self) -> bool:
        """Check backend reachability; the result is advisory only."""
        try:
            reachable = await self.backend.check_health()
        except Exception as exc:
            logger.warning("Backend health check raised: %s", exc)
            reachable = False
        self.session.backend_reachable = reachable
        if reachable:
            logger.info("Verification backend reachable")
        else:
            logger.warning("Verification backend not reachable")
        return reachable

    def present(self) -> PresentableRequest:
        """Mark the active request as opened and return it."""
        session = self.session
        if session.state is not LifecycleState.AWAITING_PROOF or not session.request:
            raise SessionStateError("No active request to present")
        session.presented = True
        logger.info(
            "Opening prover for session %s: %s",
            session.session_id,
            session.request.universal_link,
        )
        return session.request

    async def handle_proof_result(
        self, session_id: str, event: ProofEvent
    ) -> VerificationOutcome | None:
        """Reconcile a prover callback with the backend.

        Returns the emitted outcome, or ``None`` when the callback is stale or
        the session already consumed its callback.
        """
        session = self.session
        if session_id != session.session_id:
            logger.warning(
                "Ignoring callback for stale session %s (active %s)",
                session_id,
                session.session_id,
            )
            self._audit(session_id, "stale_callback", detail=type(event).__name__)
            return None
        if session.state is not LifecycleState.AWAITING_PROOF or session.result_received:
            logger.warning(
                "Ignoring callback for session %s in state %s",
                session_id,
                session.state,
            )
            self._audit(
                session_id,
                "duplicate_callback",
                from_state=session.state,
                detail=type(event).__name__,
            )
            return None
        session.result_received = True

        if isinstance(event, ProofFailed):
            error = ProofError(event.error)
            logger.error("Proof failed for session %s: %s", session_id, error)
            self._fail(session, FailureReason.PROOF, error)
            return self._emit(
                session,
                VerificationOutcome(
                    session_id=session_id,
                    verified=False,
                    timestamp=datetime.now(tz=UTC),
                    source=self.source,
                    proof_error=error.detail,
                ),
            )

        verified_at = datetime.now(tz=UTC)
        try:
            await self.backend.persist(
                session_id, self._claim_metadata(session, verified_at)
            )
        except PersistenceError as exc:
            return self._persistence_failed(session, verified_at, exc)
        except asyncio.CancelledError:
            self._persistence_failed(
                session, verified_at, PersistenceError("Persistence call cancelled")
            )
            raise
        except Exception as exc:
            logger.exception(
                "Unexpected persistence failure for session %s", session_id
            )
            return self._persistence_failed(
                session,
                verified_at,
                PersistenceError(f"Unexpected persistence failure: {exc}"),
            )

        self._transition(session, LifecycleState.SUCCEEDED)
        logger.info("Session %s verified and recorded", session_id)
        return self._emit(
            session,
            VerificationOutcome(
                session_id=session_id,
                verified=True,
                timestamp=verified_at,
                source=self.source,
            ),
        )

    async def retry(self) -> SessionSnapshot:
        """Supersede a failed session with a fresh one and initialize it.

        Raises InitializationError, leaving the failed session untouched, when
        no unused session id can be allocated.
        """
        previous = self.session
        if previous.state is not LifecycleState.FAILED:
            raise SessionStateError(
                f"Retry is only allowed from FAILED, not {previous.state}"
            )
        session_id = self._allocate_session_id()
        self.session = Session(
            session_id=session_id,
            policy=self.policy,
            backend_reachable=previous.backend_reachable,
        )
        logger.info(
            "Retrying: session %s supersedes %s",
            self.session.session_id,
            previous.session_id,
        )
        self._audit(
            self.session.session_id,
            "retry",
            to_state=LifecycleState.INITIALIZING,
            detail=f"supersedes {previous.session_id}",
        )
        await self.initialize()
        return self.snapshot()

    def snapshot(self) -> SessionSnapshot:
        """Return the state exposed to the presentation layer."""
        session = self.session
        link = (
            session.request.universal_link
            if session.request and session.state is LifecycleState.AWAITING_PROOF
            else None
        )
        return SessionSnapshot(
            session_id=session.session_id,
            state=session.state,
            failure=session.failure,
            backend_reachable=session.backend_reachable,
            universal_link=link,
            presented=session.presented,
            outcome=session.outcome,
        )

    def _persistence_failed(
        self, session: Session, verified_at: datetime, error: PersistenceError
    ) -> VerificationOutcome:
        logger.error(
            "Proof valid but persistence failed for session %s: %s",
            session.session_id,
            error,
        )
        self._fail(session, FailureReason.PERSISTENCE, error)
        return self._emit(
            session,
            VerificationOutcome(
                session_id=session.session_id,
                verified=True,
                timestamp=verified_at,
                source=self.source,
                persistence_error=error.detail,
            ),
        )

    def _allocate_session_id(self) -> str:
        for _ in range(_MAX_SESSION_ID_ATTEMPTS):
            candidate = self.session_id_factory()
            if candidate not in self.used_session_ids:
                self.used_session_ids.add(candidate)
                return candidate
            logger.warning("Session id %s already used, drawing another", candidate)
        raise InitializationError("Could not allocate an unused session id")

    def _claim_metadata(
        self, session: Session, verified_at: datetime
    ) -> dict[str, object]:
        return {
            "source": self.source,
            "scope": self.app.scope,
            "appName": self.app.app_name,
            "verifiedAt": verified_at.isoformat(),
            "disclosures": session.policy.disclosures(),
        }

    def _transition(
        self,
        session: Session,
        new_state: LifecycleState,
        detail: str | None = None,
    ) -> None:
        if new_state not in ALLOWED_TRANSITIONS[session.state]:
            raise SessionStateError(
                f"Illegal transition {session.state} -> {new_state}"
            )
        previous = session.state
        session.state = new_state
        session.history.append(new_state)
        self._audit(
            session.session_id,
            "transition",
            from_state=previous,
            to_state=new_state,
            detail=detail,
        )

    def _fail(
        self, session: Session, reason: FailureReason, error: VerificationError
    ) -> None:
        session.failure = SessionFailure(reason=reason, detail=error.detail)
        session.request = None
        self._transition(
            session, LifecycleState.FAILED, detail=f"{reason}: {error.detail}"
        )

    def _emit(
        self, session: Session, outcome: VerificationOutcome
    ) -> VerificationOutcome:
        session.outcome = outcome
        self._audit(
            session.session_id,
            "outcome",
            to_state=session.state,
            detail=f"verified={outcome.verified}",
        )
        for listener in self._listeners:
            try:
                listener(outcome)
            except Exception:
                logger.exception("Outcome listener failed")
        return outcome

    def _audit(
        self,
        session_id: str,
        event_type: str,
        from_state: str | None = None,
        to_state: str | None = None,
        detail: str | None = None,
    ) -> None:
        if self.audit_service is None:
            return
        self.audit_service.record_event(
            session_id,
            event_type,
            from_state=from_state,
            to_state=to_state,
            detail=detail,
        )
