"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from verification_orchestrator.api.admin import router as admin_router
from verification_orchestrator.api.models import (
    CallbackResponse,
    OutcomeModel,
    PresentResponse,
    ProofCallback,
    SessionModel,
)
from verification_orchestrator.app_logging import configure_logging
from verification_orchestrator.containers import AppContainer
from verification_orchestrator.domain.errors import (
    InitializationError,
    SessionStateError,
)
from verification_orchestrator.services.orchestrator import VerificationOrchestrator


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        snapshot = await app.state.container.orchestrator.start()
        logger.info(
            "Session %s started in state %s", snapshot.session_id, snapshot.state
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/session")
    async def get_session(request: Request) -> SessionModel:
        """Return the active session state."""
        orchestrator = _orchestrator(request)
        return SessionModel.from_snapshot(orchestrator.snapshot())

    @app.post("/session/present")
    async def present_session(request: Request) -> PresentResponse:
        """Open the active request with the prover."""
        orchestrator = _orchestrator(request)
        try:
            presentable = orchestrator.present()
        except SessionStateError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=exc.detail
            ) from exc
        return PresentResponse(
            session_id=presentable.session_id,
            universal_link=presentable.universal_link,
        )

    @app.post("/session/callback")
    async def proof_callback(
        payload: ProofCallback, request: Request
    ) -> CallbackResponse:
        """Consume a prover result for the active session."""
        orchestrator = _orchestrator(request)
        outcome = await orchestrator.handle_proof_result(
            payload.session_id, payload.to_event()
        )
        if outcome is None:
            return CallbackResponse(status="ignored")
        return CallbackResponse(
            status="accepted", outcome=OutcomeModel.from_outcome(outcome)
        )

    @app.post("/session/retry")
    async def retry_session(request: Request) -> SessionModel:
        """Start a new session after a failure."""
        orchestrator = _orchestrator(request)
        try:
            snapshot = await orchestrator.retry()
        except SessionStateError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=exc.detail
            ) from exc
        except InitializationError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.detail
            ) from exc
        return SessionModel.from_snapshot(snapshot)

    @app.get("/session/outcome")
    async def get_outcome(request: Request) -> OutcomeModel:
        """Return the outcome of the active session, if any."""
        outcome = _orchestrator(request).session.outcome
        if outcome is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return OutcomeModel.from_outcome(outcome)

    return app


def _orchestrator(request: Request) -> VerificationOrchestrator:
    container: AppContainer = request.app.state.container
    return container.orchestrator
