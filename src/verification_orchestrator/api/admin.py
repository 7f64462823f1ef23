"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

if TYPE_CHECKING:
    from verification_orchestrator.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/session-events", dependencies=[Depends(require_admin)])
async def list_session_events(
    request: Request, limit: int = Query(50, ge=1, le=500)
) -> dict[str, object]:
    """Return recent session audit events."""
    container: AppContainer = request.app.state.container
    if container.audit_service is None:
        return {"events": [], "auditing": False}
    return {"events": container.audit_service.list_recent(limit), "auditing": True}


@router.get("/used-session-ids", dependencies=[Depends(require_admin)])
async def list_used_session_ids(request: Request) -> dict[str, object]:
    """Return every session id allocated by the running orchestrator."""
    container: AppContainer = request.app.state.container
    orchestrator = container.orchestrator
    return {
        "active": orchestrator.session.session_id,
        "used": sorted(orchestrator.used_session_ids),
    }
