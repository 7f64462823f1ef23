"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from verification_orchestrator.adapters.backend_client import HttpxVerificationBackend
from verification_orchestrator.adapters.self_prover import SelfProverSdk
from verification_orchestrator.adapters.supabase_session_event_repository import (
    SupabaseSessionEventRepository,
)
from verification_orchestrator.config import (
    Settings,
    build_app_identity,
    build_policy,
)
from verification_orchestrator.services.audit import AuditService
from verification_orchestrator.services.orchestrator import VerificationOrchestrator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    orchestrator: VerificationOrchestrator
    audit_service: AuditService | None
    close_resources: Callable[[], Awaitable[None]]


def build_audit_service(settings: Settings) -> AuditService | None:
    """Return a Supabase-backed audit service when Supabase is configured."""
    if not settings.supabase_url or not settings.supabase_service_key:
        return None
    client = create_client(settings.supabase_url, settings.supabase_service_key)
    return AuditService(SupabaseSessionEventRepository(client))


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    backend = HttpxVerificationBackend.create(
        base_url=resolved_settings.backend_url,
        health_timeout=resolved_settings.health_timeout_seconds,
        persist_timeout=resolved_settings.persist_timeout_seconds,
    )
    audit_service = build_audit_service(resolved_settings)
    orchestrator = VerificationOrchestrator(
        app=build_app_identity(resolved_settings),
        policy=build_policy(resolved_settings),
        prover=SelfProverSdk(redirect_url=resolved_settings.self_redirect_url),
        backend=backend,
        source=resolved_settings.prover_source,
        audit_service=audit_service,
    )

    async def close_resources() -> None:
        await backend.close()

    return AppContainer(
        settings=resolved_settings,
        orchestrator=orchestrator,
        audit_service=audit_service,
        close_resources=close_resources,
    )
