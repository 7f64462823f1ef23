"""Shared test fixtures."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import pytest

from verification_orchestrator.config import Settings
from verification_orchestrator.containers import AppContainer
from verification_orchestrator.domain.audit import SessionEventRecord
from verification_orchestrator.domain.errors import (
    InitializationError,
    PersistenceError,
)
from verification_orchestrator.domain.policy import AppIdentity, DisclosurePolicy
from verification_orchestrator.domain.sessions import (
    PresentableRequest,
    SessionDescriptor,
)
from verification_orchestrator.services.audit import (
    AuditService,
    SessionEventRepository,
)
from verification_orchestrator.services.orchestrator import (
    ProverSdk,
    VerificationBackend,
    VerificationOrchestrator,
)


@dataclass
class FakeProverSdk(ProverSdk):
    """Fake prover SDK that records descriptors and can fail on demand."""

    failures: list[str] = field(default_factory=list)
    descriptors: list[SessionDescriptor] = field(default_factory=list)

    async def build_request(self, descriptor: SessionDescriptor) -> PresentableRequest:
        self.descriptors.append(descriptor)
        if self.failures:
            raise InitializationError(self.failures.pop(0))
        return PresentableRequest(
            session_id=descriptor.session_id,
            payload={
                "sessionId": descriptor.session_id,
                "disclosures": descriptor.policy.disclosures(),
            },
            universal_link=f"https://prover.test/open?session={descriptor.session_id}",
        )


@dataclass
class FakeVerificationBackend(VerificationBackend):
    """Fake backend recording health checks and persistence calls."""

    reachable: bool = True
    persist_error: str | None = None
    persist_exception: BaseException | None = None
    health_exception: Exception | None = None
    health_checks: int = 0
    persist_calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    async def check_health(self) -> bool:
        self.health_checks += 1
        if self.health_exception is not None:
            raise self.health_exception
        return self.reachable

    async def persist(
        self, session_correlation_id: str, claim_metadata: dict[str, object]
    ) -> None:
        self.persist_calls.append((session_correlation_id, claim_metadata))
        if self.persist_exception is not None:
            raise self.persist_exception
        if self.persist_error is not None:
            raise PersistenceError(self.persist_error)


@dataclass
class InMemorySessionEventRepository(SessionEventRepository):
    """In-memory session event repository for tests."""

    events: list[SessionEventRecord] = field(default_factory=list)

    def create_event(self, event: SessionEventRecord) -> None:
        self.events.append(event)

    def list_recent(self, limit: int) -> list[SessionEventRecord]:
        return list(reversed(self.events))[:limit]


def sequence_ids(ids: Iterable[str]) -> Callable[[], str]:
    """Return a session id factory yielding the given ids in order."""
    iterator = iter(ids)
    return lambda: next(iterator)


def make_app_identity() -> AppIdentity:
    return AppIdentity(
        app_name="Test Verifier",
        scope="test-scope",
        endpoint="https://backend.test/api/verify",
        logo_url="https://backend.test/logo.png",
    )


def make_orchestrator(
    prover: FakeProverSdk | None = None,
    backend: FakeVerificationBackend | None = None,
    ids: Iterable[str] | None = None,
    policy: DisclosurePolicy | None = None,
    audit_service: AuditService | None = None,
) -> VerificationOrchestrator:
    kwargs: dict[str, object] = {}
    if ids is not None:
        kwargs["session_id_factory"] = sequence_ids(ids)
    return VerificationOrchestrator(
        app=make_app_identity(),
        policy=policy or DisclosurePolicy(minimum_age=18),
        prover=prover or FakeProverSdk(),
        backend=backend or FakeVerificationBackend(),
        audit_service=audit_service,
        **kwargs,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        backend_url="https://backend.test",
        admin_token="admin-token",
    )


@pytest.fixture
def prover() -> FakeProverSdk:
    return FakeProverSdk()


@pytest.fixture
def backend() -> FakeVerificationBackend:
    return FakeVerificationBackend()


@pytest.fixture
def event_repository() -> InMemorySessionEventRepository:
    return InMemorySessionEventRepository()


@pytest.fixture
def container(
    settings: Settings,
    prover: FakeProverSdk,
    backend: FakeVerificationBackend,
    event_repository: InMemorySessionEventRepository,
) -> AppContainer:
    audit_service = AuditService(event_repository)
    orchestrator = make_orchestrator(
        prover=prover,
        backend=backend,
        ids=(f"S{index}" for index in range(1, 100)),
        audit_service=audit_service,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        orchestrator=orchestrator,
        audit_service=audit_service,
        close_resources=close_resources,
    )
