"""Tests for the session HTTP API."""

from fastapi.testclient import TestClient

from verification_orchestrator.api.app import create_app
from verification_orchestrator.containers import AppContainer
from tests.conftest import FakeVerificationBackend


def test_health_endpoint(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_lifespan_starts_session(
    container: AppContainer, backend: FakeVerificationBackend
) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/session")

    assert response.status_code == 200
    data = response.json()
    assert data["session_id"] == "S1"
    assert data["state"] == "AWAITING_PROOF"
    assert data["backend_reachable"] is True
    assert data["universal_link"] == "https://prover.test/open?session=S1"
    assert data["failure"] is None
    assert data["outcome"] is None
    assert backend.health_checks == 1


def test_present_then_successful_callback(
    container: AppContainer, backend: FakeVerificationBackend
) -> None:
    with TestClient(create_app(container)) as client:
        presented = client.post("/session/present")
        callback = client.post(
            "/session/callback", json={"session_id": "S1", "status": "success"}
        )
        session = client.get("/session").json()
        outcome = client.get("/session/outcome")

    assert presented.status_code == 200
    assert presented.json()["session_id"] == "S1"
    assert callback.status_code == 200
    body = callback.json()
    assert body["status"] == "accepted"
    assert body["outcome"]["verified"] is True
    assert body["outcome"]["durable"] is True
    assert session["state"] == "SUCCEEDED"
    assert session["presented"] is True
    assert session["universal_link"] is None
    assert outcome.status_code == 200
    assert outcome.json()["persistence_error"] is None
    assert len(backend.persist_calls) == 1


def test_persistence_failure_then_retry(
    container: AppContainer, backend: FakeVerificationBackend
) -> None:
    backend.persist_error = "Backend responded with status 503"
    with TestClient(create_app(container)) as client:
        callback = client.post(
            "/session/callback", json={"session_id": "S1", "status": "success"}
        )
        failed = client.get("/session").json()
        retried = client.post("/session/retry")
        stale = client.post(
            "/session/callback", json={"session_id": "S1", "status": "success"}
        )

    outcome = callback.json()["outcome"]
    assert outcome["verified"] is True
    assert outcome["persistence_error"] == "Backend responded with status 503"
    assert failed["state"] == "FAILED"
    assert failed["failure"] == {
        "reason": "persistence",
        "detail": "Backend responded with status 503",
    }
    assert retried.status_code == 200
    assert retried.json()["session_id"] == "S2"
    assert retried.json()["state"] == "AWAITING_PROOF"
    assert stale.json() == {"status": "ignored", "outcome": None}
    assert len(backend.persist_calls) == 1


def test_proof_error_callback(
    container: AppContainer, backend: FakeVerificationBackend
) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/session/callback",
            json={"session_id": "S1", "status": "error", "error": "Passport expired"},
        )
        session = client.get("/session").json()

    assert response.json()["outcome"]["verified"] is False
    assert response.json()["outcome"]["proof_error"] == "Passport expired"
    assert session["failure"]["reason"] == "proof"
    assert backend.persist_calls == []


def test_retry_conflicts_when_not_failed(container: AppContainer) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post("/session/retry")

    assert response.status_code == 409


def test_present_conflicts_before_initialization(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post("/session/present")

    assert response.status_code == 409


def test_outcome_missing_returns_404(container: AppContainer) -> None:
    with TestClient(create_app(container)) as client:
        response = client.get("/session/outcome")

    assert response.status_code == 404


def test_callback_rejects_unknown_status(container: AppContainer) -> None:
    with TestClient(create_app(container)) as client:
        response = client.post(
            "/session/callback", json={"session_id": "S1", "status": "maybe"}
        )

    assert response.status_code == 422


def test_retry_unavailable_when_no_fresh_session_id(container: AppContainer) -> None:
    with TestClient(create_app(container)) as client:
        container.orchestrator.session_id_factory = lambda: "S1"
        client.post("/session/callback", json={"session_id": "S1", "status": "error"})
        response = client.post("/session/retry")
        session = client.get("/session").json()

    assert response.status_code == 503
    assert response.json()["detail"] == "Could not allocate an unused session id"
    assert session["session_id"] == "S1"
    assert session["failure"]["reason"] == "proof"
