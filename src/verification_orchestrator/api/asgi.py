"""ASGI entrypoint for the verification orchestrator API."""

from verification_orchestrator.api.app import create_app
from verification_orchestrator.containers import build_container

app = create_app(build_container())
