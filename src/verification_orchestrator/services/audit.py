"""Session audit trail service."""

import logging
from dataclasses import dataclass
from typing import Protocol

from verification_orchestrator.domain.audit import SessionEventRecord

logger = logging.getLogger(__name__)


class SessionEventRepository(Protocol):
    """Persistence interface for session events."""

    def create_event(self, event: SessionEventRecord) -> None:
        """Create a session event row."""

    def list_recent(self, limit: int) -> list[SessionEventRecord]:
        """Return the most recent session events, newest first."""


@dataclass
class AuditService:
    """Service for recording session lifecycle events."""

    repository: SessionEventRepository

    def record_event(
        self,
        session_id: str,
        event_type: str,
        from_state: str | None = None,
        to_state: str | None = None,
        detail: str | None = None,
    ) -> None:
        """Persist a session event; storage failures are logged only."""
        event = SessionEventRecord(
            session_id=session_id,
            event_type=event_type,
            from_state=from_state,
            to_state=to_state,
            detail=detail,
        )
        try:
            self.repository.create_event(event)
        except Exception:
            logger.exception(
                "Failed to record %s event for session %s", event_type, session_id
            )

    def list_recent(self, limit: int = 50) -> list[dict[str, object]]:
        """Return recent events as plain dictionaries."""
        return [
            {
                "session_id": event.session_id,
                "event_type": event.event_type,
                "from_state": event.from_state,
                "to_state": event.to_state,
                "detail": event.detail,
                "created_at": (
                    event.created_at.isoformat() if event.created_at else None
                ),
            }
            for event in self.repository.list_recent(limit)
        ]
