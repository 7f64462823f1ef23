"""Supabase repository for session audit events."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from verification_orchestrator.domain.audit import SessionEventRecord
from verification_orchestrator.services.audit import SessionEventRepository

_TABLE = "verification_session_events"


@dataclass
class SupabaseSessionEventRepository(SessionEventRepository):
    """Supabase-backed session event repository."""

    client: Client

    def create_event(self, event: SessionEventRecord) -> None:
        """Create a session event row."""
        self.client.table(_TABLE).insert(
            {
                "session_id": event.session_id,
                "event_type": event.event_type,
                "from_state": event.from_state,
                "to_state": event.to_state,
                "detail": event.detail,
            }
        ).execute()

    def list_recent(self, limit: int) -> list[SessionEventRecord]:
        """Return recent session events, newest first."""
        response = (
            self.client.table(_TABLE)
            .select("session_id, event_type, from_state, to_state, detail, created_at")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        events = []
        for row in response.data or []:
            created = row.get("created_at")
            events.append(
                SessionEventRecord(
                    session_id=str(row["session_id"]),
                    event_type=str(row["event_type"]),
                    from_state=row.get("from_state"),
                    to_state=row.get("to_state"),
                    detail=row.get("detail"),
                    created_at=(
                        datetime.fromisoformat(created)
                        if isinstance(created, str) and created
                        else None
                    ),
                )
            )
        return events
