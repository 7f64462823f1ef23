"""Session audit domain models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SessionEventRecord:
    """A recorded session lifecycle event."""

    session_id: str
    event_type: str
    from_state: str | None
    to_state: str | None
    detail: str | None
    created_at: datetime | None = None
