"""
Per-phone-number conversation state, persisted in the conversations table.

One row per (tenant, phone). A row idle for longer than the inactivity
window is discarded on the next load, so the customer starts again at
WELCOME instead of resuming a half-finished booking.

The store does no locking of its own; the engine serializes messages for
the same phone number before calling it.
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from salonbot.config import settings
from salonbot.errors import PersistenceFailure, SessionExpired
from salonbot.logging_context import get_session_logger
from salonbot.schemas.conversation_schema import (
    ConversationSession,
    MessageDirection,
    TranscriptMessage,
)
from salonbot.storage.models import ConversationRow, MessageRow

logger = get_session_logger(__name__)


class SessionStore:
    """Loads, saves and clears booking sessions."""

    def __init__(
        self,
        session_factory: sessionmaker,
        inactivity_timeout: Optional[timedelta] = None,
    ) -> None:
        self._session_factory = session_factory
        self._timeout = inactivity_timeout or timedelta(
            hours=settings.session.inactivity_timeout_hours
        )

    @property
    def inactivity_timeout(self) -> timedelta:
        return self._timeout

    def _check_fresh(self, row: ConversationRow, now: datetime) -> None:
        idle = now - row.updated_at
        if idle > self._timeout:
            raise SessionExpired(
                f"Session {row.id} idle for {idle}, limit {self._timeout}"
            )

    def load(
        self, tenant_id: str, phone_number: str, now: Optional[datetime] = None
    ) -> ConversationSession:
        """Return the customer's session, or a fresh WELCOME session if absent or expired."""
        now = now or datetime.now()
        stmt = select(ConversationRow).where(
            ConversationRow.tenant_id == tenant_id,
            ConversationRow.phone_number == phone_number,
        )
        try:
            with self._session_factory.begin() as db:
                row = db.scalars(stmt).first()
                if row is not None:
                    try:
                        self._check_fresh(row, now)
                        return row.to_schema()
                    except SessionExpired as exc:
                        logger.info("Resetting stale session: %s", exc)
                        db.delete(row)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load session for {phone_number}") from exc

        return ConversationSession(
            tenant_id=tenant_id,
            phone_number=phone_number,
            created_at=now,
            last_updated_at=now,
        )

    def save(self, session: ConversationSession) -> None:
        """Insert or update the row for the session's (tenant, phone)."""
        stmt = select(ConversationRow).where(
            ConversationRow.tenant_id == session.tenant_id,
            ConversationRow.phone_number == session.phone_number,
        )
        try:
            with self._session_factory.begin() as db:
                row = db.scalars(stmt).first()
                if row is None:
                    row = ConversationRow(
                        id=session.session_id,
                        tenant_id=session.tenant_id,
                        phone_number=session.phone_number,
                    )
                    db.add(row)
                row.apply(session)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not save session {session.session_id}") from exc
        logger.debug("Saved session %s at step %s", session.session_id, session.current_step.value)

    def clear(self, tenant_id: str, phone_number: str) -> None:
        """Remove the customer's session; the next load starts at WELCOME."""
        stmt = delete(ConversationRow).where(
            ConversationRow.tenant_id == tenant_id,
            ConversationRow.phone_number == phone_number,
        )
        try:
            with self._session_factory.begin() as db:
                db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not clear session for {phone_number}") from exc

    def log_message(
        self,
        session: ConversationSession,
        direction: MessageDirection,
        content: str,
        now: Optional[datetime] = None,
    ) -> None:
        """Append one chat line to the customer's transcript."""
        row = MessageRow(
            tenant_id=session.tenant_id,
            phone_number=session.phone_number,
            conversation_ref=session.session_id,
            direction=direction.value,
            content=content,
            created_at=now or datetime.now(),
        )
        try:
            with self._session_factory.begin() as db:
                db.add(row)
        except SQLAlchemyError as exc:
            raise PersistenceFailure("Could not log message") from exc

    def get_transcript(
        self, tenant_id: str, phone_number: str, limit: int = 50
    ) -> list[TranscriptMessage]:
        """Most recent chat lines for a customer, oldest first."""
        stmt = (
            select(MessageRow)
            .where(MessageRow.tenant_id == tenant_id, MessageRow.phone_number == phone_number)
            .order_by(MessageRow.id.desc())
            .limit(limit)
        )
        try:
            with self._session_factory() as db:
                rows = list(db.scalars(stmt))
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"Could not load transcript for {phone_number}") from exc
        return [TranscriptMessage.model_validate(row) for row in reversed(rows)]
