"""
Live feed of new audit entries.

The history view appends entries as they are committed instead of
polling. Entries are collected when their INSERT runs and handed
to subscribers only after the surrounding transaction commits;
a rollback discards them. Subscribers receive AuditLogResponse
snapshots, which are safe to use outside the session.
"""

from typing import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session, object_session

from cryptovibe.logging_config import get_logger
from cryptovibe.models.audit_log import AuditLog
from cryptovibe.schemas.audit import AuditLogResponse

logger = get_logger(__name__)

PENDING_KEY = "pending_audit_logs"

Subscriber = Callable[[AuditLogResponse], None]


class AuditFeed:

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._installed = False

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, entries: list[AuditLogResponse]) -> None:
        for entry in entries:
            for callback in list(self._subscribers):
                try:
                    callback(entry)
                except Exception as e:
                    # One broken subscriber must not starve the others
                    logger.error(
                        "audit_feed_subscriber_failed",
                        audit_log_id=str(entry.id),
                        error=str(e),
                    )

    def install(self, session_class: type[Session] = Session) -> None:
        """Hook the feed into SQLAlchemy's insert and commit events."""
        if self._installed:
            return
        event.listen(AuditLog, "after_insert", self._collect)
        event.listen(session_class, "after_commit", self._flush_pending)
        event.listen(session_class, "after_rollback", self._discard_pending)
        self._installed = True

    # --- Event handlers ---

    def _collect(self, mapper, connection, target: AuditLog) -> None:
        session = object_session(target)
        if session is None:
            return
        session.info.setdefault(PENDING_KEY, []).append(
            AuditLogResponse.model_validate(target)
        )

    def _flush_pending(self, session: Session) -> None:
        # Releasing a SAVEPOINT also fires after_commit; wait for the real one
        if session.in_nested_transaction():
            return
        entries = session.info.pop(PENDING_KEY, [])
        if entries:
            self.publish(entries)

    def _discard_pending(self, session: Session) -> None:
        if session.in_nested_transaction():
            return
        session.info.pop(PENDING_KEY, None)


audit_feed = AuditFeed()
