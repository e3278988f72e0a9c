import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DependencyError
from app.models.notification import TimelineNotification

logger = logging.getLogger(__name__)

WARNING = "WARNING"
DEMOTION = "DEMOTION"


class Notifier(Protocol):
    def send_notification(self, student_id: int, kind: str, payload: dict[str, Any]) -> None:
        ...


class DatabaseNotifier:
    """
    Delivers timeline notifications as in-app rows.

    The row joins the caller's unit of work: it is committed or rolled back
    together with the ledger entry that records the side effect.
    """

    def __init__(self, db: Session):
        self.db = db

    def send_notification(self, student_id: int, kind: str, payload: dict[str, Any]) -> None:
        if kind not in (WARNING, DEMOTION):
            raise DependencyError(f"Unsupported notification kind: {kind}")

        try:
            self.db.add(
                TimelineNotification(
                    student_id=student_id,
                    course_id=payload["course_id"],
                    module_id=payload.get("module_id"),
                    kind=kind,
                    message=payload["message"],
                    warning_period=payload.get("warning_period"),
                    sent_at=payload.get("sent_at") or datetime.now(timezone.utc),
                )
            )
            self.db.flush()
        except (KeyError, SQLAlchemyError) as exc:
            raise DependencyError(
                f"Could not deliver {kind.lower()} notification",
                details={"student_id": student_id, "reason": str(exc)},
            ) from exc

        logger.debug("queued %s notification for student %s", kind, student_id)
