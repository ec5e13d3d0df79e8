from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from remindly.core.errors import storage_error
from remindly.models.usage_event import UsageEvent


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def record_usage(db: Session, user_id: int, payload: str | None, at: datetime | None = None) -> UsageEvent:
    event = UsageEvent(user_id=user_id, payload=payload, occurred_at=at or utcnow())
    try:
        db.add(event)
        db.commit()
        db.refresh(event)
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc, code="record_extract_history_error")
    return event


def count_usage_in_window(db: Session, user_id: int, start: datetime, end: datetime) -> int:
    """Events strictly between ``start`` and ``end``."""
    try:
        total = (
            db.query(func.count(UsageEvent.id))
            .filter(UsageEvent.user_id == user_id)
            .filter(UsageEvent.occurred_at > start)
            .filter(UsageEvent.occurred_at < end)
            .scalar()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)
    return int(total or 0)
