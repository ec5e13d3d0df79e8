from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from remindly.core.errors import storage_error
from remindly.models.todo import Todo, TodoStatus

UPCOMING_PAGE_SIZE = 50


def create_todos(db: Session, user_id: int, events: list[dict[str, Any]]) -> list[Todo]:
    todos = [
        Todo(
            user_id=user_id,
            title=e["title"],
            description=e.get("description"),
            scheduled_time=e.get("scheduled_time"),
            remind_time=e.get("remind_time"),
            status=TodoStatus.CREATED.value,
        )
        for e in events
    ]
    if not todos:
        return []
    try:
        db.add_all(todos)
        db.commit()
        for t in todos:
            db.refresh(t)
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)
    return todos


def start_of_day(moment: datetime) -> datetime:
    moment = moment.astimezone(timezone.utc)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def list_upcoming(db: Session, user_id: int, current_time: datetime, page: int = 0) -> list[Todo]:
    since = start_of_day(current_time)
    page = max(0, int(page or 0))
    try:
        return (
            db.query(Todo)
            .filter(Todo.user_id == user_id)
            .filter(Todo.status != TodoStatus.DELETED.value)
            .filter(Todo.scheduled_time >= since)
            .order_by(Todo.scheduled_time.asc(), Todo.id.asc())
            .offset(page * UPCOMING_PAGE_SIZE)
            .limit(UPCOMING_PAGE_SIZE)
            .all()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)
