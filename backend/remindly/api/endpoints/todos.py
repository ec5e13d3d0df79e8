import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from remindly.api.deps import get_event_extractor, get_quota_evaluator
from remindly.core.database import get_db
from remindly.core.errors import AppError, ErrorKind
from remindly.core.security import get_current_user
from remindly.models.user import User
from remindly.schemas.todo import ExtractRequest, ExtractResponse, TodoResponse
from remindly.schemas.user import build_quota_summary
from remindly.services.llm import EventExtractor
from remindly.services.lemonsqueezy import parse_iso8601
from remindly.services.quota import QuotaEvaluator
from remindly.services.todos import create_todos, list_upcoming
from remindly.services.usage_ledger import record_usage, utcnow

logger = logging.getLogger(__name__)

MAX_EXTRACT_TEXT_LENGTH = 4000

router = APIRouter()


@router.get("/todos/upcoming", response_model=List[TodoResponse])
def get_upcoming_events(
    current_time: str | None = Query(None),
    page: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not current_time:
        raise AppError(ErrorKind.VALIDATION, "missing_current_time")
    try:
        moment: datetime | None = parse_iso8601(current_time)
    except ValueError:
        moment = None
    if moment is None:
        raise AppError(ErrorKind.VALIDATION, "invalid_time")
    return list_upcoming(db, current_user.id, moment, page)


@router.post("/todos/extract", response_model=ExtractResponse)
async def extract_todos(
    body: ExtractRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    evaluator: QuotaEvaluator = Depends(get_quota_evaluator),
    extractor: EventExtractor = Depends(get_event_extractor),
):
    text = (body.text or "").strip()
    if not text:
        raise AppError(ErrorKind.VALIDATION, "missing_text")
    if len(text) > MAX_EXTRACT_TEXT_LENGTH:
        raise AppError(
            ErrorKind.VALIDATION,
            "text_too_long",
            f"Text must be at most {MAX_EXTRACT_TEXT_LENGTH} characters",
        )

    evaluator.check(db, current_user.id)

    now = utcnow()
    events = await extractor.extract(text, now)
    todos = create_todos(db, current_user.id, events)
    # Usage counts only once the extraction has actually run.
    record_usage(db, current_user.id, text)
    logger.info("todos.extract.done user_id=%s events=%s", current_user.id, len(todos))

    info = evaluator.evaluate(db, current_user.id)
    return ExtractResponse(
        todos=[TodoResponse.model_validate(t) for t in todos],
        quota=build_quota_summary(info),
    )
