from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from remindly.api.deps import get_quota_evaluator
from remindly.core.database import get_db
from remindly.core.security import get_current_user
from remindly.models.user import User
from remindly.schemas.user import ProfileResponse, build_quota_summary
from remindly.services.quota import QuotaEvaluator

router = APIRouter()


@router.get("/user/profile", response_model=ProfileResponse)
def get_user_profile(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    evaluator: QuotaEvaluator = Depends(get_quota_evaluator),
):
    info = evaluator.evaluate(db, current_user.id)
    return ProfileResponse(
        first_name=current_user.first_name,
        last_name=current_user.last_name,
        avatar=current_user.avatar,
        subscription=build_quota_summary(info),
    )
