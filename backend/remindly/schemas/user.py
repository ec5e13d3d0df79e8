from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from remindly.models.subscription import SubscriptionType


class SubscriptionOut(BaseModel):
    status: str
    type: int
    plan: str
    quota: int
    start_time: datetime
    renews_at: datetime
    ends_at: Optional[datetime] = None


class QuotaSummary(BaseModel):
    quota: int
    used_count: int
    period_start: datetime
    subscription: Optional[SubscriptionOut] = None


class ProfileResponse(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    subscription: QuotaSummary


def build_quota_summary(info) -> QuotaSummary:
    sub = info.subscription
    sub_out = None
    if sub is not None:
        sub_out = SubscriptionOut(
            status=sub.status,
            type=sub.type,
            plan=SubscriptionType(sub.type).label,
            quota=sub.quota,
            start_time=sub.start_time,
            renews_at=sub.renews_at,
            ends_at=sub.ends_at,
        )
    return QuotaSummary(
        quota=info.quota,
        used_count=info.used_count,
        period_start=info.period_start,
        subscription=sub_out,
    )
