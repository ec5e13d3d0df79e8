from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from remindly.core.errors import AppError, ErrorKind
from remindly.core.settings import Settings
from remindly.models.subscription import Subscription
from remindly.services.subscription_store import find_active
from remindly.services.usage_ledger import count_usage_in_window, utcnow


@dataclass(frozen=True)
class QuotaPolicy:
    free_quota: int = 10
    pro_quota: int = 125
    window_days: int = 31

    @classmethod
    def from_settings(cls, settings: Settings) -> "QuotaPolicy":
        return cls(
            free_quota=settings.free_quota,
            pro_quota=settings.pro_quota,
            window_days=settings.quota_window_days,
        )

    @property
    def window(self) -> timedelta:
        return timedelta(days=self.window_days)


@dataclass(frozen=True)
class QuotaInfo:
    quota: int
    used_count: int
    period_start: datetime
    subscription: Subscription | None = None

    @property
    def allowed(self) -> bool:
        return self.used_count < self.quota

    @property
    def remaining(self) -> int:
        return max(0, self.quota - self.used_count)


class QuotaEvaluator:
    """Quota summary and gate for the metered extraction action.

    The gate is check-then-act: ``check`` runs before the action and the
    caller records usage afterwards, so concurrent requests at the boundary
    can overshoot the quota slightly.
    """

    def __init__(self, policy: QuotaPolicy) -> None:
        self.policy = policy

    def period_start(self, subscription: Subscription | None, now: datetime) -> datetime:
        lookback = now - self.policy.window
        if subscription is None:
            return lookback
        return max(subscription.start_time, lookback)

    def evaluate(self, db: Session, user_id: int, now: datetime | None = None) -> QuotaInfo:
        now = now or utcnow()
        subscription = find_active(db, user_id, now)
        if subscription is not None:
            quota = int(subscription.quota or 0)
        else:
            quota = self.policy.free_quota
        start = self.period_start(subscription, now)
        used = count_usage_in_window(db, user_id, start, now)
        return QuotaInfo(quota=quota, used_count=used, period_start=start, subscription=subscription)

    def check(self, db: Session, user_id: int, now: datetime | None = None) -> QuotaInfo:
        info = self.evaluate(db, user_id, now)
        if not info.allowed:
            raise AppError(
                ErrorKind.QUOTA_EXCEEDED,
                "quota_exceeded",
                message=f"You have used all {info.quota} extractions for this period.",
            )
        return info
