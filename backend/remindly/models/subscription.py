import enum

from sqlalchemy import Column, Integer, String
from sqlalchemy.sql import func

from remindly.core.database import Base, UTCDateTime


class SubscriptionStatus(str, enum.Enum):
    ON_TRIAL = "on_trial"
    ACTIVE = "active"
    PAUSED = "paused"
    PAST_DUE = "past_due"
    UNPAID = "unpaid"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    UNKNOWN = "unknown"

    @classmethod
    def from_provider(cls, raw: object) -> "SubscriptionStatus":
        value = str(raw or "").strip().lower()
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class SubscriptionType(int, enum.Enum):
    FREE = 1
    PRO = 2

    @property
    def label(self) -> str:
        return "Free Plan" if self is SubscriptionType.FREE else "Pro Plan"


class Subscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True, nullable=False)
    external_subscription_id = Column(String, unique=True, index=True, nullable=False)
    product_id = Column(String, nullable=True)
    variant_id = Column(String, nullable=True)
    status = Column(String, index=True, default=SubscriptionStatus.UNKNOWN.value)
    quota = Column(Integer, default=0)
    start_time = Column(UTCDateTime, nullable=False)
    renews_at = Column(UTCDateTime, nullable=False)
    ends_at = Column(UTCDateTime, nullable=True)
    type = Column(Integer, default=SubscriptionType.PRO.value)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())
