import enum

from sqlalchemy import Column, Integer, String
from sqlalchemy.sql import func

from remindly.core.database import Base, UTCDateTime


class OrderStatus(int, enum.Enum):
    CREATED = 0
    FINISHED = 1
    # No flow sets these yet.
    CANCELLED = 2
    TIMEOUT = 3


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    internal_order_id = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, index=True, nullable=False)
    status = Column(Integer, default=OrderStatus.CREATED.value)
    external_order_id = Column(String, index=True, nullable=True)
    external_subscription_id = Column(String, index=True, nullable=True)
    redirect_url = Column(String, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now())
