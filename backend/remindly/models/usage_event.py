from sqlalchemy import Column, Index, Integer, Text
from sqlalchemy.sql import func

from remindly.core.database import Base, UTCDateTime


class UsageEvent(Base):
    """One metered natural-language extraction. Rows are never updated."""

    __tablename__ = "extract_history"
    __table_args__ = (Index("ix_extract_history_user_id_extract_time", "user_id", "extract_time"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False)
    payload = Column("prompt", Text, nullable=True)
    occurred_at = Column("extract_time", UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, server_default=func.now())
