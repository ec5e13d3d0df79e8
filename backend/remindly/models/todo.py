import enum

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.sql import func

from remindly.core.database import Base, UTCDateTime


class TodoStatus(int, enum.Enum):
    CREATED = 0
    DONE = 1
    DELETED = 2


class Todo(Base):
    __tablename__ = "todos"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    scheduled_time = Column(UTCDateTime, index=True, nullable=True)
    remind_time = Column(UTCDateTime, nullable=True)
    status = Column(Integer, default=TodoStatus.CREATED.value)
    created_at = Column(UTCDateTime, server_default=func.now())
