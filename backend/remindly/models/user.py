from sqlalchemy import Column, Integer, String
from sqlalchemy.sql import func

from remindly.core.database import Base, UTCDateTime


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    name = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    avatar = Column(String, nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now())
