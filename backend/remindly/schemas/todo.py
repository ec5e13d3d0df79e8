from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from remindly.schemas.user import QuotaSummary


class ExtractRequest(BaseModel):
    text: Optional[str] = None


class TodoResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    remind_time: Optional[datetime] = None
    status: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExtractResponse(BaseModel):
    todos: List[TodoResponse]
    quota: QuotaSummary
