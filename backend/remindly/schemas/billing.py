from typing import Optional

from pydantic import BaseModel


class CreateOrderRequest(BaseModel):
    redirect_url: Optional[str] = None


class CreateOrderResponse(BaseModel):
    checkout_url: str
    order_status: int


class WebhookAck(BaseModel):
    received: bool = True
    outcome: str
