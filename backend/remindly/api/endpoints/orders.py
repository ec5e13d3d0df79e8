from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from remindly.api.deps import get_billing_client, get_settings
from remindly.core.database import get_db
from remindly.core.errors import AppError, ErrorKind
from remindly.core.security import get_current_user
from remindly.core.settings import Settings
from remindly.models.user import User
from remindly.schemas.billing import CreateOrderRequest, CreateOrderResponse
from remindly.services.lemonsqueezy import LemonSqueezyClient
from remindly.services.orders import create_order, get_order_by_internal_id

router = APIRouter()


@router.post("/orders", response_model=CreateOrderResponse)
def post_order(
    body: CreateOrderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    client: LemonSqueezyClient = Depends(get_billing_client),
    settings: Settings = Depends(get_settings),
):
    order, checkout_url = create_order(
        db,
        client,
        user=current_user,
        redirect_url=body.redirect_url or "",
        variant_id=settings.lemonsqueezy_variant_pro,
        app_endpoint=settings.app_endpoint,
    )
    return CreateOrderResponse(checkout_url=checkout_url, order_status=order.status)


@router.get("/orders/checkout_callback")
def checkout_callback(
    internal_order_id: str | None = Query(None),
    db: Session = Depends(get_db),
):
    if not internal_order_id:
        raise AppError(ErrorKind.VALIDATION, "missing_internal_order_id")
    order = get_order_by_internal_id(db, internal_order_id)
    if order is None or not order.redirect_url:
        raise AppError(ErrorKind.NOT_FOUND, "order_not_found")
    return RedirectResponse(url=order.redirect_url, status_code=307)
