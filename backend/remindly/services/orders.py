from __future__ import annotations

import logging
from urllib.parse import urlencode
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from remindly.core.errors import AppError, ErrorKind, storage_error
from remindly.models.order import Order, OrderStatus
from remindly.models.user import User
from remindly.services.lemonsqueezy import LemonSqueezyClient

logger = logging.getLogger(__name__)


def get_order_by_internal_id(db: Session, internal_order_id: str) -> Order | None:
    try:
        return db.query(Order).filter(Order.internal_order_id == internal_order_id).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)


def mark_order_finished(db: Session, order: Order) -> bool:
    """Move a Created order to Finished. Returns False when nothing changed."""
    if order.status != OrderStatus.CREATED.value:
        return False
    order.status = OrderStatus.FINISHED.value
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)
    logger.info("orders.finished internal_order_id=%s user_id=%s", order.internal_order_id, order.user_id)
    return True


def remember_subscription_id(db: Session, order: Order, external_subscription_id: str) -> None:
    if order.external_subscription_id == external_subscription_id:
        return
    order.external_subscription_id = external_subscription_id
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)


def create_order(
    db: Session,
    client: LemonSqueezyClient,
    *,
    user: User,
    redirect_url: str,
    variant_id: str | None,
    app_endpoint: str,
) -> tuple[Order, str]:
    """Open a checkout for ``user`` and store the matching Created order.

    The checkout carries ``internal_order_id`` in its custom data so the
    payment webhook can find the order again. After payment the provider
    sends the browser to our checkout callback, which forwards it to
    ``redirect_url``.
    """
    redirect_url = (redirect_url or "").strip()
    if not redirect_url:
        raise AppError(ErrorKind.VALIDATION, "missing_redirect_url")
    if not variant_id:
        raise AppError(ErrorKind.UPSTREAM, "lemonsqueezy_not_configured", detail="LEMONSQUEEZY_VARIANT_PRO is not configured")

    internal_order_id = str(uuid4())
    callback = f"{app_endpoint.rstrip('/')}/api/orders/checkout_callback?" + urlencode(
        {"internal_order_id": internal_order_id}
    )
    checkout = client.create_checkout(
        variant_id=variant_id,
        redirect_url=callback,
        custom_data={"internal_order_id": internal_order_id},
        email=user.email,
    )

    order = Order(
        internal_order_id=internal_order_id,
        user_id=user.id,
        status=OrderStatus.CREATED.value,
        external_order_id=checkout.checkout_id,
        redirect_url=f"{redirect_url.rstrip('/')}/{internal_order_id}",
    )
    try:
        db.add(order)
        db.commit()
        db.refresh(order)
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)
    logger.info("orders.created internal_order_id=%s user_id=%s", internal_order_id, user.id)
    return order, checkout.url
