from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from remindly.core.errors import storage_error
from remindly.models.subscription import Subscription, SubscriptionStatus, SubscriptionType


@dataclass(frozen=True)
class SubscriptionFields:
    status: SubscriptionStatus
    start_time: datetime
    renews_at: datetime
    ends_at: datetime | None = None
    product_id: str | None = None
    variant_id: str | None = None
    quota: int = 0
    type: SubscriptionType = SubscriptionType.PRO


def find_active(db: Session, user_id: int, now: datetime | None = None) -> Subscription | None:
    """The user's subscription whose provider status is ``active``.

    Validity comes from the status synced from the billing provider only;
    ``start_time`` and ``ends_at`` are informational here. ``now`` is
    accepted so callers can evaluate at a fixed instant.
    """
    try:
        return (
            db.query(Subscription)
            .filter(Subscription.user_id == user_id)
            .filter(Subscription.status == SubscriptionStatus.ACTIVE.value)
            .order_by(Subscription.start_time.desc(), Subscription.id.desc())
            .first()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)


def find_by_external_id(db: Session, external_subscription_id: str) -> Subscription | None:
    try:
        return (
            db.query(Subscription)
            .filter(Subscription.external_subscription_id == external_subscription_id)
            .first()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)


def list_syncable(db: Session) -> list[Subscription]:
    try:
        return (
            db.query(Subscription)
            .filter(Subscription.status != SubscriptionStatus.EXPIRED.value)
            .order_by(Subscription.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)


def _apply_update(sub: Subscription, external_subscription_id: str, fields: SubscriptionFields) -> None:
    sub.start_time = fields.start_time
    sub.renews_at = fields.renews_at
    sub.ends_at = fields.ends_at
    sub.status = SubscriptionStatus(fields.status).value
    sub.external_subscription_id = external_subscription_id


def _insert(db: Session, user_id: int, external_subscription_id: str, fields: SubscriptionFields) -> Subscription | None:
    sub = Subscription(
        user_id=user_id,
        external_subscription_id=external_subscription_id,
        product_id=fields.product_id,
        variant_id=fields.variant_id,
        status=SubscriptionStatus(fields.status).value,
        quota=int(fields.quota),
        start_time=fields.start_time,
        renews_at=fields.renews_at,
        ends_at=fields.ends_at,
        type=SubscriptionType(fields.type).value,
    )
    db.add(sub)
    try:
        db.commit()
    except IntegrityError:
        # Another request inserted the same external id first.
        db.rollback()
        return None
    db.refresh(sub)
    return sub


def upsert_by_external_id(
    db: Session,
    external_subscription_id: str,
    fields: SubscriptionFields,
    *,
    user_id: int,
) -> Subscription:
    """Insert a row for ``external_subscription_id`` or update it in place.

    On insert every field is taken from ``fields``. On update only the
    billing window, the status and the external id are overwritten; quota,
    type, product and variant keep their stored values. Concurrent callers
    converge on a single row and the last writer wins.
    """
    try:
        sub = find_by_external_id(db, external_subscription_id)
        if sub is None:
            inserted = _insert(db, user_id, external_subscription_id, fields)
            if inserted is not None:
                return inserted
            sub = find_by_external_id(db, external_subscription_id)
            if sub is None:
                raise storage_error(RuntimeError("subscription vanished after conflicting insert"))
        _apply_update(sub, external_subscription_id, fields)
        db.commit()
        db.refresh(sub)
        return sub
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)
