"""Reconciles local subscription rows with Lemon Squeezy.

Two triggers feed it: the ``subscription_payment_success`` webhook, and a
periodic poll (``sync_all``) run from ``scripts/sync_subscriptions.py``.
Both end in ``sync_subscription``, which always fetches the remote
resource before writing, so the last write reflects the provider's view at
fetch time.

Webhook handling never fails for data-linkage problems (missing order id,
unknown order or user) or for a failed sync: those are logged and
acknowledged, since a redelivery would not fix them. Storage errors while
resolving the order propagate so the provider retries.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from remindly.core.errors import AppError, ErrorKind, storage_error
from remindly.models.subscription import Subscription, SubscriptionStatus, SubscriptionType
from remindly.models.user import User
from remindly.services.lemonsqueezy import LemonSqueezyClient, parse_iso8601
from remindly.services.orders import get_order_by_internal_id, mark_order_finished, remember_subscription_id
from remindly.services.quota import QuotaPolicy
from remindly.services.subscription_store import SubscriptionFields, list_syncable, upsert_by_external_id

logger = logging.getLogger(__name__)

PAYMENT_SUCCESS_EVENT = "subscription_payment_success"


class WebhookOutcome(str, enum.Enum):
    PROCESSED = "processed"
    IGNORED_EVENT = "ignored_event"
    MISSING_ORDER_ID = "missing_order_id"
    ORDER_NOT_FOUND = "order_not_found"
    MISSING_SUBSCRIPTION_ID = "missing_subscription_id"
    USER_NOT_FOUND = "user_not_found"
    SYNC_FAILED = "sync_failed"


@dataclass
class SyncReport:
    synced: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _required_timestamp(raw: str | None, name: str):
    parsed = parse_iso8601(raw)
    if parsed is None:
        raise ValueError(f"{name} is missing")
    return parsed


class BillingReconciler:
    def __init__(self, client: LemonSqueezyClient, policy: QuotaPolicy) -> None:
        self._client = client
        self._policy = policy

    def handle_webhook(self, db: Session, payload: dict) -> WebhookOutcome:
        meta = _as_dict(_as_dict(payload).get("meta"))
        event_name = str(meta.get("event_name") or "").strip()
        if event_name != PAYMENT_SUCCESS_EVENT:
            logger.info("billing.webhook.ignored event=%s", event_name)
            return WebhookOutcome.IGNORED_EVENT

        custom_data = _as_dict(meta.get("custom_data"))
        internal_order_id = str(custom_data.get("internal_order_id") or "").strip()
        if not internal_order_id:
            logger.error("billing.webhook.missing_internal_order_id event=%s", event_name)
            return WebhookOutcome.MISSING_ORDER_ID

        order = get_order_by_internal_id(db, internal_order_id)
        if order is None:
            logger.error("billing.webhook.order_not_found internal_order_id=%s", internal_order_id)
            return WebhookOutcome.ORDER_NOT_FOUND

        mark_order_finished(db, order)

        attrs = _as_dict(_as_dict(_as_dict(payload).get("data")).get("attributes"))
        external_subscription_id = str(attrs.get("subscription_id") or "").strip() or (
            order.external_subscription_id or ""
        )
        if not external_subscription_id:
            logger.error("billing.webhook.missing_subscription_id internal_order_id=%s", internal_order_id)
            return WebhookOutcome.MISSING_SUBSCRIPTION_ID
        remember_subscription_id(db, order, external_subscription_id)

        try:
            user = db.query(User).filter(User.id == order.user_id).first()
        except SQLAlchemyError as exc:
            db.rollback()
            raise storage_error(exc)
        if user is None:
            logger.error("billing.webhook.user_not_found user_id=%s internal_order_id=%s", order.user_id, internal_order_id)
            return WebhookOutcome.USER_NOT_FOUND

        try:
            self.sync_subscription(db, user.id, external_subscription_id)
        except AppError:
            logger.exception(
                "billing.webhook.sync_failed user_id=%s subscription_id=%s",
                user.id,
                external_subscription_id,
            )
            return WebhookOutcome.SYNC_FAILED
        return WebhookOutcome.PROCESSED

    def sync_subscription(self, db: Session, user_id: int, external_subscription_id: str) -> Subscription:
        """Fetch the remote subscription and upsert it.

        All timestamps are parsed before anything is written, so a bad
        remote payload leaves the stored row as it was.
        """
        remote = self._client.fetch_subscription(external_subscription_id)
        try:
            start_time = _required_timestamp(remote.created_at, "created_at")
            renews_at = _required_timestamp(remote.renews_at, "renews_at")
            ends_at = parse_iso8601(remote.ends_at)
        except ValueError as exc:
            raise AppError(ErrorKind.UPSTREAM, "invalid_subscription_timestamps", detail=str(exc))

        fields = SubscriptionFields(
            status=SubscriptionStatus.from_provider(remote.status),
            start_time=start_time,
            renews_at=renews_at,
            ends_at=ends_at,
            product_id=remote.product_id,
            variant_id=remote.variant_id,
            quota=self._policy.pro_quota,
            type=SubscriptionType.PRO,
        )
        sub = upsert_by_external_id(db, external_subscription_id, fields, user_id=user_id)
        logger.info(
            "billing.sync.done user_id=%s subscription_id=%s status=%s renews_at=%s",
            user_id,
            external_subscription_id,
            sub.status,
            sub.renews_at.isoformat() if sub.renews_at else None,
        )
        return sub

    def sync_all(self, db: Session) -> SyncReport:
        report = SyncReport()
        targets = [(s.user_id, s.external_subscription_id) for s in list_syncable(db)]
        for user_id, external_subscription_id in targets:
            try:
                self.sync_subscription(db, user_id, external_subscription_id)
            except AppError:
                logger.exception("billing.poll.sync_failed user_id=%s subscription_id=%s", user_id, external_subscription_id)
                report.failed.append(external_subscription_id)
                continue
            report.synced.append(external_subscription_id)
        logger.info("billing.poll.done synced=%s failed=%s", len(report.synced), len(report.failed))
        return report
