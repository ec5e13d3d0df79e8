from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import requests

from remindly.core.errors import AppError, ErrorKind
from remindly.core.settings import Settings

logger = logging.getLogger(__name__)


class LemonSqueezyError(AppError):
    def __init__(self, code: str, detail: str | None = None) -> None:
        super().__init__(ErrorKind.UPSTREAM, code, detail=detail)


@dataclass(frozen=True)
class RemoteSubscription:
    id: str
    product_id: str | None
    variant_id: str | None
    status: str
    created_at: str | None
    renews_at: str | None
    ends_at: str | None


@dataclass(frozen=True)
class CheckoutResult:
    checkout_id: str
    url: str


def parse_iso8601(raw: str | None) -> datetime | None:
    """Parse a provider timestamp into an aware UTC datetime.

    ``None`` or blank input gives ``None``; anything else that does not
    parse raises ``ValueError``.
    """
    if raw is None:
        return None
    v = str(raw).strip()
    if not v:
        return None
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    dt = datetime.fromisoformat(v)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


class LemonSqueezyClient:
    def __init__(
        self,
        api_key: str | None,
        store_id: str | None = None,
        api_base: str = "https://api.lemonsqueezy.com/v1",
        timeout_s: float = 30,
        session: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key
        self._store_id = store_id
        self._api_base = api_base.rstrip("/")
        self._timeout_s = timeout_s
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LemonSqueezyClient":
        return cls(
            api_key=settings.lemonsqueezy_api_key,
            store_id=settings.lemonsqueezy_store_id,
            api_base=settings.lemonsqueezy_api_base,
            timeout_s=settings.lemonsqueezy_timeout_s,
        )

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise LemonSqueezyError("lemonsqueezy_not_configured", "LEMONSQUEEZY_API_KEY is not configured")
        return {
            "Accept": "application/vnd.api+json",
            "Content-Type": "application/vnd.api+json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        url = f"{self._api_base}/{path.lstrip('/')}"
        try:
            resp = self._session.request(method, url, headers=self._headers(), json=json, timeout=self._timeout_s)
        except requests.RequestException as exc:
            logger.warning("lemonsqueezy.request_failed method=%s path=%s error=%s", method, path, exc)
            raise LemonSqueezyError("lemonsqueezy_unreachable", str(exc))
        if resp.status_code >= 400:
            logger.warning("lemonsqueezy.http_error method=%s path=%s status=%s", method, path, resp.status_code)
            raise LemonSqueezyError("lemonsqueezy_http_error", f"Lemon Squeezy error ({resp.status_code})")
        try:
            body = resp.json()
        except ValueError as exc:
            raise LemonSqueezyError("lemonsqueezy_invalid_response", str(exc))
        if not isinstance(body, dict):
            raise LemonSqueezyError("lemonsqueezy_invalid_response", "response body is not an object")
        return body

    def fetch_subscription(self, external_id: str) -> RemoteSubscription:
        body = self._request("GET", f"subscriptions/{external_id}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise LemonSqueezyError("lemonsqueezy_invalid_response", "missing data object")
        attrs = data.get("attributes")
        if not isinstance(attrs, dict):
            raise LemonSqueezyError("lemonsqueezy_invalid_response", "missing attributes")
        return RemoteSubscription(
            id=str(data.get("id") or external_id),
            product_id=_str_or_none(attrs.get("product_id")),
            variant_id=_str_or_none(attrs.get("variant_id")),
            status=str(attrs.get("status") or ""),
            created_at=_str_or_none(attrs.get("created_at")),
            renews_at=_str_or_none(attrs.get("renews_at")),
            ends_at=_str_or_none(attrs.get("ends_at")),
        )

    def create_checkout(
        self,
        variant_id: str,
        redirect_url: str,
        custom_data: dict[str, Any],
        email: str | None = None,
    ) -> CheckoutResult:
        if not self._store_id:
            raise LemonSqueezyError("lemonsqueezy_not_configured", "LEMONSQUEEZY_STORE_ID is not configured")
        payload: dict = {
            "data": {
                "type": "checkouts",
                "attributes": {
                    "checkout_data": {
                        "email": email or "",
                        "custom": dict(custom_data or {}),
                    },
                    "product_options": {
                        "redirect_url": redirect_url,
                    },
                },
                "relationships": {
                    "store": {"data": {"type": "stores", "id": str(self._store_id)}},
                    "variant": {"data": {"type": "variants", "id": str(variant_id)}},
                },
            }
        }
        body = self._request("POST", "checkouts", json=payload)
        data = body.get("data") or {}
        url = ((data.get("attributes") or {}).get("url")) or ""
        checkout_id = str(data.get("id") or "")
        if not url or not checkout_id:
            raise LemonSqueezyError("failed_to_create_order", "Failed to create checkout")
        return CheckoutResult(checkout_id=checkout_id, url=str(url))
