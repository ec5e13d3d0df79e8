from __future__ import annotations

import hashlib
import hmac
import time
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from remindly.core.database import get_db
from remindly.core.errors import storage_error
from remindly.core.settings import Settings
from remindly.models.user import User


def _require_jwt_secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        raise HTTPException(status_code=500, detail="JWT_SECRET is not configured")
    return settings.jwt_secret


def issue_token(settings: Settings, user: User, now: int | None = None) -> str:
    iat = int(now if now is not None else time.time())
    claims = {
        "sub": str(user.id),
        "name": user.name or "",
        "iat": iat,
        "exp": iat + int(settings.jwt_max_age_s),
    }
    return jwt.encode(claims, _require_jwt_secret(settings), algorithm="HS256")


def _decode_token(settings: Settings, token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            _require_jwt_secret(settings),
            algorithms=["HS256"],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid bearer token")
    return dict(payload)


def _get_bearer_token(request: Request) -> str:
    auth = request.headers.get("authorization") or ""
    if not auth.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    settings: Settings = request.app.state.settings
    claims = _decode_token(settings, _get_bearer_token(request))
    try:
        user_id = int(str(claims.get("sub") or "").strip())
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        user = db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError as exc:
        db.rollback()
        raise storage_error(exc)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user


def lemonsqueezy_signature(secret: str, raw_body: bytes) -> str:
    return hmac.new(key=secret.encode("utf-8"), msg=raw_body, digestmod=hashlib.sha256).hexdigest()


async def verify_lemonsqueezy_webhook(request: Request) -> bytes:
    """Reject webhook requests that are not JSON or not signed with our secret.

    Returns the raw body so the handler does not read it twice.
    """
    settings: Settings = request.app.state.settings
    content_type = (request.headers.get("content-type") or "").split(";")[0].strip().lower()
    if not content_type:
        raise HTTPException(status_code=400, detail="missing_content_type")
    if content_type != "application/json":
        raise HTTPException(status_code=400, detail="invalid_content_type")
    if not settings.lemonsqueezy_webhook_secret:
        raise HTTPException(status_code=500, detail="LEMONSQUEEZY_WEBHOOK_SECRET is not configured")
    sig = (request.headers.get("x-signature") or "").strip()
    if not sig:
        raise HTTPException(status_code=400, detail="missing_signature")
    raw_body = await request.body()
    expected = lemonsqueezy_signature(settings.lemonsqueezy_webhook_secret, raw_body)
    if not hmac.compare_digest(expected, sig):
        raise HTTPException(status_code=403, detail="invalid_signature")
    return raw_body
