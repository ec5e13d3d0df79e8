import json

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from remindly.api.deps import get_reconciler
from remindly.core.database import get_db
from remindly.core.errors import AppError, ErrorKind
from remindly.core.security import verify_lemonsqueezy_webhook
from remindly.schemas.billing import WebhookAck
from remindly.services.billing_reconciler import BillingReconciler

router = APIRouter()


@router.post("/webhooks/lemonsqueezy", response_model=WebhookAck)
def lemonsqueezy_webhook(
    raw_body: bytes = Depends(verify_lemonsqueezy_webhook),
    db: Session = Depends(get_db),
    reconciler: BillingReconciler = Depends(get_reconciler),
):
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise AppError(ErrorKind.VALIDATION, "invalid_json")
    if not isinstance(payload, dict):
        raise AppError(ErrorKind.VALIDATION, "invalid_payload")
    outcome = reconciler.handle_webhook(db, payload)
    return WebhookAck(received=True, outcome=outcome.value)
