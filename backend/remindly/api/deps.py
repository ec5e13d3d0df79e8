from fastapi import Request

from remindly.core.settings import Settings
from remindly.services.billing_reconciler import BillingReconciler
from remindly.services.lemonsqueezy import LemonSqueezyClient
from remindly.services.llm import EventExtractor
from remindly.services.quota import QuotaEvaluator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_quota_evaluator(request: Request) -> QuotaEvaluator:
    return request.app.state.quota_evaluator


def get_reconciler(request: Request) -> BillingReconciler:
    return request.app.state.reconciler


def get_billing_client(request: Request) -> LemonSqueezyClient:
    return request.app.state.billing_client


def get_event_extractor(request: Request) -> EventExtractor:
    return request.app.state.event_extractor
