import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from remindly.api.endpoints import orders, todos, user, webhook
from remindly.core.database import Base, create_db_engine, create_session_factory
from remindly.core.errors import AppError, app_error_handler, request_validation_handler
from remindly.core.settings import Settings
from remindly.services.billing_reconciler import BillingReconciler
from remindly.services.lemonsqueezy import LemonSqueezyClient
from remindly.services.llm import EventExtractor
from remindly.services.quota import QuotaEvaluator, QuotaPolicy

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    *,
    session_factory=None,
    billing_client: LemonSqueezyClient | None = None,
    event_extractor: EventExtractor | None = None,
) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Remindly API")

    if session_factory is None:
        engine = create_db_engine(settings.database_url)
        if settings.db_auto_create:
            Base.metadata.create_all(bind=engine)
        session_factory = create_session_factory(engine)

    policy = QuotaPolicy.from_settings(settings)
    billing_client = billing_client or LemonSqueezyClient.from_settings(settings)

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.billing_client = billing_client
    app.state.quota_evaluator = QuotaEvaluator(policy)
    app.state.reconciler = BillingReconciler(billing_client, policy)
    app.state.event_extractor = event_extractor or EventExtractor.from_settings(settings)

    origins = settings.resolved_cors_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type"],
        )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(user.router, prefix="/api", tags=["user"])
    app.include_router(todos.router, prefix="/api", tags=["todos"])
    app.include_router(orders.router, prefix="/api", tags=["orders"])
    app.include_router(webhook.router, prefix="/api", tags=["webhooks"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    logger.info("app.ready environment=%s", settings.environment)
    return app
