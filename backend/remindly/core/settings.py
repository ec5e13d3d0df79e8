import os


def _getenv(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


class Settings:
    """Process configuration, read from the environment once at startup.

    The instance is handed to ``create_app`` and stored on ``app.state``;
    services receive the pieces they need through their constructors.
    """

    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./remindly.db") or "sqlite:///./remindly.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.app_endpoint = (_getenv("APP_ENDPOINT", "http://localhost:8000") or "http://localhost:8000").rstrip("/")

        self.jwt_secret = _getenv("JWT_SECRET")
        self.jwt_max_age_s = _getenv_int("JWT_MAX_AGE_S", 60 * 60 * 24 * 30)

        self.llm_api_key = _getenv("LLM_API_KEY") or _getenv("OPENAI_API_KEY")
        self.llm_base_url = _getenv("LLM_BASE_URL") or _getenv("OPENAI_API_ENDPOINT")
        self.llm_model = _getenv("LLM_MODEL", "gpt-3.5-turbo") or "gpt-3.5-turbo"
        self.llm_temperature = float(_getenv("LLM_TEMPERATURE", "0.2") or "0.2")

        self.lemonsqueezy_api_key = _getenv("LEMONSQUEEZY_API_KEY")
        self.lemonsqueezy_api_base = (
            _getenv("LEMONSQUEEZY_API_BASE", "https://api.lemonsqueezy.com/v1") or "https://api.lemonsqueezy.com/v1"
        ).rstrip("/")
        self.lemonsqueezy_store_id = _getenv("LEMONSQUEEZY_STORE_ID")
        self.lemonsqueezy_variant_pro = _getenv("LEMONSQUEEZY_VARIANT_PRO")
        self.lemonsqueezy_webhook_secret = _getenv("LEMONSQUEEZY_WEBHOOK_SECRET")
        self.lemonsqueezy_timeout_s = float(_getenv("LEMONSQUEEZY_TIMEOUT_S", "30") or "30")

        self.free_quota = _getenv_int("FREE_QUOTA", 10)
        self.pro_quota = _getenv_int("PRO_QUOTA", 125)
        self.quota_window_days = _getenv_int("QUOTA_WINDOW_DAYS", 31)

    def resolved_cors_origins(self) -> list[str]:
        raw = self.cors_allow_origins
        if raw is None:
            return ["http://localhost:5173", "http://localhost:8000"]
        if raw.strip() == "*":
            return ["*"]
        origins = [o.strip() for o in raw.split(",") if o.strip()]
        return origins
