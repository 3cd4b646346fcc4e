"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Print Shop Orders API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    log_level: str = getenv("LOG_LEVEL", "INFO")
    database_url: str = getenv("DATABASE_URL", "sqlite:///./printshop.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "60"))
    admin_user: str = getenv("ADMIN_USER", "admin")
    admin_pass: str = getenv("ADMIN_PASS", "")
    api_key: str = getenv("API_KEY", "")
    webhook_timeout_seconds: float = float(getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))
    initial_status_id: int = int(getenv("INITIAL_STATUS_ID", "1"))
    cancelled_status_name: str = getenv("CANCELLED_STATUS_NAME", "Cancelado")
    enforce_status_graph: bool = getenv("ENFORCE_STATUS_GRAPH", "0") == "1"


settings: Settings = Settings()
