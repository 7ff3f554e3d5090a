from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

PACKAGE_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # Application
    app_name: str = "Planogram Backoffice"
    environment: str = "development"
    frontend_url: str = "http://localhost:3000"
    base_url: str = "http://localhost:8000"

    # MySQL
    db_host: str = "localhost"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "planograms"
    db_pool_min: int = 1
    db_pool_max: int = 10
    db_queue_limit: int = 0  # 0 = unbounded wait queue
    db_keepalive_interval: float = 30.0  # seconds between liveness pings
    db_pool_recycle: int = 3600
    db_connect_timeout: float = 10.0

    # Migrations
    migrations_dir: str = str(PACKAGE_ROOT / "migrations")

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 60 * 24
    email_confirmation_expires_hours: int = 48
    password_reset_expires_hours: int = 24
    email_cooldown_hours: int = 24
    google_client_id: str = ""

    # Storage: "local" or "supabase"
    storage_type: str = "local"
    upload_dir: str = "public"
    supabase_url: str = ""
    supabase_secret_key: str = ""
    supabase_bucket: str = "uploads"
    signed_url_ttl: int = 3600

    # Email (Resend)
    resend_api_key: str = ""
    email_from: str = "Planogram Backoffice <noreply@example.com>"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
