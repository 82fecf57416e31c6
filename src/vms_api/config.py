"""
Application settings, read from the environment (and an optional .env file).
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine.url import URL

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# PUBLIC_INTERFACE
def get_postgres_url():
    """
    Constructs PostgreSQL connection string from environment variables.
    Requires:
        - POSTGRES_USER
        - POSTGRES_PASSWORD
        - POSTGRES_DB
        - POSTGRES_HOST
        - POSTGRES_PORT
    """
    return URL.create(
        drivername="postgresql+psycopg2",
        username=os.getenv("POSTGRES_USER"),
        password=os.getenv("POSTGRES_PASSWORD"),
        host=os.getenv("POSTGRES_HOST", "localhost"),
        port=int(os.getenv("POSTGRES_PORT", 5432)),
        database=os.getenv("POSTGRES_DB"),
    ).render_as_string(hide_password=False)


# PUBLIC_INTERFACE
@dataclass
class Settings:
    """Runtime configuration for the API process."""

    database_url: str
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    verification_token_expire_minutes: int = 60 * 24
    frontend_url: str = "http://localhost:3000"
    public_base_url: str = "http://localhost:4000"
    create_tables: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_recycle: int = 3600
    db_isolation_level: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_ssl: bool = False
    mail_from: Optional[str] = None
    log_level: str = "INFO"


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Builds Settings from environment variables."""
    return Settings(
        database_url=os.getenv("DATABASE_URL") or get_postgres_url(),
        jwt_secret=os.getenv("JWT_SECRET"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440")),
        verification_token_expire_minutes=int(os.getenv("VERIFICATION_TOKEN_EXPIRE_MINUTES", "1440")),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000"),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:4000"),
        create_tables=_env_bool("CREATE_TABLES"),
        db_pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
        db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
        db_pool_recycle=int(os.getenv("DB_POOL_RECYCLE", "3600")),
        db_isolation_level=os.getenv("DB_ISOLATION_LEVEL") or None,
        smtp_host=os.getenv("SMTP_HOST") or None,
        smtp_port=int(os.getenv("SMTP_PORT", "587")),
        smtp_user=os.getenv("SMTP_USER") or None,
        smtp_password=os.getenv("SMTP_PASSWORD") or None,
        smtp_ssl=_env_bool("SMTP_SSL"),
        mail_from=os.getenv("MAIL_FROM") or os.getenv("SMTP_USER") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
