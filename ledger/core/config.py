import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if min_value is not None:
        return max(min_value, value)
    return value


def _database_url(raw: str) -> str:
    value = raw.strip()
    if value.startswith("postgres://"):
        return "postgresql+psycopg://" + value[len("postgres://") :]
    if value.startswith("postgresql://"):
        return "postgresql+psycopg://" + value[len("postgresql://") :]
    return value


@dataclass(frozen=True)
class Settings:
    app_name: str
    secret_key: str
    algorithm: str
    access_token_expire_minutes: int
    issuer: str
    frontend_base_url: str
    cors_origins: tuple[str, ...]
    database_url: str
    sale_entry_type_key: str
    log_level: str
    log_json: bool


settings = Settings(
    app_name=os.getenv("APP_NAME", "Ledger Metrics API"),
    secret_key=os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION_32_CHAR_MIN_SECRET_KEY"),
    algorithm=os.getenv("ALGORITHM", "HS256"),
    access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60, min_value=1),
    issuer=os.getenv("TOKEN_ISSUER", "ledger-api"),
    frontend_base_url=os.getenv("FRONTEND_BASE_URL", "http://localhost:3000"),
    cors_origins=tuple(
        origin.strip().rstrip("/")
        for origin in os.getenv("CORS_ORIGINS", os.getenv("FRONTEND_BASE_URL", "http://localhost:3000")).split(",")
        if origin.strip()
    ),
    database_url=_database_url(os.getenv("DATABASE_URL", "sqlite:///./ledger.db")),
    sale_entry_type_key=os.getenv("SALE_ENTRY_TYPE_KEY", "sale").strip().lower() or "sale",
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_json=_env_bool("LOG_JSON", False),
)
