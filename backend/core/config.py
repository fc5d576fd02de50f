import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()

DEFAULT_JWT_SECRET_KEY = "change-me"


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_list(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_env: str
    database_url: str
    jwt_secret_key: str
    jwt_algorithm: str
    jwt_expires_minutes: int
    bcrypt_rounds: int
    cors_origins: tuple[str, ...]
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


def load_settings() -> Settings:
    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./todo_app.db"),
        jwt_secret_key=os.getenv("JWT_SECRET_KEY", DEFAULT_JWT_SECRET_KEY),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        jwt_expires_minutes=_get_int(os.getenv("JWT_EXPIRES_MINUTES"), 24 * 60),
        bcrypt_rounds=_get_int(os.getenv("BCRYPT_ROUNDS"), 10),
        cors_origins=_get_list(os.getenv("CORS_ORIGINS"), ("http://localhost:3000",)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


settings = load_settings()


def validate_runtime_config(current: Settings = settings) -> None:
    if current.is_production and current.jwt_secret_key == DEFAULT_JWT_SECRET_KEY:
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
