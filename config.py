import logging
import os
import sys
from dataclasses import dataclass, field
from typing import List

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)-7s] - %(message)s"


def _split_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "storefront"
    jwt_secret: str = "devsecret"
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = 30
    app_env: str = "development"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("JWT_SECRET")
        if not secret:
            log.warning("JWT_SECRET is not set, falling back to the development secret")
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            jwt_secret=secret or cls.jwt_secret,
            jwt_expires_days=int(os.getenv("JWT_EXPIRES_DAYS", cls.jwt_expires_days)),
            app_env=os.getenv("APP_ENV", cls.app_env),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            port=int(os.getenv("PORT", cls.port)),
        )


def setup_logging(level: str = "INFO"):
    """Configures the root logger."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not root.hasHandlers():
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
