"""
Application settings loaded from environment variables.

Values are read once, when ``Settings.from_env`` is called at startup.
DATABASE_URL accepts any SQLAlchemy URL; SQLite is the local development
fallback, PostgreSQL is used in deployment.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Runtime configuration for the student record service."""

    database_url: str = "sqlite:///./students.db"
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT") or cls.port),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
