"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("campus_booking.config")

STORAGE_BACKENDS = {"sql", "memory"}


class Settings(BaseSettings):
    # Storage
    storage_backend: str = "sql"
    database_url: str = "sqlite+aiosqlite:///./campus_booking.db"
    database_echo: bool = False

    # Reviewer auth (approve / reject)
    reviewer_api_key: str = ""

    # Optional classroom seed file (JSON list); bundled sample used if empty
    classrooms_json: str = ""

    # Server
    host: str = "127.0.0.1"
    port: int = 8090
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"STORAGE_BACKEND must be one of {sorted(STORAGE_BACKENDS)}, "
                f"got {self.storage_backend!r}."
            )

        if self.storage_backend == "sql" and not self.database_url:
            raise ValueError("DATABASE_URL is empty. Set it in .env or use STORAGE_BACKEND=memory.")

        if not self.reviewer_api_key:
            if self.debug:
                warnings.append(
                    "REVIEWER_API_KEY not set. Approve/reject are open (DEBUG=true)."
                )
            else:
                warnings.append(
                    "REVIEWER_API_KEY not set. Approve/reject are locked in production. "
                    "Set REVIEWER_API_KEY in .env to enable reviews."
                )

        if self.storage_backend == "memory" and not self.debug:
            warnings.append(
                "STORAGE_BACKEND=memory: bookings are lost on restart and not shared "
                "between workers."
            )

        return warnings


settings = Settings()
