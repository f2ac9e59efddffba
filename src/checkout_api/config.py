"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str
    host: str
    port: int
    lock_timeout_seconds: float
    ticket_code_length: int
    ticket_code_attempts: int
    seed_file: str | None


_LEVEL_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}


def load_settings() -> Settings:
    env = os.getenv("CHECKOUT_ENV", "development").lower()
    return Settings(
        env=env,
        log_level=os.getenv("LOG_LEVEL", _LEVEL_BY_ENV.get(env, "INFO")).upper(),
        host=os.getenv("CHECKOUT_HOST", "0.0.0.0"),
        port=int(os.getenv("CHECKOUT_PORT", "8000")),
        lock_timeout_seconds=float(os.getenv("CHECKOUT_LOCK_TIMEOUT_SECONDS", "2.0")),
        ticket_code_length=int(os.getenv("CHECKOUT_TICKET_CODE_LENGTH", "16")),
        ticket_code_attempts=int(os.getenv("CHECKOUT_TICKET_CODE_ATTEMPTS", "8")),
        seed_file=os.getenv("CHECKOUT_SEED_FILE") or None,
    )
