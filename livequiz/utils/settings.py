"""Runtime settings read from the environment (and an optional ``.env`` file)."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from livequiz.constants.network_constants import (
    DEFAULT_DATABASE_URL,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SECRET_KEY,
)
from livequiz.constants.quiz_constants import DEFAULT_ADMIN_NAMES

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    secret_key: str = DEFAULT_SECRET_KEY
    admin_names: tuple[str, ...] = DEFAULT_ADMIN_NAMES
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    seed_sample_quiz: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv()
        return cls(
            database_url=_get_env("LIVEQUIZ_DATABASE_URL", DEFAULT_DATABASE_URL),
            secret_key=_get_env("LIVEQUIZ_SECRET_KEY", DEFAULT_SECRET_KEY),
            admin_names=_parse_names(_get_env("LIVEQUIZ_ADMIN_NAMES", ",".join(DEFAULT_ADMIN_NAMES))),
            host=_get_env("LIVEQUIZ_HOST", DEFAULT_HOST),
            port=_parse_port(_get_env("LIVEQUIZ_PORT", str(DEFAULT_PORT))),
            seed_sample_quiz=_get_env("LIVEQUIZ_SEED_SAMPLE", "true").lower() in _TRUTHY,
            log_level=_get_env("LIVEQUIZ_LOG_LEVEL", "INFO").upper(),
        )


def _get_env(name: str, default: str) -> str:
    val = os.getenv(name, default)
    if val is None or val.strip() == "":
        return default
    return val.strip()


def _parse_names(raw: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def _parse_port(raw: str) -> int:
    try:
        port = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"LIVEQUIZ_PORT must be an integer, got {raw!r}") from exc
    if not 0 < port < 65536:
        raise RuntimeError(f"LIVEQUIZ_PORT out of range: {port}")
    return port
