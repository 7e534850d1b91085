"""Configuration loading for the ordinal service.

Rules:
- Primary source: `ordinal_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import (
    BaseModel,
    Field,
    ValidationError as PydanticValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("ordinal_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class SequenceSettings(BaseModel):
    start_at: int = 0


class HistoryConfig(BaseModel):
    session_key: str = "History"
    admin_prefix: str = "admin"
    session_secret: str = "ordinal-dev-session-secret"

    @field_validator("session_key", "session_secret")
    @classmethod
    def non_empty(cls, v: str, info: ValidationInfo) -> str:
        if not v.strip():
            raise ValueError(f"history.{info.field_name} must be a non-empty string")
        return v


class SearchConfig(BaseModel):
    default_limit: int = Field(default=10, gt=0)
    max_limit: int = Field(default=100, gt=0)

    @model_validator(mode="after")
    def default_within_max(self) -> "SearchConfig":
        if self.default_limit > self.max_limit:
            raise ValueError("search.default_limit must not exceed search.max_limit")
        return self


class AppConfig(BaseModel):
    database: DatabaseConfig
    sequence: SequenceSettings
    history: HistoryConfig
    search: SearchConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover - defensive
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) ordinal_config.json at project root
    4) Defaults suitable for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    auto_migrate_text = _env("AUTO_APPLY_MIGRATIONS") or _read_config_file("database.auto_apply_migrations") or _base("database.auto_apply_migrations", "1")

    start_at_text = _env("SEQUENCE_START_AT") or _read_config_file("sequence.start_at") or _base("sequence.start_at", "0")

    session_key = _env("HISTORY_SESSION_KEY") or _read_config_file("history.session_key") or _base("history.session_key", "History")
    admin_prefix = _env("HISTORY_ADMIN_PREFIX") or _read_config_file("history.admin_prefix") or _base("history.admin_prefix", "admin")
    session_secret = _env("SESSION_SECRET") or _read_config_file("history.session_secret") or _base("history.session_secret", "ordinal-dev-session-secret")

    default_limit_text = _env("SEARCH_DEFAULT_LIMIT") or _read_config_file("search.default_limit") or _base("search.default_limit", "10")
    max_limit_text = _env("SEARCH_MAX_LIMIT") or _read_config_file("search.max_limit") or _base("search.max_limit", "100")

    try:
        return AppConfig(
            database=DatabaseConfig(
                dsn=dsn,
                auto_apply_migrations=str(auto_migrate_text).strip().lower() not in {"0", "false", "no"},
            ),
            sequence=SequenceSettings(start_at=int(str(start_at_text).strip())),
            history=HistoryConfig(
                session_key=str(session_key),
                admin_prefix=str(admin_prefix).strip("/"),
                session_secret=str(session_secret),
            ),
            search=SearchConfig(
                default_limit=int(str(default_limit_text).strip()),
                max_limit=int(str(max_limit_text).strip()),
            ),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "SequenceSettings",
    "HistoryConfig",
    "SearchConfig",
    "load_config",
]
