"""Configuration helpers for inkroll."""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

# Load environment variables from a local .env if present.
load_dotenv()


AllowedLogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

# Mirrors the engine grammar; config cannot import the engine.
_FORMULA_PATTERN = re.compile(r"^[0-9]+d[0-9]+(?:[+-][0-9]+)?$")


class Settings(BaseModel):
    """Runtime configuration derived from environment variables."""

    db_path: str = Field(default="./local/inkroll.sqlite3", alias="INKROLL_DB_PATH")
    default_formula: str = Field(default="1d20", alias="INKROLL_DEFAULT_FORMULA")
    max_dice: Optional[int] = Field(default=None, ge=1, alias="INKROLL_MAX_DICE")
    max_sides: Optional[int] = Field(default=None, ge=2, alias="INKROLL_MAX_SIDES")
    recent_limit: int = Field(default=10, ge=1, alias="INKROLL_RECENT_LIMIT")
    history_limit: int = Field(default=200, ge=1, alias="INKROLL_HISTORY_LIMIT")
    log_level: AllowedLogLevel = Field(default="INFO", alias="INKROLL_LOG_LEVEL")

    @model_validator(mode="before")
    @classmethod
    def _drop_unset(cls, data: object) -> object:
        # Unset environment variables arrive as None; let field defaults apply.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: str) -> str:
        path = Path(value).expanduser()
        return str(path)

    @field_validator("default_formula")
    @classmethod
    def _validate_default_formula(cls, value: str) -> str:
        normalized = value.strip()
        if not _FORMULA_PATTERN.match(normalized):
            raise ValueError(
                "INKROLL_DEFAULT_FORMULA must look like '1d20' or '2d6+3'."
            )
        return normalized

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return str(value).upper()

    @property
    def db_path_obj(self) -> Path:
        """Return the database path as a Path instance."""
        return Path(self.db_path)


def _raw_environment() -> dict[str, Optional[str]]:
    """Snapshot environment variables relevant to the settings."""
    keys = [
        "INKROLL_DB_PATH",
        "INKROLL_DEFAULT_FORMULA",
        "INKROLL_MAX_DICE",
        "INKROLL_MAX_SIDES",
        "INKROLL_RECENT_LIMIT",
        "INKROLL_HISTORY_LIMIT",
        "INKROLL_LOG_LEVEL",
    ]
    return {key: os.getenv(key) for key in keys}


def ensure_database_path(path: Path) -> Path:
    """
    Ensure the SQLite file parent directory exists.

    Returns the resolved path for downstream usage.
    """
    if path.suffix != ".sqlite3":
        path = path.with_suffix(".sqlite3")
    if not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    return path.resolve()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and memoize Settings from the environment."""
    try:
        return Settings(**_raw_environment())
    except ValidationError as exc:
        raise RuntimeError(f"Invalid inkroll configuration: {exc}") from exc


__all__ = [
    "Settings",
    "AllowedLogLevel",
    "ensure_database_path",
    "get_settings",
]
