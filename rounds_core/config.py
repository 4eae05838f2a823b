"""Process-wide settings, read from the environment once."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # JSON file replacing the built-in ruleset (see ruleset.Ruleset)
    ruleset_path: Optional[Path] = None

    model_config = SettingsConfigDict(env_prefix="ROUNDS_CORE_", env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
