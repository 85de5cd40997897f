"""Settings loaded from environment variables (prefix ``INTAKE_``) or ``.env``."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service and client settings."""

    model_config = SettingsConfigDict(env_prefix="INTAKE_", env_file=".env", extra="ignore")

    # Intake lifecycle API, as seen by the form runtime and agents
    api_base_url: str = "http://localhost:8787"
    api_key: str = ""

    # Base of the client-facing links handed out on create
    public_base_url: str = "https://intake.platform21.com.au"

    max_upload_bytes: int = 10 * 1024 * 1024
    intake_ttl_days: int = 30

    # None disables the timeout; a stalled upload only blocks its own file
    request_timeout: Optional[float] = None

    draft_dir: Path = Path.home() / ".intakeform" / "drafts"

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured level to the ``intakeform`` logger hierarchy."""
    settings = settings or get_settings()
    logging.getLogger("intakeform").setLevel(settings.log_level.upper())
