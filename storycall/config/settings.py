"""
Process-wide settings for the StoryCall server.

Settings are read once from the environment (after loading an optional ``.env``
file) and are read-only afterwards. Request handlers never change them; a
different model or voice requires restarting the process.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import dotenv
from pydantic import BaseModel, ConfigDict

from storycall.config.constants import (
    DEFAULT_API_BASE,
    DEFAULT_PORT,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_VOICE,
    DEFAULT_TEXT_MODEL,
    LOGGER_NAME,
)

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_STATIC_DIR = Path(__file__).resolve().parents[2] / "frontend"


class Settings(BaseModel):
    """Immutable server configuration."""

    model_config = ConfigDict(frozen=True)

    openai_api_key: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    model: str = DEFAULT_REALTIME_MODEL
    voice: str = DEFAULT_REALTIME_VOICE
    text_model: str = DEFAULT_TEXT_MODEL
    api_base: str = DEFAULT_API_BASE
    static_dir: Optional[Path] = DEFAULT_STATIC_DIR
    log_level: str = "INFO"

    @property
    def has_api_key(self) -> bool:
        return bool(self.openai_api_key)

    def upstream_url(self, path: str) -> str:
        """Join an upstream endpoint path onto the configured API base."""
        return self.api_base.rstrip("/") + path

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env_file: Optional .env file to load first; defaults to ./.env if present

        Returns:
            Settings: The loaded settings
        """
        env_path = env_file or Path(".") / ".env"
        if env_path.exists():
            dotenv.load_dotenv(env_path)

        static_dir = os.getenv("STORYCALL_STATIC_DIR")
        settings = cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", str(DEFAULT_PORT))),
            model=os.getenv("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
            voice=os.getenv("OPENAI_REALTIME_VOICE", DEFAULT_REALTIME_VOICE),
            text_model=os.getenv("OPENAI_TEXT_MODEL", DEFAULT_TEXT_MODEL),
            api_base=os.getenv("OPENAI_API_BASE", DEFAULT_API_BASE),
            static_dir=Path(static_dir) if static_dir else DEFAULT_STATIC_DIR,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

        if not settings.has_api_key:
            logger.warning(
                "OPENAI_API_KEY is not set. /session, /token and /api/stream will fail."
            )
        return settings
