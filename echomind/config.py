"""
Runtime configuration for the EchoMind service.

Settings come from environment variables. A `.env` file in the working
directory (or the path given by ECHOMIND_ENV_FILE) is loaded first when
present, without overriding variables that are already set.
"""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .store import DEFAULT_HISTORY_WINDOW

DEFAULT_MAX_SESSIONS = 1000

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseModel):
    """Resolved service settings."""

    gemini_api_key: str | None = Field(None, description="Gemini API key")
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    history_window: int = Field(DEFAULT_HISTORY_WINDOW, ge=1)
    max_sessions: int = Field(DEFAULT_MAX_SESSIONS, ge=1)
    firebase_api_key: str | None = None
    firebase_project_id: str | None = None
    log_level: str = "info"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def load_env() -> str | None:
    """Load the .env file if one exists. Returns the path that was loaded."""
    env_path = os.getenv("ECHOMIND_ENV_FILE", os.path.join(os.getcwd(), ".env"))
    if not os.path.isfile(env_path):
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def getenv_default(key: str, default: str) -> str:
    return os.getenv(key, default)


def get_settings() -> Settings:
    """Build Settings from the current environment."""
    load_env()
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        gemini_model=getenv_default("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        gemini_base_url=getenv_default("GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL),
        history_window=int(
            getenv_default("HISTORY_WINDOW", str(DEFAULT_HISTORY_WINDOW))
        ),
        max_sessions=int(getenv_default("MAX_SESSIONS", str(DEFAULT_MAX_SESSIONS))),
        firebase_api_key=os.getenv("FIREBASE_API_KEY"),
        firebase_project_id=os.getenv("FIREBASE_PROJECT_ID"),
        log_level=getenv_default("LOG_LEVEL", "info").lower(),
        host=getenv_default("ECHOMIND_HOST", DEFAULT_HOST),
        port=int(getenv_default("ECHOMIND_PORT", str(DEFAULT_PORT))),
    )


def configure_logging(level: str = "info") -> None:
    """Set up root logging for the server and CLI entry points."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
