"""Application initialization and setup.

Runs before the FastAPI instance is created: loads ``.env`` into the
process environment and configures structlog.
"""

from dotenv import load_dotenv

from warden.core.config.settings import settings
from warden.core.logging import configure_logging


def initialize_application() -> None:
    """Load ``.env`` without overriding variables already set, then configure logging."""
    load_dotenv(override=False)
    configure_logging(log_level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
