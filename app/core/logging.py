"""Logging configuration."""
import logging
import sys

from app.core.config import Settings, settings as default_settings


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Set third-party loggers to WARNING
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("twilio").setLevel(logging.WARNING)


def log_configuration_warnings(settings: Settings = default_settings) -> None:
    """
    Warn about missing credentials.

    The server keeps running; call placement and text generation fail per
    request instead.
    """
    missing = settings.missing_twilio_settings()
    if missing:
        logger.warning(
            f"[CONFIG] Twilio configuration missing or incomplete - "
            f"set {', '.join(missing)} in .env to enable outbound calls"
        )

    if not settings.text_generation_configured:
        logger.warning(
            "[CONFIG] OpenAI API key not configured - "
            "set OPENAI_API_KEY in .env to enable text generation"
        )


logger = logging.getLogger(__name__)
