from __future__ import annotations

import logging

from projectproof.config import get_settings


_LOG_CONFIGURED = False

# SDK loggers that log every HTTP request line at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "google_genai", "openai", "urllib3")


def configure_logging() -> None:
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    if settings.app_env == "development":
        logging.getLogger("projectproof").setLevel(min(level, logging.INFO))
    _LOG_CONFIGURED = True
