"""Centralized logging configuration with Pydantic Logfire integration."""

import logging
from typing import Any

import logfire

from site_indexer.config import Settings

# stdlib level names that differ from Logfire's
_LOGFIRE_LEVELS = {"warning": "warn", "critical": "fatal"}

_SENSITIVE_KEYS = (
    "token",
    "api_key",
    "secret",
    "password",
    "authorization",
)


def setup_logfire(settings: Settings) -> None:
    """
    Initialize Pydantic Logfire and stdlib logging.

    Logs are only sent to the Logfire backend when a token is configured;
    otherwise they go to the console.
    """
    logfire_config: dict[str, Any] = {
        "environment": settings.env,
        "send_to_logfire": "if-token-present",
        "console": logfire.ConsoleOptions(
            min_log_level=_logfire_level(settings.log_level)
        ),
    }
    if settings.logfire_token:
        logfire_config["token"] = settings.logfire_token

    logfire.configure(**logfire_config)
    logfire.instrument_pydantic(record="failure")

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if settings.env == "local":
        # Local: Console formatting for development
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    else:
        # Production: Logfire handles structured formatting
        logging.basicConfig(level=log_level, format="%(message)s")

    logfire.info(
        "Logging configured",
        settings=redact_tokens(settings.model_dump()),
    )


def _logfire_level(level: str) -> str:
    level = level.lower()
    return _LOGFIRE_LEVELS.get(level, level)


def mask_pii(value: str | None, mask_char: str = "*") -> str:
    """
    Mask a sensitive value, keeping the first and last two characters.

    Args:
        value: Value to mask
        mask_char: Character to use for masking
    """
    if not value:
        return ""

    if len(value) <= 4:
        return mask_char * len(value)

    return f"{value[:2]}{mask_char * (len(value) - 4)}{value[-2:]}"


def redact_tokens(data: dict[str, Any]) -> dict[str, Any]:
    """
    Redact tokens and API keys from a dict before it is logged.

    Any key containing a sensitive word (e.g. ``openai_api_key``,
    ``chroma_token``) is masked; nested dicts are redacted recursively.
    """
    redacted = data.copy()
    for key, value in data.items():
        if isinstance(value, dict):
            redacted[key] = redact_tokens(value)
        elif isinstance(value, str) and any(s in key.lower() for s in _SENSITIVE_KEYS):
            redacted[key] = mask_pii(value)
    return redacted
