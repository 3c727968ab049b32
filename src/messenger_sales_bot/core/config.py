"""
Configuration loading for the signal core.

Settings come from an optional JSON file and are then overridden by
environment variables (a local .env file is honoured).
"""
import json
import logging
import os
from pathlib import Path
from typing import Optional

import pytz
from dotenv import load_dotenv
from pydantic import ValidationError

from messenger_sales_bot.core.models import SignalsConfig

logger = logging.getLogger(__name__)

# Environment variable -> SignalsConfig field
ENV_OVERRIDES = {
    "DEBOUNCE_SECONDS": "debounce_seconds",
    "DEBOUNCE_MAX_WAIT_SECONDS": "debounce_max_wait_seconds",
    "SIGNALS_TIMEZONE": "timezone",
    "AI_MODEL": "classifier_model",
    "CLASSIFIER_TIMEOUT_SECONDS": "classifier_timeout_seconds",
}


class ConfigError(ValueError):
    """Raised when the configuration file or environment is invalid."""


def load_config(path: Optional[str | Path] = None) -> SignalsConfig:
    """
    Load SignalsConfig from a JSON file and the environment.

    Args:
        path: Optional JSON file with SignalsConfig fields. Missing file means defaults.

    Returns:
        Validated SignalsConfig

    Raises:
        ConfigError: If the file is not valid JSON or a value fails validation
    """
    load_dotenv()

    data: dict = {}
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
            logger.debug(f"Loaded signals config from {config_path}")
        else:
            logger.info(f"Config file {config_path} not found, using defaults")

    for env_name, field in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            data[field] = value

    try:
        config = SignalsConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid signals configuration: {e}") from e

    try:
        pytz.timezone(config.timezone)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigError(f"Unknown timezone: {config.timezone}") from e

    return config
