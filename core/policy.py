"""
Policy Configuration Module

Provides centralized, environment-driven settings for the engine and its
outer surfaces. Settings are read at call time so tests and long-running
processes pick up changes without a restart.

Key features:
- Repair provider endpoint is optional; when unset, repairs use the
  deterministic local fallback
- Unattended repair loops are bounded by MAX_REPAIR_ATTEMPTS
- Invalid numeric values fall back to defaults with a warning

Example usage:
    from core.policy import get_engine_settings

    settings = get_engine_settings()
    if settings['repair_provider_url']:
        # Use the HTTP repair provider
        pass
"""

import logging
import os
from typing import Any, Dict

logger = logging.getLogger(__name__)


LOG_LEVEL_DEFAULT = "INFO"
LOG_FORMAT_DEFAULT = "json"
REPAIR_PROVIDER_TIMEOUT_S_DEFAULT = 30.0
MAX_REPAIR_ATTEMPTS_DEFAULT = 3
BATCH_MAX_CONCURRENCY_DEFAULT = 8


def _env_number(name: str, default, cast, minimum):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using default {default}")
        return default
    if value < minimum:
        logger.warning(f"Ignoring out-of-range {name}={raw!r}; using default {default}")
        return default
    return value


def get_engine_settings() -> Dict[str, Any]:
    """
    Get current engine settings.

    Returns:
        Dictionary containing all settings with current values

    Example:
        >>> settings = get_engine_settings()
        >>> print(settings['max_repair_attempts'])
        3
    """
    return {
        'log_level': os.environ.get('LOG_LEVEL', LOG_LEVEL_DEFAULT).upper(),
        'log_format': os.environ.get('LOG_FORMAT', LOG_FORMAT_DEFAULT).lower(),
        'repair_provider_url': os.environ.get('REPAIR_PROVIDER_URL') or None,
        'repair_provider_api_key': os.environ.get('REPAIR_PROVIDER_API_KEY') or None,
        'repair_provider_timeout_s': _env_number(
            'REPAIR_PROVIDER_TIMEOUT_S', REPAIR_PROVIDER_TIMEOUT_S_DEFAULT, float, 0.1),
        'max_repair_attempts': _env_number(
            'MAX_REPAIR_ATTEMPTS', MAX_REPAIR_ATTEMPTS_DEFAULT, int, 1),
        'batch_max_concurrency': _env_number(
            'BATCH_MAX_CONCURRENCY', BATCH_MAX_CONCURRENCY_DEFAULT, int, 1),
    }


def is_repair_provider_configured() -> bool:
    """Check if an external repair provider endpoint is configured."""
    return get_engine_settings()['repair_provider_url'] is not None


def get_max_repair_attempts() -> int:
    return get_engine_settings()['max_repair_attempts']


def get_policy_summary() -> str:
    """
    Get a human-readable summary of current settings.

    Returns:
        String summary of policy configuration
    """
    settings = get_engine_settings()
    status = []

    if settings['repair_provider_url']:
        status.append(f"Repair Provider: {settings['repair_provider_url']}")
    else:
        status.append("Repair Provider: LOCAL FALLBACK")

    status.append(f"Max Repair Attempts: {settings['max_repair_attempts']}")
    status.append(f"Batch Concurrency: {settings['batch_max_concurrency']}")
    status.append(f"Logging: {settings['log_level']}/{settings['log_format']}")

    return " | ".join(status)
