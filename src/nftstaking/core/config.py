"""
NFT Staking Configuration

Supports development and production deployments with separate settings.
All values can be overridden through ``NFTSTAKING_*`` environment variables.

SECURITY NOTICE:
- Production requires an explicit pool owner address
- Never reuse a development data directory for production state
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


def _get_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{env_var} must be an integer, got {raw!r}",
            details={"env_var": env_var},
        ) from e


def _get_required(env_var: str, network: str) -> str:
    """Get a required value from environment, enforced on production."""
    value = os.getenv(env_var, "").strip()
    if value:
        return value
    if network.lower() == NetworkType.PRODUCTION.value:
        raise ConfigurationError(
            f"CRITICAL: {env_var} environment variable required for production.",
            details={"env_var": env_var},
        )
    return ""


NETWORK = os.getenv("NFTSTAKING_NETWORK", "development")

DATA_DIR = Path(
    os.getenv("NFTSTAKING_DATA_DIR", os.path.join(Path.home(), ".nftstaking"))
).expanduser()
STATE_FILE_NAME = "chain_state.json"
MAX_BACKUPS = _get_int("NFTSTAKING_MAX_BACKUPS", 10)

LOG_LEVEL = os.getenv("NFTSTAKING_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("NFTSTAKING_LOG_FILE", "").strip()

API_HOST = os.getenv("NFTSTAKING_API_HOST", "127.0.0.1")
API_PORT = _get_int("NFTSTAKING_API_PORT", 8645)
API_MAX_EVENTS = _get_int("NFTSTAKING_API_MAX_EVENTS", 500)
# Oldest events are dropped once the retained history reaches this size
EVENT_HISTORY_LIMIT = _get_int("NFTSTAKING_EVENT_HISTORY_LIMIT", 10_000)

# Default deployment parameters (token amounts in base units, 18 decimals)
DEFAULT_REWARD_SUPPLY = _get_int("NFTSTAKING_REWARD_SUPPLY", 1_000_000 * 10**18)
DEFAULT_BLOCK_REWARD = _get_int("NFTSTAKING_BLOCK_REWARD", 10**15)
DEFAULT_POOL_KEY_TOKEN = _get_int("NFTSTAKING_POOL_KEY_TOKEN", 50)


class DevelopmentConfig:
    """Local sandbox configuration."""

    NETWORK_TYPE = NetworkType.DEVELOPMENT
    DATA_DIR = DATA_DIR
    STATE_FILE_NAME = STATE_FILE_NAME
    MAX_BACKUPS = MAX_BACKUPS
    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE
    ENVIRONMENT = "development"
    API_HOST = API_HOST
    API_PORT = API_PORT
    API_MAX_EVENTS = API_MAX_EVENTS
    EVENT_HISTORY_LIMIT = EVENT_HISTORY_LIMIT
    POOL_OWNER = os.getenv("NFTSTAKING_POOL_OWNER", "").strip()
    REWARD_SUPPLY = DEFAULT_REWARD_SUPPLY
    BLOCK_REWARD = DEFAULT_BLOCK_REWARD
    POOL_KEY_TOKEN = DEFAULT_POOL_KEY_TOKEN


class ProductionConfig:
    """Production configuration (durable state, file logging)."""

    NETWORK_TYPE = NetworkType.PRODUCTION
    DATA_DIR = DATA_DIR
    STATE_FILE_NAME = STATE_FILE_NAME
    MAX_BACKUPS = MAX_BACKUPS
    LOG_LEVEL = LOG_LEVEL
    LOG_FILE = LOG_FILE or str(DATA_DIR / "logs" / "nftstaking.json")
    ENVIRONMENT = "production"
    API_HOST = API_HOST
    API_PORT = API_PORT
    API_MAX_EVENTS = API_MAX_EVENTS
    EVENT_HISTORY_LIMIT = EVENT_HISTORY_LIMIT
    POOL_OWNER = ""
    REWARD_SUPPLY = DEFAULT_REWARD_SUPPLY
    BLOCK_REWARD = DEFAULT_BLOCK_REWARD
    POOL_KEY_TOKEN = DEFAULT_POOL_KEY_TOKEN


def get_config(network: str | None = None) -> type:
    """
    Select the configuration class for a network.

    Raises:
        ConfigurationError: Unknown network, or production without an owner
    """
    selected = (network or NETWORK).lower()
    if selected == NetworkType.DEVELOPMENT.value:
        return DevelopmentConfig
    if selected == NetworkType.PRODUCTION.value:
        ProductionConfig.POOL_OWNER = _get_required("NFTSTAKING_POOL_OWNER", selected)
        return ProductionConfig
    raise ConfigurationError(
        f"Unknown NFTSTAKING_NETWORK {selected!r}",
        details={"network": selected},
    )


logger.debug(
    "Configuration loaded",
    extra={"event": "config.loaded", "network": NETWORK, "data_dir": str(DATA_DIR)},
)
