"""
Client configuration management.

This module provides a centralized way to load, validate, and access
configuration for the WebSocket client. It supports:
- YAML file loading
- Environment variable overrides
- Type validation via dataclasses
- Default values from constants

Configuration Hierarchy (highest to lowest priority):
1. Environment variables (DERIBIT_*)
2. User-provided config file
3. Default values from constants.py

Example usage:
    # Testnet client, credentials from the environment
    config = load_config("config/deribit.yaml")

    client = await create_client(config)
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import aiohttp
import yaml

from deribit_ws.lib.constants import (
    DERIBIT_WS_URL,
    DERIBIT_TEST_WS_URL,
    DEFAULT_DIAL_TIMEOUT_SECONDS,
    DEFAULT_MAX_DIAL_ATTEMPTS,
    DEFAULT_DIAL_BACKOFF_SECONDS,
    DEFAULT_CALL_TIMEOUT_SECONDS,
    DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
    DEFAULT_SERVER_HEARTBEAT_INTERVAL_SECONDS,
    MIN_SERVER_HEARTBEAT_INTERVAL_SECONDS,
    DEFAULT_RECONNECT_DELAY_SECONDS,
    DEFAULT_READ_LIMIT_BYTES,
)


# Fields that hold live objects and are never read from or written to files
_RUNTIME_FIELDS = ("logger", "session")

_TRUE_VALUES = ("true", "1", "yes")


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class DeribitConfig:
    """Configuration for the Deribit WebSocket client.

    Attributes:
        url: WebSocket endpoint URL
        auto_reconnect: Reconnect automatically when the transport reports loss
        auto_start: Start the connection when built via create_client()
        dial_timeout: Timeout for a single dial attempt in seconds
        call_timeout: Default per-call deadline in seconds
        heartbeat_interval: Seconds between local liveness probes (<= 0 disables)
        server_heartbeat_interval: Interval announced with public/set_heartbeat
            (None disables)
        reconnect_delay: Quiet period before reconnecting, in seconds
        read_limit: Largest inbound frame in bytes
        max_dial_attempts: Dial attempts before start() gives up
        dial_backoff: Base backoff; attempt N waits N * dial_backoff seconds
        api_key: Client id for client_credentials auth
        secret_key: Client secret for client_credentials auth
        debug: Enable debug logging in entry points
        proxy: Optional HTTP proxy URL for the WebSocket dial
        logger: Logger used by the client (module logger if not provided)
        session: aiohttp session to dial with (the client creates one if not provided)
    """
    url: str = DERIBIT_TEST_WS_URL
    auto_reconnect: bool = True
    auto_start: bool = True
    dial_timeout: float = DEFAULT_DIAL_TIMEOUT_SECONDS
    call_timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL_SECONDS
    server_heartbeat_interval: Optional[int] = DEFAULT_SERVER_HEARTBEAT_INTERVAL_SECONDS
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY_SECONDS
    read_limit: int = DEFAULT_READ_LIMIT_BYTES
    max_dial_attempts: int = DEFAULT_MAX_DIAL_ATTEMPTS
    dial_backoff: float = DEFAULT_DIAL_BACKOFF_SECONDS
    api_key: str = ""
    secret_key: str = ""
    debug: bool = False
    proxy: Optional[str] = None
    logger: Optional[logging.Logger] = None
    session: Optional[aiohttp.ClientSession] = None

    @property
    def has_credentials(self) -> bool:
        """Both halves of the client credentials are configured."""
        return bool(self.api_key and self.secret_key)

    @classmethod
    def from_env(cls) -> "DeribitConfig":
        """Create config from environment variables.

        Environment variables:
            DERIBIT_TESTNET: Use the test endpoint (default: true)
            DERIBIT_WS_URL: Optional custom endpoint (overrides DERIBIT_TESTNET)
            DERIBIT_API_KEY: Client id
            DERIBIT_SECRET_KEY: Client secret
            DERIBIT_AUTO_RECONNECT: Reconnect on connection loss (default: true)
            DERIBIT_DEBUG: Enable debug logging (default: false)
        """
        return _apply_env_overrides(cls())


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(
    config_path: Optional[str] = None,
    override_env: bool = True
) -> DeribitConfig:
    """
    Load configuration from YAML file with optional environment overrides.

    Args:
        config_path: Path to YAML config file (optional)
        override_env: If True, apply environment variable overrides

    Returns:
        DeribitConfig instance

    Example:
        config = load_config("config/deribit.yaml")
        print(config.url)
    """
    config = DeribitConfig()

    if config_path:
        config = _load_from_yaml(config_path, config)

    if override_env:
        config = _apply_env_overrides(config)

    return config


def _load_from_yaml(config_path: str, base_config: DeribitConfig) -> DeribitConfig:
    """Load configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        yaml_data = yaml.safe_load(f)

    if yaml_data is None:
        return base_config

    # Accept both a flat mapping and one nested under "deribit"
    if "deribit" in yaml_data and isinstance(yaml_data["deribit"], dict):
        yaml_data = yaml_data["deribit"]

    # Shorthand for picking an endpoint
    if "testnet" in yaml_data and "url" not in yaml_data:
        base_config.url = DERIBIT_TEST_WS_URL if yaml_data["testnet"] else DERIBIT_WS_URL

    return _update_dataclass(base_config, yaml_data)


def _update_dataclass(instance: Any, data: dict) -> Any:
    """Update dataclass fields from dictionary."""
    if not data:
        return instance

    field_names = {f.name for f in fields(instance)} - set(_RUNTIME_FIELDS)

    for key, value in data.items():
        normalized_key = key.replace(".", "_").replace("-", "_")

        if normalized_key in field_names:
            setattr(instance, normalized_key, value)

    return instance


def _apply_env_overrides(config: DeribitConfig) -> DeribitConfig:
    """Apply environment variable overrides to config."""
    if env_val := os.getenv("DERIBIT_TESTNET"):
        config.url = DERIBIT_TEST_WS_URL if env_val.lower() in _TRUE_VALUES else DERIBIT_WS_URL

    if env_val := os.getenv("DERIBIT_WS_URL"):
        config.url = env_val

    # Credentials (always from env when present)
    if env_val := os.getenv("DERIBIT_API_KEY"):
        config.api_key = env_val

    if env_val := os.getenv("DERIBIT_SECRET_KEY"):
        config.secret_key = env_val

    if env_val := os.getenv("DERIBIT_AUTO_RECONNECT"):
        config.auto_reconnect = env_val.lower() in _TRUE_VALUES

    if env_val := os.getenv("DERIBIT_DEBUG"):
        config.debug = env_val.lower() in _TRUE_VALUES

    return config


def load_config_from_env() -> DeribitConfig:
    """
    Load configuration purely from environment variables.

    Returns:
        DeribitConfig instance
    """
    return load_config(config_path=None, override_env=True)


# =============================================================================
# Configuration Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


def validate_config(config: DeribitConfig) -> list[str]:
    """
    Validate configuration values.

    Args:
        config: DeribitConfig to validate

    Returns:
        List of validation warnings (empty if valid)

    Raises:
        ConfigValidationError: If critical validation fails
    """
    warnings = []
    errors = []

    # Endpoint
    if not config.url:
        errors.append("url must not be empty")
    elif not config.url.startswith(("ws://", "wss://")):
        errors.append(f"url ({config.url}) must use the ws:// or wss:// scheme")
    elif config.url.startswith("ws://"):
        warnings.append(f"url ({config.url}) is not encrypted")

    # Timeouts and attempts
    if config.dial_timeout <= 0:
        errors.append("dial_timeout must be positive")

    if config.call_timeout <= 0:
        errors.append("call_timeout must be positive")

    if config.max_dial_attempts < 1:
        errors.append("max_dial_attempts must be at least 1")

    if config.dial_backoff < 0:
        errors.append("dial_backoff cannot be negative")

    if config.reconnect_delay < 0:
        errors.append("reconnect_delay cannot be negative")

    if config.read_limit <= 0:
        errors.append("read_limit must be positive")

    # Heartbeat
    if 0 < config.heartbeat_interval < 1.0:
        warnings.append(
            f"heartbeat_interval ({config.heartbeat_interval}s) below 1s floods "
            f"the server with probes"
        )

    if (
        config.server_heartbeat_interval is not None
        and config.server_heartbeat_interval < MIN_SERVER_HEARTBEAT_INTERVAL_SECONDS
    ):
        errors.append(
            f"server_heartbeat_interval ({config.server_heartbeat_interval}) must be >= "
            f"{MIN_SERVER_HEARTBEAT_INTERVAL_SECONDS}"
        )

    # Credentials
    if bool(config.api_key) != bool(config.secret_key):
        errors.append("api_key and secret_key must be set together - set DERIBIT_API_KEY and DERIBIT_SECRET_KEY")

    if config.has_credentials and config.url == DERIBIT_WS_URL:
        warnings.append("credentials are configured for the production endpoint")

    if errors:
        raise ConfigValidationError("Configuration validation failed:\n" +
                                   "\n".join(f"  - {e}" for e in errors))

    return warnings


# =============================================================================
# Configuration Export
# =============================================================================

def config_to_dict(config: DeribitConfig) -> dict:
    """
    Convert DeribitConfig to dictionary for serialization.

    Args:
        config: Configuration to convert

    Returns:
        Dictionary representation (YAML-safe)
    """
    result = {
        f.name: getattr(config, f.name)
        for f in fields(config)
        if f.name not in _RUNTIME_FIELDS
    }

    # Remove sensitive data
    result["secret_key"] = "***" if result.get("secret_key") else ""

    return result


def save_config(config: DeribitConfig, path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration to save
        path: Output file path
    """
    data = config_to_dict(config)

    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
