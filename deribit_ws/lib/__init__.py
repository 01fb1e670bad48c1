"""
Shared utilities library for the client.

This module provides common utilities used across the codebase:
- constants: Endpoints, connection defaults, JSON-RPC method names
- config: Configuration loading from YAML and environment variables
- logging_utils: Root logger setup, formatter and latency logging
"""

from deribit_ws.lib.constants import (
    DERIBIT_WS_URL,
    DERIBIT_TEST_WS_URL,
    DEFAULT_CALL_TIMEOUT_SECONDS,
    DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
    DEFAULT_SERVER_HEARTBEAT_INTERVAL_SECONDS,
    PRIVATE_CHANNEL_PREFIX,
)
from deribit_ws.lib.config import (
    DeribitConfig,
    ConfigValidationError,
    load_config,
    load_config_from_env,
    validate_config,
    config_to_dict,
    save_config,
)
from deribit_ws.lib.logging_utils import (
    ClientFormatter,
    setup_logging,
    log_latency,
)

__all__ = [
    # Constants
    "DERIBIT_WS_URL",
    "DERIBIT_TEST_WS_URL",
    "DEFAULT_CALL_TIMEOUT_SECONDS",
    "DEFAULT_HEARTBEAT_INTERVAL_SECONDS",
    "DEFAULT_SERVER_HEARTBEAT_INTERVAL_SECONDS",
    "PRIVATE_CHANNEL_PREFIX",
    # Config
    "DeribitConfig",
    "ConfigValidationError",
    "load_config",
    "load_config_from_env",
    "validate_config",
    "config_to_dict",
    "save_config",
    # Logging
    "ClientFormatter",
    "setup_logging",
    "log_latency",
]
