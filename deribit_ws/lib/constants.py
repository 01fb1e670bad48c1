"""
Client constants.

This module defines the constants shared by the connection engine and the
configuration layer:
- Endpoint URLs (production and testnet)
- Connection, call and heartbeat defaults
- JSON-RPC method names used by the core
- Channel prefixes used for routing and public/private partitioning
"""


# =============================================================================
# Endpoints
# =============================================================================

DERIBIT_WS_URL = "wss://www.deribit.com/ws/api/v2/"
DERIBIT_TEST_WS_URL = "wss://test.deribit.com/ws/api/v2/"


# =============================================================================
# Connection Defaults
# =============================================================================

# Dial
DEFAULT_DIAL_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_DIAL_ATTEMPTS = 10
DEFAULT_DIAL_BACKOFF_SECONDS = 5.0  # delay = attempt * backoff

# Calls
DEFAULT_CALL_TIMEOUT_SECONDS = 10.0

# Liveness
DEFAULT_HEARTBEAT_INTERVAL_SECONDS = 3.0
DEFAULT_SERVER_HEARTBEAT_INTERVAL_SECONDS = 30  # announced via public/set_heartbeat
MIN_SERVER_HEARTBEAT_INTERVAL_SECONDS = 10

# Reconnect
DEFAULT_RECONNECT_DELAY_SECONDS = 1.0

# Largest inbound frame accepted by the socket
DEFAULT_READ_LIMIT_BYTES = 32768 * 64


# =============================================================================
# JSON-RPC
# =============================================================================

JSONRPC_VERSION = "2.0"

METHOD_AUTH = "public/auth"
METHOD_LOGOUT = "private/logout"
METHOD_TEST = "public/test"
METHOD_GET_TIME = "public/get_time"
METHOD_SET_HEARTBEAT = "public/set_heartbeat"
METHOD_PUBLIC_SUBSCRIBE = "public/subscribe"
METHOD_PRIVATE_SUBSCRIBE = "private/subscribe"

PRIVATE_METHOD_PREFIX = "private/"

# Server-pushed request methods
NOTIFICATION_SUBSCRIPTION = "subscription"
NOTIFICATION_HEARTBEAT = "heartbeat"
HEARTBEAT_TEST_REQUEST = "test_request"


# =============================================================================
# Channels
# =============================================================================

PRIVATE_CHANNEL_PREFIX = "user."
