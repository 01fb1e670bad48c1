"""
Deribit WebSocket API client.

Subpackages:
- api: connection engine, JSON-RPC correlation, auth, subscriptions, notifications
- lib: configuration, constants and logging utilities
"""

__version__ = "0.1.0"
