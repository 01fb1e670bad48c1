#!/usr/bin/env python3
"""
Volatility Index Example for the Deribit WebSocket Client.

Subscribes to one or more channels (default: the BTC volatility index) and
prints every event until the duration elapses or CTRL+C is pressed.

Credentials are optional for public channels:
- DERIBIT_API_KEY / DERIBIT_SECRET_KEY enable private ("user.") channels
- DERIBIT_TESTNET=false selects the production endpoint

Usage:
    # BTC volatility index on testnet
    python scripts/run_volatility_example.py

    # Several channels for one minute
    python scripts/run_volatility_example.py \
        --channel deribit_volatility_index.eth_usd \
        --channel ticker.BTC-PERPETUAL.100ms --duration 60

    # Production endpoint through a proxy
    python scripts/run_volatility_example.py --production --proxy http://127.0.0.1:8080
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Callable, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from deribit_ws.api.channels import (
    DERIBIT_VOLATILITY_INDEX_NAME_BTC,
    channel_deribit_volatility_index,
)
from deribit_ws.api.client import DeribitWebSocket
from deribit_ws.api.errors import DeribitAPIError
from deribit_ws.lib.config import (
    ConfigValidationError,
    DeribitConfig,
    load_config,
    validate_config,
)
from deribit_ws.lib.constants import DERIBIT_TEST_WS_URL, DERIBIT_WS_URL
from deribit_ws.lib.logging_utils import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = channel_deribit_volatility_index(DERIBIT_VOLATILITY_INDEX_NAME_BTC)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Print Deribit subscription events',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Endpoint
    endpoint = parser.add_mutually_exclusive_group()
    endpoint.add_argument(
        '--testnet',
        dest='testnet',
        action='store_true',
        default=None,
        help='Use the test endpoint (default unless configured otherwise)',
    )
    endpoint.add_argument(
        '--production',
        dest='testnet',
        action='store_false',
        help='Use the production endpoint',
    )
    parser.add_argument(
        '--proxy',
        type=str,
        default=None,
        help='HTTP proxy URL for the WebSocket connection',
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to YAML config file',
    )

    # Channels
    parser.add_argument(
        '--channel',
        action='append',
        default=None,
        help=f'Channel to subscribe to, repeatable (default: {DEFAULT_CHANNEL})',
    )
    parser.add_argument(
        '--duration',
        type=float,
        default=None,
        help='Seconds to run before exiting (runs until interrupted if omitted)',
    )

    # Logging
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging',
    )
    parser.add_argument(
        '--log-dir',
        type=str,
        default=None,
        help='Also write a rotating log file to this directory',
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> DeribitConfig:
    """Merge config file, environment and command line flags."""
    config = load_config(args.config)

    if args.testnet is not None:
        config.url = DERIBIT_TEST_WS_URL if args.testnet else DERIBIT_WS_URL
    if args.proxy:
        config.proxy = args.proxy
    if args.debug:
        config.debug = True

    return config


def make_printer(channel: str) -> Callable[[Any], None]:
    """Callback printing each event of a channel."""
    def on_event(event: Any) -> None:
        print(f"{channel}: {event}", flush=True)
    return on_event


async def run(
    config: DeribitConfig,
    channels: list[str],
    duration: Optional[float] = None,
) -> None:
    """
    Run the subscription session.

    Args:
        config: Client configuration
        channels: Channels to subscribe to
        duration: Seconds to run, or None to run until a shutdown signal
    """
    client = DeribitWebSocket(config)
    stop = asyncio.Event()

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Shutdown signal received - closing connection")
        stop.set()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported here")

    for channel in channels:
        client.on(channel, make_printer(channel))

    # Recorded now, subscribed by start()
    await client.subscribe(channels)

    try:
        await client.start()
        logger.info(f"Listening on {len(channels)} channels")
        try:
            await asyncio.wait_for(stop.wait(), timeout=duration)
        except asyncio.TimeoutError:
            logger.info(f"Duration of {duration}s elapsed")
    finally:
        await client.close()
        for sig in installed:
            loop.remove_signal_handler(sig)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(level="DEBUG" if config.debug else "INFO", log_dir=args.log_dir)

    try:
        for warning in validate_config(config):
            logger.warning(warning)
    except ConfigValidationError as e:
        logger.error(str(e))
        return 1

    channels = args.channel or [DEFAULT_CHANNEL]

    logger.info("=" * 60)
    logger.info(f"Endpoint: {config.url}")
    logger.info(f"Channels: {', '.join(channels)}")
    logger.info("Press CTRL+C to stop")
    logger.info("=" * 60)

    try:
        asyncio.run(run(config, channels, args.duration))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except DeribitAPIError as e:
        logger.error(f"Client error: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
