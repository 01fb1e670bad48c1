"""
Tests for the volatility index example script.

Tests cover:
- Argument parsing (endpoint flags, repeatable channels)
- Config merge of file, environment and flags
- run(): callbacks registered, channels subscribed, client closed
- main(): validation failures and exit codes
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from deribit_ws.api.errors import DeribitConnectionError
from deribit_ws.lib.config import DeribitConfig
from deribit_ws.lib.constants import DERIBIT_TEST_WS_URL, DERIBIT_WS_URL
from scripts.run_volatility_example import (
    DEFAULT_CHANNEL,
    build_config,
    main,
    make_printer,
    parse_args,
    run,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("DERIBIT_TESTNET", "DERIBIT_WS_URL", "DERIBIT_API_KEY", "DERIBIT_SECRET_KEY",
                 "DERIBIT_DEBUG"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestParseArgs:
    """Tests for parse_args."""

    def test_defaults(self):
        args = parse_args([])

        assert args.testnet is None
        assert args.channel is None
        assert args.duration is None
        assert args.debug is False

    def test_repeatable_channel(self):
        args = parse_args(["--channel", "a.b", "--channel", "c.d", "--duration", "5"])

        assert args.channel == ["a.b", "c.d"]
        assert args.duration == 5.0

    def test_endpoint_flags_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--testnet", "--production"])

    def test_default_channel(self):
        assert DEFAULT_CHANNEL == "deribit_volatility_index.btc_usd"


class TestBuildConfig:
    """Tests for build_config."""

    def test_production_flag(self, clean_env):
        config = build_config(parse_args(["--production", "--proxy", "http://p:1", "--debug"]))

        assert config.url == DERIBIT_WS_URL
        assert config.proxy == "http://p:1"
        assert config.debug is True

    def test_testnet_flag_overrides_env(self, clean_env):
        clean_env.setenv("DERIBIT_TESTNET", "false")

        config = build_config(parse_args(["--testnet"]))

        assert config.url == DERIBIT_TEST_WS_URL

    def test_env_kept_without_flag(self, clean_env):
        clean_env.setenv("DERIBIT_TESTNET", "false")

        assert build_config(parse_args([])).url == DERIBIT_WS_URL


class TestRun:
    """Tests for the async session."""

    @pytest.mark.asyncio
    async def test_run_subscribes_and_closes(self):
        client = MagicMock()
        client.start = AsyncMock()
        client.subscribe = AsyncMock()
        client.close = AsyncMock()

        with patch("scripts.run_volatility_example.DeribitWebSocket", return_value=client):
            await run(DeribitConfig(), ["a.b", "c.d"], duration=0.01)

        assert [c[0][0] for c in client.on.call_args_list] == ["a.b", "c.d"]
        client.subscribe.assert_awaited_once_with(["a.b", "c.d"])
        client.start.assert_awaited_once()
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_run_closes_on_start_failure(self):
        client = MagicMock()
        client.start = AsyncMock(side_effect=DeribitConnectionError("refused"))
        client.subscribe = AsyncMock()
        client.close = AsyncMock()

        with patch("scripts.run_volatility_example.DeribitWebSocket", return_value=client):
            with pytest.raises(DeribitConnectionError):
                await run(DeribitConfig(), ["a.b"], duration=1)

        client.close.assert_awaited_once()

    def test_printer(self, capsys):
        make_printer("a.b")("event")

        assert capsys.readouterr().out == "a.b: event\n"


class TestMain:
    """Tests for main."""

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_invalid_config(self, clean_env):
        clean_env.setenv("DERIBIT_API_KEY", "only-key")

        with patch("scripts.run_volatility_example.setup_logging"):
            assert main([]) == 1

    def test_client_error_exit_code(self, clean_env):
        with patch("scripts.run_volatility_example.setup_logging"), \
                patch("scripts.run_volatility_example.run", new=AsyncMock(
                    side_effect=DeribitConnectionError("refused"))):
            assert main(["--duration", "1"]) == 1

    def test_success(self, clean_env):
        with patch("scripts.run_volatility_example.setup_logging") as setup_mock, \
                patch("scripts.run_volatility_example.run", new=AsyncMock()) as run_mock:
            assert main([
                "--channel", "quote.BTC-PERPETUAL", "--duration", "1", "--log-dir", "logs",
            ]) == 0

        setup_mock.assert_called_once_with(level="INFO", log_dir="logs")

        config, channels, duration = run_mock.await_args[0]
        assert channels == ["quote.BTC-PERPETUAL"]
        assert duration == 1.0
        assert config.url == DERIBIT_TEST_WS_URL
