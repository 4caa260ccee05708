"""
Tests for the CLI module (cli.py).
Covers argument parsing, config overrides and the command handlers.
"""

import sys
from unittest.mock import AsyncMock, patch

import pytest

from transmission_injector.cli import (
    apply_overrides,
    build_parser,
    main,
    run_complete,
    run_inject,
    run_recheck,
    run_validate,
)
from transmission_injector.config import get_runtime_config
from transmission_injector.exceptions import DaemonUnreachableError, TransmissionRejectedError
from transmission_injector.models import DownloadDirError, InjectionResult, Result
from transmission_injector.policy import Decision

from conftest import INFO_HASH, RPC_URL


def parse(*argv):
    return build_parser().parse_args(list(argv))


# =============================================================================
# Main Entry Point Tests
# =============================================================================

class TestMainEntryPoint:
    """Test the main() entry point and argument parsing."""

    def test_no_command_shows_help(self, capsys):
        """Test that no command shows help and exits."""
        with patch.object(sys, "argv", ["transmission-injector"]):
            with pytest.raises(SystemExit) as excinfo:
                main()
            assert excinfo.value.code == 1

    def test_help_flag(self, capsys):
        """Test that --help shows help and exits with 0."""
        with patch.object(sys, "argv", ["transmission-injector", "--help"]):
            with pytest.raises(SystemExit) as excinfo:
                main()
            assert excinfo.value.code == 0
        assert "transmission-injector" in capsys.readouterr().out

    @pytest.mark.parametrize("command", ["validate", "complete", "recheck", "inject"])
    def test_commands_recognized(self, command):
        with patch.object(sys, "argv", ["transmission-injector", command, "--help"]):
            with pytest.raises(SystemExit) as excinfo:
                main()
            assert excinfo.value.code == 0

    def test_dispatches_and_exits_with_handler_code(self, settings, clean_logging):
        """Test main runs the chosen command and exits with its return code."""
        with patch.object(sys, "argv", ["transmission-injector", "validate"]):
            with patch("transmission_injector.cli.run_validate", new_callable=AsyncMock) as handler:
                handler.return_value = 1
                with pytest.raises(SystemExit) as excinfo:
                    main()

        assert excinfo.value.code == 1
        handler.assert_awaited_once()


# =============================================================================
# Argument Tests
# =============================================================================

class TestArguments:
    """Test parser arguments."""

    def test_inject_defaults(self):
        args = parse("inject", "new.torrent", "--name", "Movie")
        assert args.torrent == "new.torrent"
        assert args.name == "Movie"
        assert args.info_hash is None
        assert args.path is None
        assert args.decision == Decision.MATCH.value

    def test_inject_requires_name(self):
        with pytest.raises(SystemExit):
            parse("inject", "new.torrent")

    def test_inject_rejects_unknown_decision(self):
        with pytest.raises(SystemExit):
            parse("inject", "new.torrent", "--name", "Movie", "--decision", "MAYBE")

    def test_global_options(self):
        args = parse("--rpc-url", RPC_URL, "--tag", "xseed", "--timeout", "3", "complete", INFO_HASH)
        assert args.rpc_url == RPC_URL
        assert args.tag == "xseed"
        assert args.timeout == 3.0
        assert args.info_hash == INFO_HASH


class TestApplyOverrides:
    """Test command line options replace configured values."""

    def test_overrides_applied(self, settings):
        apply_overrides(parse("--rpc-url", "http://nas:9091/transmission/rpc", "--tag", "xseed", "validate"))

        config = get_runtime_config()
        assert config.transmission_rpc_url == "http://nas:9091/transmission/rpc"
        assert config.cross_seed_tag == "xseed"
        assert config.rpc_timeout == settings.rpc_timeout

    def test_no_overrides_keeps_config(self, settings):
        apply_overrides(parse("validate"))
        assert get_runtime_config() is settings


# =============================================================================
# Command Handler Tests
# =============================================================================

@pytest.fixture
def mock_client():
    with patch("transmission_injector.cli.TransmissionClient") as client_class:
        client = client_class.return_value
        client.validate_config = AsyncMock()
        client.is_torrent_complete = AsyncMock(return_value=Result.ok(True))
        client.recheck_torrent = AsyncMock()
        client.inject = AsyncMock(return_value=InjectionResult.SUCCESS)
        yield client


class TestCommands:
    """Test the async command handlers."""

    @pytest.mark.asyncio
    async def test_validate_ok(self, settings, mock_client, capsys):
        assert await run_validate(parse("validate")) == 0
        assert "Connected to Transmission" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_validate_unreachable(self, settings, mock_client, capsys):
        mock_client.validate_config.side_effect = DaemonUnreachableError(RPC_URL)

        assert await run_validate(parse("validate")) == 1
        assert f"Failed to reach Transmission at {RPC_URL}" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_complete(self, settings, mock_client, capsys):
        assert await run_complete(parse("complete", INFO_HASH)) == 0
        assert "complete" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_complete_not_found(self, settings, mock_client, capsys):
        mock_client.is_torrent_complete.return_value = Result.err(DownloadDirError.NOT_FOUND)

        assert await run_complete(parse("complete", INFO_HASH)) == 1
        assert "not found" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_recheck_failure(self, settings, mock_client, capsys):
        mock_client.recheck_torrent.side_effect = TransmissionRejectedError("no such torrent")

        assert await run_recheck(parse("recheck", INFO_HASH)) == 1
        assert "no such torrent" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_inject(self, settings, mock_client, tmp_path):
        torrent = tmp_path / "new.torrent"
        torrent.write_bytes(b"d4:infodee")

        code = await run_inject(parse(
            "inject", str(torrent), "--name", "Movie", "--info-hash", INFO_HASH,
            "--decision", "MATCH_PARTIAL",
        ))

        assert code == 0
        new_torrent, searchee, decision = mock_client.inject.call_args.args
        assert new_torrent.encode() == b"d4:infodee"
        assert searchee.info_hash == INFO_HASH
        assert decision is Decision.MATCH_PARTIAL
        assert mock_client.inject.call_args.kwargs["path"] is None

    @pytest.mark.asyncio
    async def test_inject_failure_exit_code(self, settings, mock_client, tmp_path):
        torrent = tmp_path / "new.torrent"
        torrent.write_bytes(b"d4:infodee")
        mock_client.inject.return_value = InjectionResult.TORRENT_NOT_COMPLETE

        assert await run_inject(parse("inject", str(torrent), "--name", "Movie")) == 1

    @pytest.mark.asyncio
    async def test_inject_missing_file(self, settings, mock_client, tmp_path, capsys):
        code = await run_inject(parse("inject", str(tmp_path / "missing.torrent"), "--name", "Movie"))

        assert code == 1
        mock_client.inject.assert_not_called()
