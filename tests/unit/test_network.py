"""Unit tests for the local network and install helpers."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from p4connect.exceptions import CommandError
from p4connect.models import ShellResult
from p4connect.network import (
    is_p4_installed_locally,
    resolve_p4port_to_ip,
    try_resolve_ticket,
    try_resolve_trust,
)

NSLOOKUP = (
    "Server:\t\t127.0.0.53",
    "Address:\t127.0.0.53#53",
    "",
    "Non-authoritative answer:",
    "Name:\tp4.example.com",
    "Address: 10.0.0.5",
    "",
)


class TestIsP4Installed:
    @patch("p4connect.network.run")
    @patch("p4connect.network.shutil.which", return_value=None)
    def test_not_on_path(self, mock_which, mock_run):
        assert is_p4_installed_locally() is False
        mock_run.assert_not_called()

    @patch("p4connect.network.run")
    @patch("p4connect.network.shutil.which", return_value="/usr/bin/p4")
    def test_installed(self, mock_which, mock_run):
        mock_run.return_value = ShellResult(exit_code=0, stdout=("P4PORT=ssl:p4:1666 (set)",))
        assert is_p4_installed_locally(timeout=2.0) is True
        mock_run.assert_called_once_with("p4 set", timeout=2.0)

    @patch("p4connect.network.run")
    @patch("p4connect.network.shutil.which", return_value="/usr/bin/p4")
    def test_server_complaint_still_installed(self, mock_which, mock_run):
        mock_run.return_value = ShellResult(exit_code=1, stderr=("Connect to server failed",))
        assert is_p4_installed_locally() is True

    @patch("p4connect.network.run")
    @patch("p4connect.network.shutil.which", return_value="C:\\p4\\p4.exe")
    def test_shell_says_missing(self, mock_which, mock_run):
        mock_run.return_value = ShellResult(
            exit_code=1,
            stderr=("'p4' is not recognized as an internal or external command,",),
        )
        assert is_p4_installed_locally() is False


class TestTryResolveTrust:
    @patch("p4connect.network.run")
    def test_found(self, mock_run):
        mock_run.return_value = ShellResult(
            exit_code=0,
            stdout=(
                "10.0.0.4:1666 11:22:33",
                "10.0.0.5:1666 AA:BB:CC:DD",
            ),
        )
        assert try_resolve_trust("10.0.0.5", 1666) == "AA:BB:CC:DD"

    @patch("p4connect.network.run")
    def test_missing(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=0, stdout=("10.0.0.4:1666 11:22:33",))
        assert try_resolve_trust("10.0.0.5", 1666) is None

    @patch("p4connect.network.run")
    def test_stderr_with_listing_tolerated(self, mock_run):
        mock_run.return_value = ShellResult(
            exit_code=0,
            stdout=("10.0.0.5:1666 AA:BB",),
            stderr=("Trust file permissions are too open",),
        )
        assert try_resolve_trust("10.0.0.5", 1666) == "AA:BB"

    @patch("p4connect.network.run")
    def test_failure(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=1, stderr=("broken",))
        with pytest.raises(CommandError):
            try_resolve_trust("10.0.0.5", 1666)


class TestResolveP4Port:
    @pytest.mark.parametrize("p4port", ["not a port", "ssl:", "host:port"])
    def test_invalid(self, p4port):
        result = resolve_p4port_to_ip(p4port)
        assert result.error
        assert result.ip is None

    @patch("p4connect.network.run")
    def test_ip_skips_lookup(self, mock_run):
        result = resolve_p4port_to_ip("ssl:10.0.0.5:1666")
        assert (result.host, result.port, result.ip) == ("10.0.0.5", 1666, "10.0.0.5")
        mock_run.assert_not_called()

    @patch("p4connect.network.run")
    def test_hostname(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=0, stdout=NSLOOKUP)
        result = resolve_p4port_to_ip("ssl:p4.example.com:1666")
        assert result.host == "p4.example.com"
        assert result.port == 1666
        assert result.ip == "10.0.0.5"
        assert result.error is None
        assert mock_run.call_args[0][0] == "nslookup p4.example.com"

    @patch("p4connect.network.run")
    def test_bare_host(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=0, stdout=NSLOOKUP)
        assert resolve_p4port_to_ip("p4.example.com:1666").ip == "10.0.0.5"

    @patch("p4connect.network.run")
    def test_unresolved(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=0, stdout=("Server:\t127.0.0.53",))
        result = resolve_p4port_to_ip("tcp:p4.example.com:1666")
        assert result.ip is None
        assert result.error is None

    @patch("p4connect.network.run")
    def test_lookup_failure(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=1, stderr=("** server can't find p4",))
        with pytest.raises(CommandError):
            resolve_p4port_to_ip("ssl:p4.example.com:1666")


class TestTryResolveTicket:
    TICKETS = (
        "10.0.0.5:1666 (alice) AAAA",
        "10.0.0.5:1666 (bob) BBBB",
        "10.0.0.6:1666 (bob) CCCC",
    )

    @patch("p4connect.network.run")
    def test_found(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=0, stdout=self.TICKETS)
        assert try_resolve_ticket("bob", "10.0.0.5", 1666) == "BBBB"
        assert try_resolve_ticket("bob", "10.0.0.6", 1666) == "CCCC"

    @patch("p4connect.network.run")
    def test_missing(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=0, stdout=self.TICKETS)
        assert try_resolve_ticket("bob", "10.0.0.5", 1667) is None
        assert try_resolve_ticket("carol", "10.0.0.5", 1666) is None

    @patch("p4connect.network.run")
    def test_failure(self, mock_run):
        mock_run.return_value = ShellResult(exit_code=1, stderr=("nope",))
        with pytest.raises(CommandError):
            try_resolve_ticket("bob", "10.0.0.5", 1666)
