"""Unit tests for command execution helpers."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from p4connect.exceptions import CommandTimeoutError, P4Error
from p4connect.shell import mask, quote, run


def _process(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    process = MagicMock()
    process.pid = 4242
    process.returncode = returncode
    process.communicate.return_value = (stdout, stderr)
    return process


def _popen(mock_popen: MagicMock, process: MagicMock) -> None:
    mock_popen.return_value.__enter__.return_value = process


class TestQuote:
    @patch("p4connect.shell.os.name", "posix")
    def test_posix_plain(self):
        assert quote("//depot/...") == "//depot/..."

    @patch("p4connect.shell.os.name", "posix")
    def test_posix_spaces(self):
        assert quote("//depot/with space/...") == "'//depot/with space/...'"

    @patch("p4connect.shell.os.name", "nt")
    def test_windows_spaces(self):
        assert quote("//depot/with space/...") == '"//depot/with space/..."'

    @patch("p4connect.shell.os.name", "nt")
    def test_windows_metacharacters(self):
        assert quote("p&ss|x^y") == "p^&ss^|x^^y"
        assert quote("a>b<c") == "a^>b^<c"

    @patch("p4connect.shell.os.name", "nt")
    def test_windows_metacharacters_inside_quotes_untouched(self):
        assert quote("a b&c") == '"a b&c"'


class TestMask:
    def test_replaces_secrets(self):
        assert mask("p4 -P TICKET login", ["TICKET"]) == "p4 -P ******** login"

    def test_empty_secret_ignored(self):
        assert mask("p4 info", ["", "nothere"]) == "p4 info"


class TestRun:
    @patch("p4connect.shell.subprocess.Popen")
    def test_splits_output(self, mock_popen):
        _popen(mock_popen, _process(0, "line1\nline2\r\n", "warn\n"))
        result = run("p4 info")
        assert result.exit_code == 0
        assert result.stdout == ("line1", "line2")
        assert result.stderr == ("warn",)

    @patch("p4connect.shell.subprocess.Popen")
    def test_empty_output(self, mock_popen):
        _popen(mock_popen, _process(3))
        result = run("p4 info")
        assert result.exit_code == 3
        assert result.stdout == ()
        assert result.stderr == ()

    @patch("p4connect.shell.subprocess.Popen")
    def test_subprocess_args(self, mock_popen):
        process = _process()
        _popen(mock_popen, process)
        run("p4 info", timeout=12.5)

        args, kwargs = mock_popen.call_args
        assert args == ("p4 info",)
        assert kwargs["shell"] is True
        assert kwargs["stdin"] is subprocess.DEVNULL
        assert kwargs["stdout"] is subprocess.PIPE
        assert kwargs["stderr"] is subprocess.PIPE
        process.communicate.assert_called_once_with(None, timeout=12.5)

    @pytest.mark.skipif(os.name == "nt", reason="sessions are POSIX only")
    @patch("p4connect.shell.subprocess.Popen")
    def test_own_session(self, mock_popen):
        _popen(mock_popen, _process())
        run("p4 info")
        assert mock_popen.call_args[1]["start_new_session"] is True

    @patch("p4connect.shell.subprocess.Popen")
    def test_input_written_to_stdin(self, mock_popen):
        process = _process()
        _popen(mock_popen, process)
        run("p4 login", input="-n\n")
        assert mock_popen.call_args[1]["stdin"] is subprocess.PIPE
        process.communicate.assert_called_once_with("-n\n", timeout=50.0)

    @pytest.mark.skipif(os.name == "nt", reason="process groups are POSIX only")
    @patch("p4connect.shell.os.killpg")
    @patch("p4connect.shell.subprocess.Popen")
    def test_timeout_kills_process_group(self, mock_popen, mock_killpg):
        process = _process()
        process.communicate.side_effect = [
            subprocess.TimeoutExpired("p4 -P SECRET info", 1.0),
            ("", ""),
        ]
        _popen(mock_popen, process)

        with pytest.raises(CommandTimeoutError) as exc:
            run("p4 -P SECRET info", timeout=1.0, secrets=["SECRET"])

        mock_killpg.assert_called_once_with(4242, signal.SIGKILL)
        assert process.communicate.call_count == 2
        assert exc.value.timeout == 1.0
        assert exc.value.command == "p4 -P ******** info"
        assert isinstance(exc.value, P4Error)
        assert isinstance(exc.value, TimeoutError)

    @pytest.mark.skipif(os.name == "nt", reason="process groups are POSIX only")
    @patch("p4connect.shell.os.killpg", side_effect=ProcessLookupError)
    @patch("p4connect.shell.subprocess.Popen")
    def test_timeout_after_exit(self, mock_popen, mock_killpg):
        process = _process()
        process.communicate.side_effect = [subprocess.TimeoutExpired("p4", 1.0), ("", "")]
        _popen(mock_popen, process)
        with pytest.raises(CommandTimeoutError):
            run("p4", timeout=1.0)

    @patch("p4connect.shell.subprocess.Popen")
    def test_secrets_not_logged(self, mock_popen, caplog):
        _popen(mock_popen, _process())
        with caplog.at_level(logging.DEBUG, logger="p4connect.shell"):
            run("p4 -P hunter2 info", secrets=["hunter2"])
        assert "hunter2" not in caplog.text
        assert "********" in caplog.text
