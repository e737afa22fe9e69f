"""Integration tests for running real shell commands.

These use only the POSIX shell, not p4, so they run anywhere with ``sh``.
"""

from __future__ import annotations

import os
import time

import pytest

from p4connect.exceptions import CommandTimeoutError
from p4connect.shell import quote, run

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(os.name == "nt", reason="needs a POSIX shell"),
]


class TestRealShell:
    def test_stdout_lines(self):
        result = run("printf 'one\\ntwo\\n'")
        assert result.exit_code == 0
        assert result.stdout == ("one", "two")
        assert result.stderr == ()

    def test_exit_code_and_stderr(self):
        result = run("echo out; echo err 1>&2; exit 3")
        assert result.exit_code == 3
        assert result.stdout == ("out",)
        assert result.stderr == ("err",)

    def test_quoted_argument(self):
        result = run(f"echo {quote('a b;c')}")
        assert result.stdout == ("a b;c",)

    def test_pipe(self):
        result = run("echo secret|cat", secrets=["secret"])
        assert result.stdout == ("secret",)

    def test_timeout(self):
        with pytest.raises(CommandTimeoutError) as exc:
            run("sleep 2", timeout=0.2)
        assert exc.value.command == "sleep 2"

    @pytest.mark.parametrize("password", ["-n", "a\\tb", "p&ss|x", "pa ss"])
    def test_input_reaches_stdin_unchanged(self, password):
        result = run("cat", input=f"{password}\n")
        assert result.stdout == (password,)

    def test_timeout_kills_children(self):
        started = time.monotonic()
        with pytest.raises(CommandTimeoutError):
            run("sleep 3 && echo late; echo done", timeout=0.2)
        assert time.monotonic() - started < 2.0
