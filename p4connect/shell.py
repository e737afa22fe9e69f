"""Run shell command lines and capture their output.

Commands are passed to the platform shell (``/bin/sh`` on POSIX, ``cmd.exe``
on Windows) because p4 logins chain several p4 calls with ``&&``.

On POSIX each command runs in its own session, so a timeout kills the shell
and every p4 it started. On Windows only the shell itself is killed; p4
children of a compound command may outlive the timeout.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import signal
import subprocess
from typing import Iterable

from p4connect.exceptions import CommandTimeoutError
from p4connect.models import ShellResult

logger = logging.getLogger("p4connect.shell")

DEFAULT_TIMEOUT = 50.0  # seconds

_MASK = "********"
_CMD_SPECIAL = re.compile(r'[&|<>^()%!]')


def _quote_cmd(value: str) -> str:
    """Quote for cmd.exe: list2cmdline, then ``^``-escape metacharacters outside quotes."""
    quoted = subprocess.list2cmdline([value])
    out = []
    in_quotes = False
    for char in quoted:
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes and _CMD_SPECIAL.match(char):
            out.append("^")
        out.append(char)
    return "".join(out)


def quote(value: str) -> str:
    """Quote a value for safe embedding in a command line for this platform's shell."""
    if os.name == "nt":
        return _quote_cmd(value)
    return shlex.quote(value)


def mask(command: str, secrets: Iterable[str]) -> str:
    """Return the command with every non-empty secret replaced."""
    for secret in secrets:
        if secret:
            command = command.replace(secret, _MASK)
    return command


def _kill(process: subprocess.Popen) -> None:
    if os.name == "nt":
        process.kill()
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass  # already exited


def run(
    command: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    secrets: Iterable[str] = (),
    input: str | None = None,
) -> ShellResult:
    """Run a command line and return exit code, stdout and stderr lines.

    Args:
        command: Full command line, already quoted.
        timeout: Seconds to wait before giving up.
        secrets: Values to hide when the command is logged.
        input: Text written to the command's stdin. Without it stdin is
            empty, so p4 never waits for a prompt.

    Returns:
        ShellResult with stdout and stderr kept apart, line order preserved.

    Raises:
        CommandTimeoutError: If the command runs longer than ``timeout``.
    """
    secrets = tuple(secrets)
    logger.debug("Running: %s", mask(command, secrets))

    with subprocess.Popen(
        command,
        shell=True,
        stdin=subprocess.DEVNULL if input is None else subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        start_new_session=os.name != "nt",
    ) as process:
        try:
            out, err = process.communicate(input, timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill(process)
            process.communicate()
            raise CommandTimeoutError(mask(command, secrets), timeout) from None

    stdout = tuple(out.splitlines()) if out else ()
    stderr = tuple(err.splitlines()) if err else ()

    logger.debug(
        "Exit code %d (%d stdout lines, %d stderr lines)",
        process.returncode,
        len(stdout),
        len(stderr),
    )
    return ShellResult(exit_code=process.returncode, stdout=stdout, stderr=stderr)
