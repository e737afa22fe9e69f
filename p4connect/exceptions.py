"""Exception hierarchy for p4connect."""

from __future__ import annotations

from typing import Sequence


class P4Error(Exception):
    """Base exception for all p4connect errors."""


class AuthenticationError(P4Error):
    """Login or trust establishment failed."""

    def __init__(self, exit_code: int, stderr: Sequence[str]):
        self.exit_code = exit_code
        self.stderr = "\n".join(stderr)
        super().__init__(f"Failed to login, got code {exit_code} - {self.stderr}")


class TicketNotFoundError(P4Error):
    """Login succeeded but no ticket line for the user was listed."""

    def __init__(self, user: str, output: Sequence[str]):
        self.user = user
        self.output = "\n".join(output)
        super().__init__(
            f"Failed to get ticket for user {user} - {self.output}. "
            "If trust is already established, retry the login."
        )


class CommandError(P4Error):
    """A p4 command exited non-zero or wrote to stderr."""

    def __init__(self, command: str, exit_code: int, stderr: Sequence[str]):
        self.command = command
        self.exit_code = exit_code
        self.stderr = "\n".join(stderr)
        super().__init__(
            f"P4 command {command} exited with code {exit_code}, error : {self.stderr}"
        )


class CommandTimeoutError(P4Error, TimeoutError):
    """A command did not finish within the allowed time."""

    def __init__(self, command: str, timeout: float):
        self.command = command
        self.timeout = timeout
        super().__init__(f"Timed out on command : {command} after {timeout}s")


class InvalidRevisionError(P4Error):
    """Describe output has no usable change header.

    p4 does not always exit non-zero for an unknown revision, so the header
    is the only reliable check.
    """

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"P4 describe failed, got invalid content {raw[:500]!r}.")


class EncodingError(P4Error):
    """p4 could not translate a parameter into the server charset.

    The message is fixed; callers match on it.
    """

    MESSAGE = "Invalid revision encoding"

    def __init__(self, command: str = ""):
        self.command = command
        super().__init__(self.MESSAGE)
