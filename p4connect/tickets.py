"""In-memory cache of p4 session tickets.

A ticket is fetched once per (user, host) and then assumed valid for the
lifetime of the cache. If the server revokes it, later queries fail at the
server; nothing here re-validates or refreshes. Callers that need that must
build it on top of the cache.
"""

from __future__ import annotations

import logging
import threading

from p4connect.exceptions import AuthenticationError, TicketNotFoundError
from p4connect.models import ShellResult
from p4connect.shell import DEFAULT_TIMEOUT, quote, run

logger = logging.getLogger("p4connect.tickets")

# p4 reports an existing trust as a soft error on the combined login command
TRUST_ALREADY_ESTABLISHED = "already established"


def build_login_command(user: str, host: str, trust_fingerprint: str = "") -> str:
    """Build the login command line: optional trust, login, then ticket list.

    The password is not part of the command; ``p4 login`` reads it from stdin.
    """
    p4 = f"p4 -p {quote(host)}"
    command = f"{p4} -u {quote(user)} login && {p4} tickets"
    if trust_fingerprint:
        command = (
            f"{p4} trust -i {quote(trust_fingerprint.upper())} && "
            f"{p4} trust -f -y && {command}"
        )
    return command


def find_ticket(user: str, lines: tuple[str, ...] | list[str]) -> str | None:
    """Return the ticket from the first ``p4 tickets`` line naming ``(user)``."""
    marker = f"({user})"
    for line in lines:
        if marker not in line:
            continue
        tokens = line.split()
        if len(tokens) >= 3:
            return tokens[2]
    return None


class TicketCache:
    """Thread-safe map of (user, host) to session ticket.

    Usage::

        cache = TicketCache()
        ticket = cache.get_ticket("bob", "secret", "ssl:p4:1666", "AB:CD:...")
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout
        self._tickets: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def seed(self, user: str, host: str, ticket: str) -> None:
        """Store a ticket obtained elsewhere; it bypasses login from now on."""
        with self._lock:
            self._tickets[(user, host)] = ticket

    def __contains__(self, key: tuple[str, str]) -> bool:
        with self._lock:
            return key in self._tickets

    def get_ticket(self, user: str, password: str, host: str, trust_fingerprint: str = "") -> str:
        """Return a cached ticket, logging in first if there is none.

        Args:
            user: p4 user name.
            password: Plain-text password written to ``p4 login``'s stdin.
            host: P4PORT of the server, e.g. ``ssl:p4.example.com:1666``.
            trust_fingerprint: Server fingerprint to trust before login, if any.

        Returns:
            The session ticket.

        Raises:
            AuthenticationError: If login exits non-zero or writes to stderr.
            TicketNotFoundError: If login succeeded but no ticket was listed.
        """
        key = (user, host)
        with self._lock:
            ticket = self._tickets.get(key)
            if ticket is not None:
                return ticket

            ticket = self._login(user, password, host, trust_fingerprint)
            self._tickets[key] = ticket
            return ticket

    def _login(self, user: str, password: str, host: str, trust_fingerprint: str) -> str:
        command = build_login_command(user, host, trust_fingerprint)
        logger.info("Logging in to %s as %s", host, user)

        result = self._run(command, password)
        if TRUST_ALREADY_ESTABLISHED in "\n".join(result.stdout).lower():
            logger.warning("Trust for %s already established, retrying login", host)
            result = self._run(command, password)

        if result.exit_code != 0 or result.stderr:
            raise AuthenticationError(result.exit_code, result.stderr)

        ticket = find_ticket(user, result.stdout)
        if ticket is None:
            raise TicketNotFoundError(user, (*result.stderr, *result.stdout))

        logger.info("Got ticket for %s on %s", user, host)
        return ticket

    def _run(self, command: str, password: str) -> ShellResult:
        return run(command, timeout=self._timeout, secrets=(password,), input=f"{password}\n")
