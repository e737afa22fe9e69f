"""Local lookups around a p4 connection: install check, trust, tickets, DNS."""

from __future__ import annotations

import logging
import re
import shutil

from p4connect.client import check_result
from p4connect.exceptions import CommandError
from p4connect.models import PortResolveResult
from p4connect.parsers import find
from p4connect.shell import DEFAULT_TIMEOUT, quote, run

logger = logging.getLogger("p4connect.network")

_NOT_INSTALLED = (
    "is not recognized as an internal or external command",
    "'p4' not found",
    "p4: not found",
    "p4: command not found",
)

_P4PORT = re.compile(r"^(?:(?:ssl|tcp)[46]*:)?(.+):(\d+)$", re.IGNORECASE)
_IPV4 = re.compile(r"^((25[0-5]|(2[0-4]|1\d|[1-9]|)\d)\.?\b){4}$")
# p4 tickets: "10.0.0.5:1666 (bob) 0123456789ABCDEF"
_TICKET_LINE = re.compile(r"^(.*):(\d+) \((.*)\) (.*)$")


def is_p4_installed_locally(timeout: float = DEFAULT_TIMEOUT) -> bool:
    """Return True if ``p4`` can be run from the local shell."""
    if shutil.which("p4") is None:
        return False

    # p4 set may complain about an unreachable server; only a missing binary counts
    result = run("p4 set", timeout=timeout)
    stderr = "\n".join(result.stderr)
    return not any(marker in stderr for marker in _NOT_INSTALLED)


def try_resolve_trust(ip: str, port: int, timeout: float = DEFAULT_TIMEOUT) -> str | None:
    """Find the trusted fingerprint stored locally for ``ip:port``.

    Returns:
        The fingerprint, or None if the server is not in ``p4 trust -l``.

    Raises:
        CommandError: If ``p4 trust -l`` fails.
    """
    command = "p4 trust -l"
    result = run(command, timeout=timeout)
    # p4 trust -l can write to stderr next to a valid listing
    check_result(command, result, tolerate_stderr=True)

    prefix = f"{ip}:{port}"
    for line in result.stdout:
        if line.startswith(prefix):
            return find(line, r".* (.*)")
    return None


def _is_ip(host: str) -> bool:
    return _IPV4.match(host) is not None


def _nslookup(host: str, timeout: float) -> str | None:
    """Resolve ``host`` with nslookup; the Address line after a matching Name line."""
    command = f"nslookup {quote(host)}"
    result = run(command, timeout=timeout)
    if result.exit_code != 0:
        raise CommandError(command, result.exit_code, result.stderr)

    ip = None
    lines = result.stdout
    for i, line in enumerate(lines[:-1]):
        name = find(line, r"Name:(.*)", re.IGNORECASE).strip()
        if name.lower() == host.lower():
            ip = find(lines[i + 1], r"Address:(.*)", re.IGNORECASE).strip()
    return ip or None


def resolve_p4port_to_ip(p4port: str, timeout: float = DEFAULT_TIMEOUT) -> PortResolveResult:
    """Split a P4PORT (``ssl:host:port``) and resolve its host to an IP.

    P4PORT may already hold an IP, in which case no lookup runs. An invalid
    string yields a result with ``error`` set rather than raising.

    Raises:
        CommandError: If nslookup itself fails.
    """
    match = _P4PORT.match(p4port.strip())
    if not match:
        return PortResolveResult(error=f"p4port string {p4port} appears to be invalid.")

    host = match.group(1)
    port = int(match.group(2))

    if _is_ip(host):
        return PortResolveResult(host=host, port=port, ip=host)

    ip = _nslookup(host, timeout)
    if ip is None:
        logger.warning("Could not resolve %s to an IP", host)
    return PortResolveResult(host=host, port=port, ip=ip)


def try_resolve_ticket(user: str, ip: str, port: int, timeout: float = DEFAULT_TIMEOUT) -> str | None:
    """Find a ticket in the local ticket store for ``user`` on ``ip:port``.

    Raises:
        CommandError: If ``p4 tickets`` exits non-zero.
    """
    command = "p4 tickets"
    result = run(command, timeout=timeout)
    if result.exit_code != 0:
        raise CommandError(command, result.exit_code, result.stderr)

    for line in result.stdout:
        match = _TICKET_LINE.match(line)
        if not match:
            continue
        lookup_host, lookup_port, lookup_user, ticket = match.groups()
        if lookup_host == ip and lookup_port == str(port) and lookup_user == user:
            return ticket
    return None
