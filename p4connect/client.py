"""Python wrapper around the p4 command-line client.

Every query logs in through the ticket cache, shells out to ``p4`` with the
ticket, and returns p4's raw text. The ``get_raw_*`` methods stop there so
callers can store or re-parse output; the plain-named methods (``describe``,
``client``, ...) also run the matching parser from :mod:`p4connect.parsers`.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from p4connect.config import P4Config, get_config
from p4connect.exceptions import CommandError, EncodingError
from p4connect.models import Annotate, Change, Client, ShellResult
from p4connect.parsers import (
    parse_annotate,
    parse_change_numbers,
    parse_changes,
    parse_client,
    parse_client_names,
    parse_describe,
)
from p4connect.shell import DEFAULT_TIMEOUT, mask, quote, run
from p4connect.tickets import TicketCache

logger = logging.getLogger("p4connect.client")

NO_SUCH_CHANGELIST = "no such changelist"
NO_TRANSLATION = "No Translation for parameter 'data'"
TRUST_PROBLEM = "'p4 trust' command"
TRUST_HINT = (
    "p4 reports a trust problem with %s. Pass the server fingerprint "
    "(see 'p4 trust -l') or run 'p4 trust -y' for this server."
)

DEFAULT_PATH = "//..."


def _failed(result: ShellResult, tolerate_stderr: bool) -> bool:
    if result.exit_code != 0:
        return True
    if result.stderr and not (tolerate_stderr and result.stdout):
        return True
    return False


def check_result(
    command: str,
    result: ShellResult,
    *,
    port: str = "",
    tolerate_stderr: bool = False,
    allow_not_found: bool = False,
) -> bool:
    """Classify a p4 result.

    p4 writes informational messages to stderr too, so by default any stderr
    counts as failure. ``tolerate_stderr`` accepts stderr alongside non-empty
    stdout, which ``p4 changes`` with a range and ``p4 trust -l`` both emit.

    Args:
        command: Command line that was run, already masked.
        result: Its result.
        port: Server address, for the trust hint.
        tolerate_stderr: Accept stderr when stdout is non-empty.
        allow_not_found: Report "no such changelist" as not found.

    Returns:
        True on success, False if the changelist does not exist.

    Raises:
        EncodingError: If p4 could not translate a parameter.
        CommandError: For every other failure.
    """
    if not _failed(result, tolerate_stderr):
        return True

    stderr = "\n".join(result.stderr)
    if allow_not_found and NO_SUCH_CHANGELIST in stderr:
        return False

    if NO_TRANSLATION in stderr:
        raise EncodingError(command)

    if TRUST_PROBLEM in stderr:
        logger.warning(TRUST_HINT, port or "the server")

    raise CommandError(command, result.exit_code, result.stderr)


class P4Client:
    """Query a Perforce server through the local ``p4`` executable.

    Usage::

        p4 = P4Client("bob", "secret", "ssl:p4.example.com:1666", "AB:CD:...")
        change = p4.describe("1234")
        for f in change.files:
            print(f.action, f.path)
    """

    def __init__(
        self,
        user: str,
        secret: str,
        port: str,
        fingerprint: str = "",
        secret_is_password: bool = True,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Create a client.

        Args:
            user: p4 user name.
            secret: Password, or a ready session ticket when
                ``secret_is_password`` is False.
            port: Server address, normally like ``ssl:p4.example.com:1666``.
            fingerprint: Server trust fingerprint (``p4 trust -l``).
            secret_is_password: Whether ``secret`` needs a login first.
            timeout: Seconds each p4 call may take.
        """
        self._user = user
        self._secret = secret
        self._port = port
        self._fingerprint = fingerprint
        self._timeout = timeout
        self._tickets = TicketCache(timeout=timeout)

        # a ready ticket goes straight into the cache and login is never run
        if not secret_is_password:
            self._tickets.seed(user, port, secret)

    @classmethod
    def from_config(cls, config: P4Config | None = None) -> P4Client:
        """Build a client from a P4Config (environment by default)."""
        if config is None:
            config = get_config()
        return cls(
            config.user,
            config.secret,
            config.port,
            config.fingerprint,
            config.secret_is_password,
            timeout=config.timeout,
        )

    @property
    def user(self) -> str:
        return self._user

    @property
    def port(self) -> str:
        return self._port

    # -------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------

    def _ticket(self) -> str:
        return self._tickets.get_ticket(self._user, self._secret, self._port, self._fingerprint)

    def _command(self, ticket: str, *args: str) -> str:
        return " ".join(
            ["p4", "-u", quote(self._user), "-p", quote(self._port), "-P", quote(ticket), *args]
        )

    def _run(
        self,
        *args: str,
        tolerate_stderr: bool = False,
        allow_not_found: bool = False,
    ) -> ShellResult | None:
        """Run an authenticated p4 command; ``None`` if the changelist is unknown."""
        ticket = self._ticket()
        command = self._command(ticket, *args)
        secrets = (ticket, self._secret)

        result = run(command, timeout=self._timeout, secrets=secrets)
        ok = check_result(
            mask(command, secrets),
            result,
            port=self._port,
            tolerate_stderr=tolerate_stderr,
            allow_not_found=allow_not_found,
        )
        return result if ok else None

    # -------------------------------------------------------------------
    # Raw queries
    # -------------------------------------------------------------------

    def verify_credentials(self) -> None:
        """Log in (or reuse the cached ticket); raises if credentials are bad."""
        self._ticket()

    def get_raw_describe(self, revision: str | int, diffs: bool = False) -> str | None:
        """Get ``p4 describe`` output for a changelist.

        Args:
            revision: Changelist number.
            diffs: Include unified diffs; otherwise ``-s`` suppresses them.

        Returns:
            Describe text, or None if the changelist does not exist.
        """
        flag = "-du" if diffs else "-s"
        result = self._run("describe", flag, quote(str(revision)), allow_not_found=True)
        if result is None:
            logger.debug("Changelist %s not found", revision)
            return None
        return "\n".join(result.stdout)

    def get_raw_client(self, client_name: str) -> str:
        """Get the ``p4 client -o`` spec for a workspace."""
        result = self._run("client", "-o", quote(client_name))
        return "\n".join(result.stdout)

    def get_clients_for_user_and_host(self, user: str, host: str) -> list[str]:
        """Return names of the clients ``user`` owns whose Host is ``host``."""
        result = self._run("clients", "-u", quote(user))

        clients = []
        for name in parse_client_names(result.stdout):
            if parse_client(self.get_raw_client(name)).host == host:
                clients.append(name)
        return clients

    def get_raw_annotate(self, file_path: str, revision: str | int | None = None) -> list[str]:
        """Get ``p4 annotate -c`` output for a file, optionally at a changelist."""
        target = file_path if revision is None else f"{file_path}@{revision}"
        result = self._run("annotate", "-c", quote(target))
        return list(result.stdout)

    def get_raw_changes(
        self,
        shelves: bool = False,
        limit: int = 0,
        path: str = DEFAULT_PATH,
    ) -> list[str]:
        """Get ``p4 changes -l`` output, newest first.

        Args:
            shelves: List shelved changes instead of submitted ones.
            limit: Maximum number of changes; 0 for all.
            path: Depot path filter.
        """
        args = ["changes"]
        if limit > 0:
            args.extend(["-m", str(limit)])
        if shelves:
            args.extend(["-s", "shelved"])
        args.extend(["-l", quote(path)])

        result = self._run(*args)
        return list(result.stdout)

    def get_raw_change(self, change_number: str | int) -> list[str] | None:
        """Get the ``p4 change -o`` spec of a changelist, or None if unknown."""
        result = self._run("change", "-o", quote(str(change_number)), allow_not_found=True)
        if result is None:
            return None
        return list(result.stdout)

    def get_raw_changes_between(
        self,
        start_revision: str | int,
        end_revision: str | int,
        path: str = DEFAULT_PATH,
    ) -> list[str]:
        """Return the change numbers strictly between two changelists.

        ``p4 changes`` treats the range as inclusive; both boundaries are
        dropped from the result.
        """
        result = self._run(
            "changes",
            quote(f"{path}@{start_revision},@{end_revision}"),
            tolerate_stderr=True,
        )

        boundaries = {str(start_revision), str(end_revision)}
        return [r for r in parse_change_numbers(result.stdout) if r not in boundaries]

    # -------------------------------------------------------------------
    # Parsed queries
    # -------------------------------------------------------------------

    def describe(
        self,
        revision: str | int,
        *,
        diffs: bool = False,
        annotate: bool = False,
    ) -> Change | None:
        """Describe a changelist; None if it does not exist.

        Args:
            revision: Changelist number.
            diffs: Attach per-file diff paragraphs.
            annotate: Attach an annotation of each non-deleted file as of
                this changelist. Costs one p4 call per file.
        """
        raw = self.get_raw_describe(revision, diffs=diffs)
        if raw is None:
            return None

        change = parse_describe(raw, parse_differences=diffs)
        if not annotate:
            return change

        files = tuple(
            f if f.action.lower() == "delete"
            else replace(f, annotate=self.annotate(f.path, change.revision))
            for f in change.files
        )
        return replace(change, files=files)

    def client(self, client_name: str) -> Client:
        """Get a parsed client spec."""
        return parse_client(self.get_raw_client(client_name))

    def annotate(self, file_path: str, revision: str | int | None = None) -> Annotate:
        """Get a parsed annotation of a file."""
        return parse_annotate(self.get_raw_annotate(file_path, revision))

    def changes(
        self,
        shelves: bool = False,
        limit: int = 0,
        path: str = DEFAULT_PATH,
    ) -> list[Change]:
        """Get changelist summaries (no file details)."""
        return parse_changes(self.get_raw_changes(shelves=shelves, limit=limit, path=path))

    def changes_between(
        self,
        start_revision: str | int,
        end_revision: str | int,
        path: str = DEFAULT_PATH,
    ) -> list[Change]:
        """Describe every changelist strictly between two changelists."""
        changes = []
        for revision in self.get_raw_changes_between(start_revision, end_revision, path):
            change = self.describe(revision)
            if change is not None:
                changes.append(change)
        return changes
