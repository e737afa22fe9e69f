"""Data models for parsed p4 output."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AnnotateChange(str, Enum):
    """Change kind reported in the header of ``p4 annotate`` output."""

    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"


@dataclass(frozen=True)
class ClientView:
    """One line of a client spec View: depot path mapped to workspace path."""

    remote: str
    local: str


@dataclass(frozen=True)
class Client:
    """A client workspace spec.

    Views are kept in spec order. When two views overlap, the earlier one
    wins, so consumers must apply them first-match.
    """

    name: str = ""
    root: str = ""
    views: tuple[ClientView, ...] = ()
    owner: str = ""
    host: str = ""
    stream: str = ""


@dataclass(frozen=True)
class AnnotateLine:
    """A single annotated line.

    ``line_number`` is the position in the blank-filtered annotate output
    (header at 0), not the line number in the source file.
    """

    revision: str
    text: str = ""
    line_number: int = 0


@dataclass(frozen=True)
class Annotate:
    """Per-line authorship for one file."""

    file: str = ""
    revision: str = ""
    change: AnnotateChange | None = None
    lines: tuple[AnnotateLine, ...] = ()


@dataclass(frozen=True)
class ChangeFile:
    """A file touched by a changelist."""

    path: str
    action: str  # add, edit, delete, integrate
    differences: tuple[str, ...] = ()
    annotate: Annotate | None = None


@dataclass(frozen=True)
class Change:
    """A changelist (revision, commit) in Perforce terms."""

    revision: str
    user: str = ""
    workspace: str = ""
    date: datetime | None = None
    description: str = ""
    files: tuple[ChangeFile, ...] = ()
    file_count: int = 0

    def __str__(self) -> str:
        return (
            f"Change {self.revision} by {self.user}@{self.workspace} "
            f"on {self.date}: {self.description}"
        )


@dataclass(frozen=True)
class ShellResult:
    """Result of a shell command.

    p4 reports warnings and even plain info on stderr, so a zero exit code
    alone does not mean success.
    """

    exit_code: int
    stdout: tuple[str, ...] = ()
    stderr: tuple[str, ...] = ()


@dataclass(frozen=True)
class PortResolveResult:
    """A P4PORT string split into host and port, with the host's IP if known."""

    host: str = ""
    port: int = 0
    ip: str | None = None
    error: str | None = None
