"""Parsers for p4 text output.

Everything here is a pure function over text captured from p4. p4's output
is loosely structured and shifts between platforms and server versions, so
each rule has an explicit fallback: single-line fields default to ``""``,
lines that do not fit a record's shape are skipped, and only
:func:`parse_describe` treats missing data as an error.
"""

from __future__ import annotations

import re
import shlex
from datetime import datetime
from typing import Iterable

from dateutil import parser as dateutil_parser

from p4connect.exceptions import InvalidRevisionError
from p4connect.models import (
    Annotate,
    AnnotateChange,
    AnnotateLine,
    Change,
    ChangeFile,
    Client,
    ClientView,
)

PENDING_MARKER = "*pending*"
# "2024/01/02" or "2024/01/02 10:00[:00]"; partial dates are rejected
_P4_DATE = re.compile(r"^\d{4}/\d{2}/\d{2}(?: \d{2}:\d{2}(?::\d{2})?)?$")
AFFECTED_FILES_MARKER = "Affected files ..."
DIFFERENCES_MARKER = "Differences ..."

# describe: "Change 1234 by bob@bob-ws on 2024/01/02 10:00:00 *pending*"
_DESCRIBE_HEADER = re.compile(
    r"^change (\d+) by (.+?)@(\S+) on (.*?)[ \t]*$", re.IGNORECASE | re.MULTILINE
)
# describe: "... //depot/path/file.txt#3 edit"
_AFFECTED_FILE = re.compile(r"^\.\.\. (.*)#\d+ (delete|add|edit|integrate)$", re.IGNORECASE)
# describe: "==== //depot/path/file.txt#3 (text) ===="
_DIFF_HEADER = re.compile(r"^==== (.*?)#\d+ .*====[ \t]*$", re.MULTILINE)

# changes: "Change 1234 on 2024/01/02 10:00:00 by bob@bob-ws *pending* 'Fix it'"
_CHANGES_REVISION = re.compile(r"^change (\d+) ", re.IGNORECASE)
_CHANGES_DATE = re.compile(r"^change \d+ on (.*?) by ", re.IGNORECASE)
_CHANGES_USER = re.compile(r"^change \d+ on .+? by (.*?)@", re.IGNORECASE)
_CHANGES_WORKSPACE = re.compile(r"^change \d+ on .+? by .+?@(\S+)", re.IGNORECASE)

# clients: "Client bob-ws 2020/04/12 root D:\ws 'Created by bob. '"
_CLIENT_NAME = re.compile(r"^Client (\S+) \d", re.IGNORECASE)
_VIEW_MARKER = re.compile(r"^View:[ \t]*$", re.IGNORECASE | re.MULTILINE)
_SPEC_FIELD_LINE = re.compile(r"^[A-Za-z]\w*:")

# annotate header: "//depot/file.txt - edit change 42 (text)"
_ANNOTATE_FILE = re.compile(r"^(.*?) -")
_ANNOTATE_REVISION = re.compile(r" change (\S+)")
_ANNOTATE_KIND = re.compile(r" - (.*?) change ")
# annotate data: "42: line text"
_ANNOTATE_LINE = re.compile(r"^([^\s:]+):(?: (.*))?$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def standardize_line_endings(text: str) -> str:
    """Convert Windows line endings to Unix."""
    return text.replace("\r\n", "\n")


def find(text: str, pattern: str | re.Pattern[str], flags: int = 0, default: str = "") -> str:
    """Return group 1 of the first match of ``pattern`` in ``text``, else ``default``."""
    if isinstance(pattern, str):
        pattern = re.compile(pattern, flags)
    match = pattern.search(text)
    if not match or match.group(1) is None:
        return default
    return match.group(1)


def parse_p4_date(raw: str) -> datetime:
    """Parse a p4 date such as ``2024/01/02 10:00:00``.

    Pending changelists carry a ``*pending*`` marker after the date; it is
    stripped before parsing.

    Raises:
        ValueError: If the text is not a complete p4 date.
    """
    value = raw.replace(PENDING_MARKER, "").strip()
    if not value:
        raise ValueError("empty date")
    if not _P4_DATE.match(value):
        raise ValueError(f"not a p4 date: {value}")
    try:
        return dateutil_parser.parse(value, yearfirst=True)
    except OverflowError as e:
        raise ValueError(f"date out of range: {value}") from e


def _try_parse_date(raw: str) -> datetime | None:
    try:
        return parse_p4_date(raw)
    except ValueError:
        return None


def _marker_index(text: str, marker: str, start: int = 0) -> int:
    """Index of ``marker`` at the start of a line at or after ``start``, or -1."""
    match = re.compile(rf"^{re.escape(marker)}", re.MULTILINE).search(text, start)
    return match.start() if match else -1


# ---------------------------------------------------------------------------
# describe
# ---------------------------------------------------------------------------


def extract_description(raw: str, start: int = 0) -> str:
    """Collapse the description block that follows the change header.

    The block runs to ``Affected files ...`` (or ``Differences ...``, or the
    end of input). Lines are trimmed, blank lines dropped, and the rest joined
    with single spaces.
    """
    end = _marker_index(raw, AFFECTED_FILES_MARKER, start)
    if end < 0:
        end = _marker_index(raw, DIFFERENCES_MARKER, start)
    if end < 0:
        end = len(raw)

    lines = (line.strip() for line in raw[start:end].split("\n"))
    return " ".join(line for line in lines if line)


def extract_affected_files_block(raw: str) -> str:
    """Return the text between ``Affected files ...`` and ``Differences ...``.

    Without a differences section the block runs to the end of input. Plain
    slicing is used because the block can be arbitrarily long.
    """
    start = _marker_index(raw, AFFECTED_FILES_MARKER)
    if start < 0:
        return ""
    start += len(AFFECTED_FILES_MARKER)

    end = _marker_index(raw, DIFFERENCES_MARKER, start)
    if end < 0:
        end = len(raw)
    return raw[start:end]


def extract_differences_block(raw: str) -> str:
    """Return everything after ``Differences ...``, or ``""`` if absent."""
    start = _marker_index(raw, DIFFERENCES_MARKER)
    if start < 0:
        return ""
    return raw[start + len(DIFFERENCES_MARKER):]


def parse_affected_file(line: str) -> ChangeFile | None:
    """Parse one ``... //path#rev action`` line; ``None`` for any other line."""
    match = _AFFECTED_FILE.match(line.rstrip())
    if not match:
        return None
    return ChangeFile(path=match.group(1), action=match.group(2))


def split_differences(block: str) -> dict[str, tuple[str, ...]]:
    """Split a differences block into per-file diff paragraphs, keyed by depot path.

    Each file section starts with a ``==== //path#rev (type) ====`` line.
    Its body is split on blank lines. If a path appears twice the first
    section wins.
    """
    headers = list(_DIFF_HEADER.finditer(block))
    differences: dict[str, tuple[str, ...]] = {}

    for i, header in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(block)
        body = block[header.end():end]
        paragraphs = tuple(
            p.strip("\n") for p in body.split("\n\n") if p.strip()
        )
        differences.setdefault(header.group(1), paragraphs)

    return differences


def parse_describe(raw_describe: str, parse_differences: bool = True) -> Change:
    """Parse ``p4 describe`` output into a Change with its files.

    Args:
        raw_describe: Full describe output for one changelist.
        parse_differences: Attach per-file diff paragraphs when the output
            has a ``Differences ...`` section.

    Returns:
        The parsed Change.

    Raises:
        InvalidRevisionError: If the change header is missing or its date
            cannot be parsed.
    """
    raw = standardize_line_endings(raw_describe)

    header = _DESCRIBE_HEADER.search(raw)
    if not header:
        raise InvalidRevisionError(raw)

    revision, user, workspace, raw_date = header.groups()
    try:
        date = parse_p4_date(raw_date)
    except ValueError:
        raise InvalidRevisionError(raw) from None

    differences = split_differences(extract_differences_block(raw)) if parse_differences else {}

    files: list[ChangeFile] = []
    for line in extract_affected_files_block(raw).split("\n"):
        item = parse_affected_file(line)
        if item is None:
            continue
        if item.path in differences:
            item = ChangeFile(path=item.path, action=item.action, differences=differences[item.path])
        files.append(item)

    return Change(
        revision=revision,
        user=user,
        workspace=workspace,
        date=date,
        description=extract_description(raw, header.end()),
        files=tuple(files),
        file_count=len(files),
    )


# ---------------------------------------------------------------------------
# changes
# ---------------------------------------------------------------------------


def parse_change_numbers(lines: Iterable[str]) -> list[str]:
    """Return the change number of every ``Change `` line, in order."""
    numbers = []
    for line in lines:
        if not line.startswith("Change "):
            continue
        numbers.append(find(line, _CHANGES_REVISION))
    return numbers


def parse_changes(raw_changes: Iterable[str]) -> list[Change]:
    """Parse ``p4 changes -l`` output into Changes without file details.

    Every line starting with ``Change `` opens a record; any other line is
    description text for the current record. Tabs are treated as spaces and
    fragments are joined with single spaces. This is a summary scan: it never
    raises, and fields it cannot find are left empty.
    """
    records: list[tuple[str, list[str]]] = []

    for line in raw_changes:
        line = line.rstrip("\r")
        if line.startswith("Change "):
            records.append((line, []))
            continue
        if not records:
            continue
        fragment = line.replace("\t", " ").strip()
        if fragment:
            records[-1][1].append(fragment)

    return [
        Change(
            revision=find(header, _CHANGES_REVISION),
            user=find(header, _CHANGES_USER),
            workspace=find(header, _CHANGES_WORKSPACE),
            date=_try_parse_date(find(header, _CHANGES_DATE)),
            description=" ".join(fragments),
        )
        for header, fragments in records
    ]


# ---------------------------------------------------------------------------
# client
# ---------------------------------------------------------------------------


def _spec_field(text: str, name: str) -> str:
    return find(text, rf"^{name}:[ \t]*(.*?)[ \t]*$", re.IGNORECASE | re.MULTILINE)


def parse_view_line(line: str) -> ClientView:
    """Split a View line into depot and workspace paths.

    Paths containing spaces are double-quoted by p4.
    """
    if '"' in line:
        try:
            tokens = shlex.split(line)
        except ValueError:
            tokens = line.split(None, 1)
    else:
        tokens = line.split(None, 1)

    remote = tokens[0] if tokens else ""
    local = tokens[1].strip() if len(tokens) > 1 else ""
    return ClientView(remote=remote, local=local)


def parse_client(raw_client: str) -> Client:
    """Parse ``p4 client -o`` output.

    Expected input::

        Client: bob-ws
        Owner:  bob
        Host:   bobs-pc
        Root:   D:\\ws
        View:
                //depot/main/mydir/%%1 //bob-ws/%%1
                //depot/main/some/path/... //bob-ws/path/...

    The first view line remaps files in ``mydir`` to the workspace root even
    though a later, broader line would also match them.
    """
    raw = standardize_line_endings(raw_client)
    text = "\n".join(line for line in raw.split("\n") if not line.startswith("#"))

    views: list[ClientView] = []
    marker = _VIEW_MARKER.search(text)
    if marker:
        for line in text[marker.end():].split("\n"):
            # another top-level field ends the view block
            if _SPEC_FIELD_LINE.match(line):
                break
            line = line.strip()
            if not line:
                continue
            views.append(parse_view_line(line))

    return Client(
        name=_spec_field(text, "Client"),
        root=_spec_field(text, "Root"),
        views=tuple(views),
        owner=_spec_field(text, "Owner"),
        host=_spec_field(text, "Host"),
        stream=_spec_field(text, "Stream"),
    )


def parse_client_names(lines: Iterable[str]) -> list[str]:
    """Return client names from ``p4 clients`` output."""
    names = []
    for line in lines:
        name = find(line, _CLIENT_NAME)
        if name:
            names.append(name)
    return names


# ---------------------------------------------------------------------------
# annotate
# ---------------------------------------------------------------------------


def parse_annotate_change(token: str) -> AnnotateChange | None:
    """Map a header token to AnnotateChange, case-sensitively; ``None`` if unknown."""
    try:
        return AnnotateChange(token)
    except ValueError:
        return None


def parse_annotate(lines: Iterable[str]) -> Annotate:
    """Parse ``p4 annotate -c`` output.

    The first non-empty line is the header. Later lines are kept only if they
    look like ``<revision>: <text>``; p4 mixes other console noise in.

    Line numbers are positions in the non-empty input (header is 0). They
    are not source file line numbers when p4 emits noise lines. Consumers
    depend on this numbering.
    """
    filtered = [line.rstrip("\r") for line in lines if line and line != "\r"]
    if not filtered:
        return Annotate()

    header = filtered[0]
    annotate_lines = []
    for i, line in enumerate(filtered[1:], start=1):
        match = _ANNOTATE_LINE.match(line)
        if not match:
            continue
        annotate_lines.append(
            AnnotateLine(revision=match.group(1), text=match.group(2) or "", line_number=i)
        )

    return Annotate(
        file=find(header, _ANNOTATE_FILE),
        revision=find(header, _ANNOTATE_REVISION),
        change=parse_annotate_change(find(header, _ANNOTATE_KIND)),
        lines=tuple(annotate_lines),
    )
