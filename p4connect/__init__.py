"""p4connect -- query Perforce through the p4 command-line client.

Shells out to ``p4``, caches the login ticket, and parses p4's text output
into changelists, client specs and annotations.
"""

from p4connect.aio import AsyncP4Client
from p4connect.client import P4Client
from p4connect.config import P4Config, get_config, reset_config
from p4connect.exceptions import (
    AuthenticationError,
    CommandError,
    CommandTimeoutError,
    EncodingError,
    InvalidRevisionError,
    P4Error,
    TicketNotFoundError,
)
from p4connect.models import (
    Annotate,
    AnnotateChange,
    AnnotateLine,
    Change,
    ChangeFile,
    Client,
    ClientView,
    PortResolveResult,
    ShellResult,
)
from p4connect.network import (
    is_p4_installed_locally,
    resolve_p4port_to_ip,
    try_resolve_ticket,
    try_resolve_trust,
)
from p4connect.parsers import (
    parse_annotate,
    parse_changes,
    parse_client,
    parse_describe,
)
from p4connect.tickets import TicketCache

__version__ = "0.1.0"

__all__ = [
    "AsyncP4Client",
    "P4Client",
    "P4Config",
    "get_config",
    "reset_config",
    "TicketCache",
    "parse_describe",
    "parse_client",
    "parse_annotate",
    "parse_changes",
    "is_p4_installed_locally",
    "resolve_p4port_to_ip",
    "try_resolve_ticket",
    "try_resolve_trust",
    "Annotate",
    "AnnotateChange",
    "AnnotateLine",
    "Change",
    "ChangeFile",
    "Client",
    "ClientView",
    "PortResolveResult",
    "ShellResult",
    "P4Error",
    "AuthenticationError",
    "TicketNotFoundError",
    "CommandError",
    "CommandTimeoutError",
    "InvalidRevisionError",
    "EncodingError",
]
