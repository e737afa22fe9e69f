"""p4connect configuration -- connection settings from the environment.

Everything here is optional: :class:`~p4connect.client.P4Client` can be built
from plain constructor arguments. The environment names follow p4's own
(``P4USER``, ``P4PORT``, ``P4PASSWD``, ``P4TICKET``) so an existing p4 setup
works unchanged.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from p4connect.shell import DEFAULT_TIMEOUT


@dataclass
class P4Config:
    """Connection settings for a P4Client."""

    user: str = field(default_factory=lambda: os.environ.get("P4USER", ""))
    port: str = field(default_factory=lambda: os.environ.get("P4PORT", ""))
    password: str = field(default_factory=lambda: os.environ.get("P4PASSWD", ""))
    # Set when a ready session ticket is available; takes precedence over password.
    ticket: str = field(default_factory=lambda: os.environ.get("P4TICKET", ""))
    fingerprint: str = field(default_factory=lambda: os.environ.get("P4TRUST", ""))
    timeout: float = field(
        default_factory=lambda: float(os.environ.get("P4CONNECT_TIMEOUT", str(DEFAULT_TIMEOUT)))
    )
    log_level: str = field(
        default_factory=lambda: os.environ.get("P4CONNECT_LOG_LEVEL", "INFO")
    )

    @property
    def secret(self) -> str:
        """The ticket if one is set, else the password."""
        return self.ticket or self.password

    @property
    def secret_is_password(self) -> bool:
        return not self.ticket


# Singleton for convenience
_config: P4Config | None = None


def get_config() -> P4Config:
    """Get or create the global p4connect configuration."""
    global _config
    if _config is None:
        _config = P4Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
