"""CLI entry point -- python -m p4connect."""
from __future__ import annotations

from p4connect.cli import cli

if __name__ == "__main__":
    cli(prog_name="p4c")
