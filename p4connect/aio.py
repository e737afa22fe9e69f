"""Async facade over P4Client.

Each call runs the blocking client method in the event loop's default
executor. Cancelling the awaiting task does not stop a p4 process that has
already started.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, TypeVar

from p4connect.client import DEFAULT_PATH, P4Client
from p4connect.config import P4Config
from p4connect.models import Annotate, Change, Client

T = TypeVar("T")


class AsyncP4Client:
    """Await-able version of :class:`~p4connect.client.P4Client`.

    Usage::

        p4 = AsyncP4Client(P4Client("bob", "secret", "ssl:p4:1666"))
        change = await p4.describe("1234")
    """

    def __init__(self, client: P4Client) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: P4Config | None = None) -> AsyncP4Client:
        return cls(P4Client.from_config(config))

    @property
    def sync(self) -> P4Client:
        """The wrapped blocking client."""
        return self._client

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    async def verify_credentials(self) -> None:
        await self._call(self._client.verify_credentials)

    async def get_raw_describe(self, revision: str | int, diffs: bool = False) -> str | None:
        return await self._call(self._client.get_raw_describe, revision, diffs=diffs)

    async def get_raw_client(self, client_name: str) -> str:
        return await self._call(self._client.get_raw_client, client_name)

    async def get_clients_for_user_and_host(self, user: str, host: str) -> list[str]:
        return await self._call(self._client.get_clients_for_user_and_host, user, host)

    async def get_raw_annotate(self, file_path: str, revision: str | int | None = None) -> list[str]:
        return await self._call(self._client.get_raw_annotate, file_path, revision)

    async def get_raw_changes(
        self, shelves: bool = False, limit: int = 0, path: str = DEFAULT_PATH
    ) -> list[str]:
        return await self._call(self._client.get_raw_changes, shelves=shelves, limit=limit, path=path)

    async def get_raw_change(self, change_number: str | int) -> list[str] | None:
        return await self._call(self._client.get_raw_change, change_number)

    async def get_raw_changes_between(
        self, start_revision: str | int, end_revision: str | int, path: str = DEFAULT_PATH
    ) -> list[str]:
        return await self._call(
            self._client.get_raw_changes_between, start_revision, end_revision, path
        )

    async def describe(
        self, revision: str | int, *, diffs: bool = False, annotate: bool = False
    ) -> Change | None:
        return await self._call(self._client.describe, revision, diffs=diffs, annotate=annotate)

    async def client(self, client_name: str) -> Client:
        return await self._call(self._client.client, client_name)

    async def annotate(self, file_path: str, revision: str | int | None = None) -> Annotate:
        return await self._call(self._client.annotate, file_path, revision)

    async def changes(
        self, shelves: bool = False, limit: int = 0, path: str = DEFAULT_PATH
    ) -> list[Change]:
        return await self._call(self._client.changes, shelves=shelves, limit=limit, path=path)

    async def changes_between(
        self, start_revision: str | int, end_revision: str | int, path: str = DEFAULT_PATH
    ) -> list[Change]:
        return await self._call(self._client.changes_between, start_revision, end_revision, path)
