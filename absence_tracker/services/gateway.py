"""
Remote data gateway — the only module that talks to Supabase.

Every table read/write, the change feed and the document bucket go through
SupabaseGateway so the rest of the package depends on a small async surface
that tests can replace with an in-memory fake.
"""

import inspect
import logging
from typing import Any, Callable, Iterable, Optional

import httpx
from postgrest.exceptions import APIError
from storage3.utils import StorageException
from supabase import AsyncClient

from absence_tracker.core.exceptions import RemoteOperationError

logger = logging.getLogger(__name__)

REMOTE_ERRORS = (APIError, StorageException, httpx.HTTPError)

# (operator, column, value), operator being a postgrest filter method name
Filter = tuple[str, str, Any]


class SupabaseGateway:
    def __init__(self, client: AsyncClient, bucket: str = "teachers"):
        self._client = client
        self._bucket = bucket

    # ---------------------------------------------------------------
    # Tables
    # ---------------------------------------------------------------
    async def fetch_page(self, table: str, columns: str, start: int, end: int) -> list[dict]:
        try:
            result = await self._client.table(table).select(columns).range(start, end).execute()
        except REMOTE_ERRORS as exc:
            raise RemoteOperationError("select", table, str(exc)) from exc
        return result.data or []

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Iterable[Filter] = (),
        order: Optional[str] = None,
        desc: bool = False,
    ) -> list[dict]:
        query = self._client.table(table).select(columns)
        for op, column, value in filters:
            query = getattr(query, op)(column, value)
        if order:
            query = query.order(order, desc=desc)
        try:
            result = await query.execute()
        except REMOTE_ERRORS as exc:
            raise RemoteOperationError("select", table, str(exc)) from exc
        return result.data or []

    async def insert(self, table: str, values: dict) -> dict:
        try:
            result = await self._client.table(table).insert(values).execute()
        except REMOTE_ERRORS as exc:
            raise RemoteOperationError("insert", table, str(exc)) from exc
        return result.data[0] if result.data else {}

    async def upsert(self, table: str, values: dict) -> dict:
        try:
            result = await self._client.table(table).upsert(values).execute()
        except REMOTE_ERRORS as exc:
            raise RemoteOperationError("upsert", table, str(exc)) from exc
        return result.data[0] if result.data else {}

    async def update(self, table: str, row_id: str, values: dict) -> list[dict]:
        try:
            result = await self._client.table(table).update(values).eq("id", row_id).execute()
        except REMOTE_ERRORS as exc:
            raise RemoteOperationError("update", table, str(exc)) from exc
        return result.data or []

    async def delete(self, table: str, row_id: str) -> None:
        try:
            await self._client.table(table).delete().eq("id", row_id).execute()
        except REMOTE_ERRORS as exc:
            raise RemoteOperationError("delete", table, str(exc)) from exc

    # ---------------------------------------------------------------
    # Change feed
    # ---------------------------------------------------------------
    async def subscribe(self, table: str, callback: Callable[[dict], None]):
        """Call `callback(payload)` on every insert/update/delete of `table`."""
        channel = self._client.channel(f"{table}-changes")
        channel.on_postgres_changes("*", schema="public", table=table, callback=callback)
        await channel.subscribe()
        logger.info("Subscribed to change feed of %s", table)
        return channel

    async def unsubscribe(self, channel) -> None:
        await self._client.remove_channel(channel)

    # ---------------------------------------------------------------
    # Storage
    # ---------------------------------------------------------------
    async def upload(self, path: str, content: bytes, content_type: str = "application/octet-stream") -> None:
        bucket = self._client.storage.from_(self._bucket)
        try:
            await bucket.upload(path, content, file_options={"content-type": content_type})
        except REMOTE_ERRORS as exc:
            raise RemoteOperationError("upload", self._bucket, str(exc)) from exc

    async def public_url(self, path: str) -> str:
        url = self._client.storage.from_(self._bucket).get_public_url(path)
        # storage3 made this a coroutine on the async client in later releases
        if inspect.isawaitable(url):
            url = await url
        return url

    async def list_files(self, folder: str) -> list[dict]:
        try:
            return await self._client.storage.from_(self._bucket).list(folder) or []
        except REMOTE_ERRORS as exc:
            raise RemoteOperationError("list", self._bucket, str(exc)) from exc
