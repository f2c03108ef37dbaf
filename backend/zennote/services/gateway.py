"""Durable copy of the folder+note collection, read and written as one snapshot."""

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from zennote.config import Settings
from zennote.database import init_models, make_engine, make_session_maker
from zennote.errors import PersistenceError
from zennote.models import FolderRow, NoteRow
from zennote.schemas import Folder, Note, Snapshot

logger = logging.getLogger(__name__)


class PersistenceGateway(ABC):
    """load/save of the whole collection under one store key. Each call is atomic."""

    store_key: str

    @abstractmethod
    async def load(self) -> Snapshot: ...

    @abstractmethod
    async def save(self, snapshot: Snapshot) -> None: ...

    async def close(self) -> None:
        return None


class MemoryGateway(PersistenceGateway):
    """Process-local gateway. `delay` simulates a slow medium, `fail_saves` a broken one."""

    def __init__(self, store_key: str = "zennote_db", delay: float = 0.0) -> None:
        self.store_key = store_key
        self.delay = delay
        self.fail_saves = False
        self.save_count = 0
        self._blobs: dict[str, dict[str, Any]] = {}

    async def load(self) -> Snapshot:
        if self.delay:
            await asyncio.sleep(self.delay)
        return Snapshot.from_payload(copy.deepcopy(self._blobs.get(self.store_key)))

    async def save(self, snapshot: Snapshot) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_saves:
            raise PersistenceError(f"Save rejected for {self.store_key}")
        self._blobs[self.store_key] = snapshot.to_payload()
        self.save_count += 1


class SqlGateway(PersistenceGateway):
    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        store_key: str,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_maker = session_maker
        self._engine = engine
        self.store_key = store_key

    async def load(self) -> Snapshot:
        try:
            async with self._session_maker() as db:
                folder_rows = (
                    await db.execute(
                        select(FolderRow)
                        .where(FolderRow.store_key == self.store_key)
                        .order_by(FolderRow.position)
                    )
                ).scalars().all()
                note_rows = (
                    await db.execute(
                        select(NoteRow)
                        .where(NoteRow.store_key == self.store_key)
                        .order_by(NoteRow.position)
                    )
                ).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Snapshot load failed", exc_info=True, extra={"store_key": self.store_key})
            raise PersistenceError(str(e)) from e
        return Snapshot(
            folders=[
                Folder(id=r.id, name=r.name, parent_id=r.parent_id, is_open=r.is_open)
                for r in folder_rows
            ],
            notes=[
                Note(
                    id=r.id,
                    title=r.title,
                    content=r.content,
                    folder_id=r.folder_id,
                    updated_at=r.updated_at,
                )
                for r in note_rows
            ],
        )

    async def save(self, snapshot: Snapshot) -> None:
        try:
            async with self._session_maker() as db:
                async with db.begin():
                    await db.execute(delete(FolderRow).where(FolderRow.store_key == self.store_key))
                    await db.execute(delete(NoteRow).where(NoteRow.store_key == self.store_key))
                    db.add_all(
                        FolderRow(
                            store_key=self.store_key,
                            id=f.id,
                            position=i,
                            name=f.name,
                            parent_id=f.parent_id,
                            is_open=f.is_open,
                        )
                        for i, f in enumerate(snapshot.folders)
                    )
                    db.add_all(
                        NoteRow(
                            store_key=self.store_key,
                            id=n.id,
                            position=i,
                            title=n.title,
                            content=n.content,
                            folder_id=n.folder_id,
                            updated_at=n.updated_at,
                        )
                        for i, n in enumerate(snapshot.notes)
                    )
        except SQLAlchemyError as e:
            logger.error("Snapshot save failed", exc_info=True, extra={"store_key": self.store_key})
            raise PersistenceError(str(e)) from e

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()


class RedisGateway(PersistenceGateway):
    """The whole snapshot as one JSON blob under the store key."""

    def __init__(self, store_key: str, redis_url: str | None = None, client: redis.Redis | None = None) -> None:
        self.store_key = store_key
        self._redis_url = redis_url
        self._client = client

    async def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    async def load(self) -> Snapshot:
        try:
            client = await self._get_client()
            value = await client.get(self.store_key)
        except RedisError as e:
            logger.error("Snapshot load failed", exc_info=True, extra={"store_key": self.store_key})
            raise PersistenceError(str(e)) from e
        if value is None:
            return Snapshot()
        try:
            return Snapshot.from_payload(json.loads(value))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error("Stored snapshot is corrupt", extra={"store_key": self.store_key, "error": str(e)})
            raise PersistenceError(f"Corrupt snapshot under {self.store_key}") from e

    async def save(self, snapshot: Snapshot) -> None:
        value = json.dumps(snapshot.to_payload())
        try:
            client = await self._get_client()
            await client.set(self.store_key, value)
        except RedisError as e:
            logger.error("Snapshot save failed", exc_info=True, extra={"store_key": self.store_key})
            raise PersistenceError(str(e)) from e
        logger.debug("Stored snapshot", extra={"store_key": self.store_key, "bytes": len(value)})

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


async def build_gateway(settings: Settings) -> PersistenceGateway:
    if settings.gateway == "memory":
        return MemoryGateway(settings.store_key)
    if settings.gateway == "redis":
        return RedisGateway(settings.store_key, redis_url=settings.redis_url)
    engine = make_engine(settings.database_url)
    await init_models(engine)
    return SqlGateway(make_session_maker(engine), settings.store_key, engine=engine)
