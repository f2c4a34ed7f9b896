"""SQLAlchemy-backed record store."""

import uuid
from datetime import datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from smart_search.db.base import Base
from smart_search.db.models.prompts import RECORD_ID_LENGTH, PromptRecord
from smart_search.services.errors import RecordValidationError
from smart_search.services.vector_db.types import Record


def _to_record(row: PromptRecord) -> Record:
    return Record(
        id=row.id,
        prompt=row.prompt,
        response=row.response,
        embedding=row.embedding,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SQLRecordStore:
    """Record store persisting prompts through an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine):
        """
        Initialize the store.

        :param engine: Async engine the store opens its sessions on
        """
        self.engine = engine
        self.session_factory = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "SQLRecordStore":
        """
        Build a store from a database URL.

        :param url: SQLAlchemy async database URL
        :param echo: Whether SQLAlchemy should echo statements
        :returns: SQLRecordStore instance
        """
        return cls(create_async_engine(url, echo=echo))

    async def create_tables(self) -> None:
        """Create the tables of all models if they don't exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Record store tables are ready")

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def find_all_with_embedding(self) -> List[Record]:
        query = (
            select(PromptRecord)
            .where(PromptRecord.embedding.is_not(None))
            .order_by(PromptRecord.created_at.desc())
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            rows = result.scalars().all()
        return [_to_record(row) for row in rows]

    async def find_without_embedding(self) -> List[Record]:
        query = select(PromptRecord).where(PromptRecord.embedding.is_(None))
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [_to_record(row) for row in result.scalars().all()]

    async def insert(self, record: Record) -> str:
        if record.id and len(record.id) > RECORD_ID_LENGTH:
            raise RecordValidationError(
                f"Record id must be at most {RECORD_ID_LENGTH} characters"
            )

        # an empty embedding is stored as NULL
        row = PromptRecord(
            id=record.id or uuid.uuid4().hex,
            prompt=record.prompt,
            response=record.response,
            embedding=record.embedding or None,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
        async with self.session_factory() as session:
            session.add(row)
            await session.commit()
        logger.debug(f"Stored record {row.id}")
        return row.id

    async def update_embedding(self, record_id: str, embedding: List[float]) -> None:
        statement = (
            update(PromptRecord)
            .where(PromptRecord.id == record_id)
            .values(embedding=list(embedding) or None, updated_at=datetime.utcnow())
        )
        async with self.session_factory() as session:
            result = await session.execute(statement)
            await session.commit()
        if result.rowcount == 0:
            raise RecordValidationError(f"Record {record_id} not found")

    async def count(self, with_embedding: Optional[bool] = None) -> int:
        query = select(func.count()).select_from(PromptRecord)
        if with_embedding is True:
            query = query.where(PromptRecord.embedding.is_not(None))
        elif with_embedding is False:
            query = query.where(PromptRecord.embedding.is_(None))

        async with self.session_factory() as session:
            return int((await session.execute(query)).scalar_one())

    async def find_recent(self, limit: int = 10) -> List[Record]:
        query = select(PromptRecord).order_by(PromptRecord.created_at.desc()).limit(limit)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [_to_record(row) for row in result.scalars().all()]

    async def delete(self, record_id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(
                delete(PromptRecord).where(PromptRecord.id == record_id)
            )
            await session.commit()
        return result.rowcount > 0
