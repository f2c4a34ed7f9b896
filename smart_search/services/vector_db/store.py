"""Record store interface and an in-memory implementation."""

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from loguru import logger

from smart_search.services.errors import RecordValidationError
from smart_search.services.vector_db.types import Record


class RecordStore(Protocol):
    """Persistence operations the knowledge service relies on."""

    async def find_all_with_embedding(self) -> List[Record]:
        """Return every record that has an embedding, newest first."""

    async def find_without_embedding(self) -> List[Record]:
        """Return every record still missing an embedding."""

    async def insert(self, record: Record) -> str:
        """Store a new record and return its id."""

    async def update_embedding(self, record_id: str, embedding: List[float]) -> None:
        """Attach or replace the embedding of an existing record."""

    async def count(self, with_embedding: Optional[bool] = None) -> int:
        """Count records, optionally only those with/without an embedding."""

    async def find_recent(self, limit: int = 10) -> List[Record]:
        """Return the most recently created records."""

    async def delete(self, record_id: str) -> bool:
        """Delete a record, returning whether it existed."""


class InMemoryRecordStore:
    """
    Record store kept in a process-local dict.

    Used by the test-suite and for running the service without a database.
    """

    def __init__(self, records: Optional[List[Record]] = None):
        self._records: Dict[str, Record] = {}
        for record in records or []:
            self._put(record)

    def _put(self, record: Record) -> str:
        record_id = record.id or uuid.uuid4().hex
        self._records[record_id] = record.model_copy(update={"id": record_id})
        return record_id

    def _newest_first(self, records: List[Record]) -> List[Record]:
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def find_all_with_embedding(self) -> List[Record]:
        return self._newest_first(
            [r for r in self._records.values() if r.has_embedding]
        )

    async def find_without_embedding(self) -> List[Record]:
        return [r for r in self._records.values() if not r.has_embedding]

    async def insert(self, record: Record) -> str:
        record_id = self._put(record)
        logger.debug(f"Stored record {record_id}")
        return record_id

    async def update_embedding(self, record_id: str, embedding: List[float]) -> None:
        if record_id not in self._records:
            raise RecordValidationError(f"Record {record_id} not found")
        self._records[record_id] = self._records[record_id].model_copy(
            update={"embedding": list(embedding), "updated_at": datetime.utcnow()}
        )

    async def count(self, with_embedding: Optional[bool] = None) -> int:
        if with_embedding is None:
            return len(self._records)
        return sum(
            1 for r in self._records.values() if r.has_embedding == with_embedding
        )

    async def find_recent(self, limit: int = 10) -> List[Record]:
        return self._newest_first(list(self._records.values()))[:limit]

    async def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None
