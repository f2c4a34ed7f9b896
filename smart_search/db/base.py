from sqlalchemy.orm import DeclarativeBase

from smart_search.db.meta import meta


class Base(DeclarativeBase):
    """Base for all models."""

    metadata = meta
