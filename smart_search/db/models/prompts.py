from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, String, Text

from smart_search.db.base import Base

RECORD_ID_LENGTH = 64


class PromptRecord(Base):
    """A saved prompt/response pair and its embedding."""

    __tablename__ = "prompts"

    id = Column(String(RECORD_ID_LENGTH), primary_key=True)
    prompt = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    # None until the prompt has been vectorized
    embedding = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_prompts_created_at", "created_at"),
        Index("ix_prompts_updated_at", "updated_at"),
    )
