"""
SQLAlchemy async engine & session factory for stored prompt templates.

Creates the prompt_templates table on startup. One table holds every
collection; ``collection`` plays the part of the document-store collection
name (PROMPTS_COLLECTION).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PromptTemplateRecord(Base):
    __tablename__ = "prompt_templates"

    collection: Mapped[str] = mapped_column(String(128), primary_key=True)
    prompt_id: Mapped[str] = mapped_column(String(256), primary_key=True)
    template: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")
    max_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    temperature: Mapped[float | None] = mapped_column(Float, nullable=True)
    top_p: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_document(self) -> dict[str, Any]:
        return {
            "template": self.template,
            "description": self.description,
            "maxTokens": self.max_tokens,
            "temperature": self.temperature,
            "topP": self.top_p,
        }


_engine: AsyncEngine | None = None


async def init_db(database_url: str) -> async_sessionmaker[AsyncSession]:
    global _engine
    options: dict[str, Any] = {"echo": False}
    if not database_url.startswith("sqlite"):
        options["pool_size"] = 5
    _engine = create_async_engine(database_url, **options)
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return async_sessionmaker(_engine, expire_on_commit=False)


async def close_db() -> None:
    global _engine
    if _engine:
        await _engine.dispose()
    _engine = None
