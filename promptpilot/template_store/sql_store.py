"""
SQL-backed template store on top of the async session factory.

The store does not own the engine: whoever called init_db() disposes it
with close_db().
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promptpilot.contracts.models import PromptTemplate
from promptpilot.errors import TemplateNotFound
from promptpilot.template_store.base import TemplateStore, template_from_document
from promptpilot.template_store.database import PromptTemplateRecord

logger = logging.getLogger(__name__)


class SqlTemplateStore(TemplateStore):

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        collection: str = "prompts",
    ) -> None:
        self._session_factory = session_factory
        self._collection = collection

    async def get(self, prompt_id: str) -> PromptTemplate:
        async with self._session_factory() as session:
            record = await session.get(PromptTemplateRecord, (self._collection, prompt_id))
            if record is None:
                raise TemplateNotFound(f"Prompt template not found: {prompt_id}")
            document = record.to_document()
        return template_from_document(prompt_id, document)

    async def put(self, prompt_id: str, document: Mapping[str, Any]) -> None:
        """Create or replace a template document."""
        record = PromptTemplateRecord(
            collection=self._collection,
            prompt_id=prompt_id,
            template=document.get("template"),
            description=document.get("description") or "",
            max_tokens=document.get("maxTokens"),
            temperature=document.get("temperature"),
            top_p=document.get("topP"),
        )
        async with self._session_factory() as session:
            await session.merge(record)
            await session.commit()
        logger.info("Stored prompt template %s in collection %s", prompt_id, self._collection)
