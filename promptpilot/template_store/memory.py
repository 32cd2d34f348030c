from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from promptpilot.contracts.models import PromptTemplate
from promptpilot.errors import TemplateNotFound
from promptpilot.template_store.base import TemplateStore, template_from_document


class InMemoryTemplateStore(TemplateStore):
    """Dict-backed store of raw template documents, keyed by prompt id."""

    def __init__(self, documents: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {
            prompt_id: dict(doc) for prompt_id, doc in (documents or {}).items()
        }

    def put(self, prompt_id: str, document: Mapping[str, Any]) -> None:
        self._documents[prompt_id] = dict(document)

    async def get(self, prompt_id: str) -> PromptTemplate:
        document = self._documents.get(prompt_id)
        if document is None:
            raise TemplateNotFound(f"Prompt template not found: {prompt_id}")
        return template_from_document(prompt_id, document)
