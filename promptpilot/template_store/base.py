"""Template store contract and document-to-template mapping."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from promptpilot.contracts.models import PromptTemplate
from promptpilot.errors import TemplateMalformed


class TemplateStore(ABC):
    """
    Read access to stored prompt template documents.

    ``get`` raises TemplateNotFound when no document exists for the id and
    TemplateMalformed when the document has no usable ``template`` field.
    """

    @abstractmethod
    async def get(self, prompt_id: str) -> PromptTemplate:
        """Fetch the template stored under ``prompt_id``."""

    async def close(self) -> None:
        """Release backend resources. No-op by default."""


def template_from_document(prompt_id: str, document: Mapping[str, Any]) -> PromptTemplate:
    """
    Map a stored document to a PromptTemplate.

    Document shape: ``{template, maxTokens?, temperature?, topP?, description?}``.
    """
    body = document.get("template")
    if not isinstance(body, str) or not body:
        raise TemplateMalformed('Prompt template is missing "template" field')
    try:
        return PromptTemplate(
            id=prompt_id,
            body=body,
            max_tokens=document.get("maxTokens"),
            temperature=document.get("temperature"),
            top_p=document.get("topP"),
            description=document.get("description") or "",
        )
    except ValidationError as exc:
        raise TemplateMalformed(
            f"Prompt template '{prompt_id}' has invalid sampling defaults"
        ) from exc
