from promptpilot.template_store.base import TemplateStore, template_from_document
from promptpilot.template_store.memory import InMemoryTemplateStore

__all__ = [
    "TemplateStore",
    "InMemoryTemplateStore",
    "template_from_document",
]
