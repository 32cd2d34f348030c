"""
Typed failures of a pipeline invocation.

Every stage maps its own failures to exactly one PipelineError subclass;
the orchestrator never lets anything else escape. ``status`` is the
canonical callable-function status string and ``http_status`` the code the
HTTP entry point answers with.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "InvalidArgument"
    PREPROCESSING_FAILED = "PreprocessingFailed"
    TEMPLATE_NOT_FOUND = "TemplateNotFound"
    TEMPLATE_MALFORMED = "TemplateMalformed"
    TEMPLATE_ERROR = "TemplateError"
    ROUTING_FAILED = "RoutingFailed"
    INTERNAL = "Internal"


class PipelineError(Exception):
    """Base class for all caller-facing pipeline failures."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status: str = "INTERNAL"
    http_status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {
            "status": self.status,
            "kind": self.kind.value,
            "message": self.message,
        }


class InvalidArgument(PipelineError):
    kind = ErrorKind.INVALID_ARGUMENT
    status = "INVALID_ARGUMENT"
    http_status = 400


class PreprocessingFailed(PipelineError):
    kind = ErrorKind.PREPROCESSING_FAILED


class TemplateNotFound(PipelineError):
    kind = ErrorKind.TEMPLATE_NOT_FOUND
    status = "NOT_FOUND"
    http_status = 404


class TemplateMalformed(PipelineError):
    kind = ErrorKind.TEMPLATE_MALFORMED
    status = "FAILED_PRECONDITION"
    http_status = 400


class TemplateError(PipelineError):
    """A stored template does not parse. Never raised for bad user input."""

    kind = ErrorKind.TEMPLATE_ERROR


class RoutingFailed(PipelineError):
    kind = ErrorKind.ROUTING_FAILED
    status = "UNAVAILABLE"
    http_status = 502


class InternalError(PipelineError):
    """
    Wraps an unexpected exception.

    The original exception is kept as ``__cause__`` (and ``cause``) for the
    logs; callers only ever see the generic message.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, cause: BaseException | None = None) -> None:
        super().__init__("An internal error occurred while processing the prompt")
        self.cause = cause
        self.__cause__ = cause
