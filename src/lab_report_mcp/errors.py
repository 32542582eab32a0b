"""Structured error handling — error categories, classification, and tool error model."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

QUOTA_MESSAGE = "API Quota exceeded. Please try again later or select a different API key."


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    API_PERMISSION_DENIED = "API_PERMISSION_DENIED"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    API_INVALID_ARGUMENT = "API_INVALID_ARGUMENT"
    API_NOT_FOUND = "API_NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    COLLABORATOR_TIMEOUT = "COLLABORATOR_TIMEOUT"
    COLLABORATOR_FAILED = "COLLABORATOR_FAILED"
    DOCUMENT_EMPTY = "DOCUMENT_EMPTY"
    DOCUMENT_INVALID_FORMAT = "DOCUMENT_INVALID_FORMAT"
    DOCUMENT_CORRUPTED = "DOCUMENT_CORRUPTED"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    EXPORT_FAILED = "EXPORT_FAILED"
    NO_DOCUMENT = "NO_DOCUMENT"
    SESSION_BUSY = "SESSION_BUSY"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    UNKNOWN = "UNKNOWN"


class LabReportError(Exception):
    """Base class for errors raised by the report engine."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


class CollaboratorError(LabReportError):
    """The AI collaborator failed (transport, auth, quota, or bad response)."""

    def __init__(self, message: str, *, is_quota: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.is_quota = is_quota
        self.category = (
            ErrorCategory.API_QUOTA_EXCEEDED if is_quota else ErrorCategory.COLLABORATOR_FAILED
        )


class DocumentExtractionError(LabReportError):
    """An uploaded document could not be turned into text."""

    def __init__(self, category: ErrorCategory, message: str) -> None:
        super().__init__(message)
        self.category = category


class ExportError(LabReportError):
    """The formatted output document could not be produced."""

    category = ErrorCategory.EXPORT_FAILED


class NoDocumentError(LabReportError):
    """An operation needs a loaded report but none is loaded."""

    category = ErrorCategory.NO_DOCUMENT

    def __init__(self, message: str = "No report is loaded — call report_load first") -> None:
        super().__init__(message)


class SessionBusyError(LabReportError):
    """A direct edit was attempted while a conversation turn is in flight."""

    category = ErrorCategory.SESSION_BUSY


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


def is_quota_error(error: Exception) -> bool:
    """Return True when *error* signals an exhausted quota or rate limit."""
    if isinstance(error, CollaboratorError):
        return error.is_quota
    s = str(error).lower()
    return "429" in s or "quota" in s or "resource_exhausted" in s


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, DocumentExtractionError):
        return (error.category, str(error))
    if isinstance(error, ExportError):
        return (ErrorCategory.EXPORT_FAILED, f"Export failed — {error}")
    if isinstance(error, (NoDocumentError, SessionBusyError)):
        return (error.category, str(error))
    if isinstance(error, CollaboratorError) and error.is_quota:
        return (ErrorCategory.API_QUOTA_EXCEEDED, QUOTA_MESSAGE)
    if isinstance(error, TimeoutError):
        return (
            ErrorCategory.COLLABORATOR_TIMEOUT,
            "The AI service did not answer in time — try again",
        )
    if isinstance(error, FileNotFoundError):
        return (ErrorCategory.FILE_NOT_FOUND, "File not found — check the path")

    s = str(error).lower()

    if is_quota_error(error):
        return (ErrorCategory.API_QUOTA_EXCEEDED, QUOTA_MESSAGE)
    if "401" in s or "403" in s or "permission" in s or "api key" in s:
        return (
            ErrorCategory.API_PERMISSION_DENIED,
            "The AI service rejected the credentials — check the configured API key",
        )
    if "400" in s or "invalid" in s:
        return (ErrorCategory.API_INVALID_ARGUMENT, "Bad request — check input format")
    if "404" in s:
        return (ErrorCategory.API_NOT_FOUND, "Resource not found — check the model name")
    if "timeout" in s or "timed out" in s or "connect" in s or "network" in s:
        return (
            ErrorCategory.NETWORK_ERROR,
            "Could not reach the AI service — check connectivity and try again",
        )
    if isinstance(error, CollaboratorError):
        return (ErrorCategory.COLLABORATOR_FAILED, "The AI service returned an error")

    return (ErrorCategory.UNKNOWN, str(error))


def user_message(error: Exception, locale: str = "en") -> str:
    """Chat-visible description of a collaborator failure, free of stack detail."""
    cat, _ = categorize_error(error)
    if locale == "fa":
        if cat == ErrorCategory.API_QUOTA_EXCEEDED:
            return "سهمیه API به پایان رسیده است. لطفاً بعداً دوباره تلاش کنید."
        if cat == ErrorCategory.COLLABORATOR_TIMEOUT:
            return "پاسخ سرویس هوش مصنوعی بیش از حد طول کشید. لطفاً دوباره تلاش کنید."
        return "در ارتباط با سرویس هوش مصنوعی خطایی رخ داد."
    if cat == ErrorCategory.API_QUOTA_EXCEEDED:
        return QUOTA_MESSAGE
    if cat == ErrorCategory.COLLABORATOR_TIMEOUT:
        return "The AI service took too long to respond. Please try again."
    if cat == ErrorCategory.API_PERMISSION_DENIED:
        return "The AI service rejected the request. Check the configured API key."
    return "An error occurred with the AI connection."


def make_tool_error(error: Exception, message: str | None = None) -> dict:
    """Create a serialisable ToolError dict from an exception.

    *message* replaces the raw exception text, for errors whose detail must not
    reach the user.
    """
    cat, hint = categorize_error(error)
    if message is not None and cat == ErrorCategory.UNKNOWN:
        hint = message
    retryable = cat in {
        ErrorCategory.API_QUOTA_EXCEEDED,
        ErrorCategory.NETWORK_ERROR,
        ErrorCategory.COLLABORATOR_TIMEOUT,
        ErrorCategory.SESSION_BUSY,
    }
    return ToolError(
        error=message or str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
        retry_after_seconds=60 if cat == ErrorCategory.API_QUOTA_EXCEEDED else None,
    ).model_dump(mode="json")
