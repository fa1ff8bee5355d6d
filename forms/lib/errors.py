"""Structured exception hierarchy for form engines.

Provides specific exception types for the failure modes of a form
controller, with rich context for debugging and troubleshooting.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

__all__ = [
    "FormError",
    "ConfigError",
    "FieldError",
    "ValidationError",
    "SubmissionError",
    "StorageError",
    "DisposedError",
]


class FormError(Exception):
    """Base exception for all form engine errors.

    Provides structured error information for debugging.
    """

    def __init__(
        self,
        message: str,
        *,
        form_id: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.form_id = form_id
        self.field = field
        self.details = details or {}
        self.suggestion = suggestion

        parts = [message]

        if form_id or field:
            context = f"{form_id or '?'}.{field or '*'}"
            parts.insert(0, f"[{context}]")

        if self.details:
            detail_lines = [f"  {k}: {v}" for k, v in self.details.items()]
            parts.append("\nDetails:")
            parts.extend(detail_lines)

        if suggestion:
            parts.append(f"\nSuggestion: {suggestion}")

        super().__init__("\n".join(parts) if len(parts) > 1 else message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "form_id": self.form_id,
            "field": self.field,
            "details": self.details,
            "suggestion": self.suggestion,
        }


class ConfigError(FormError):
    """Invalid form configuration.

    Raised at install time (``set_config`` or session construction). The
    controller stays unusable until the configuration is corrected.
    """

    def __init__(
        self,
        message: str,
        *,
        issues: Optional[List[str]] = None,
        cycle: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        self.issues = issues or []
        self.cycle = cycle or []

        details = kwargs.pop("details", {})
        if self.cycle:
            details["cycle"] = " -> ".join(self.cycle)
        if self.issues:
            details["issue_count"] = len(self.issues)
            issue_lines = "\n".join(f"  - {issue}" for issue in self.issues)
            message = f"{message}\n\nIssues found:\n{issue_lines}"

        super().__init__(message, details=details, **kwargs)


class FieldError(FormError):
    """Operation on a field that is undeclared or not writable."""

    def __init__(self, message: str, *, field: Optional[str] = None, **kwargs: Any) -> None:
        suggestion = kwargs.pop("suggestion", None)
        if not suggestion and field:
            suggestion = "Check the field name against the form descriptor."
        super().__init__(message, field=field, suggestion=suggestion, **kwargs)


class ValidationError(FormError):
    """One or more visible fields failed validation."""

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> None:
        self.errors: Dict[str, str] = dict(errors or {})

        details = kwargs.pop("details", {})
        if self.errors:
            details["error_count"] = len(self.errors)
            error_lines = "\n".join(f"  - {name}: {msg}" for name, msg in self.errors.items())
            message = f"{message}\n\nFields:\n{error_lines}"

        super().__init__(message, details=details, **kwargs)


class SubmissionError(FormError):
    """The external submit callable raised."""

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        self.cause = cause

        details = kwargs.pop("details", {})
        if cause is not None:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        super().__init__(message, details=details, **kwargs)


class StorageError(FormError):
    """A draft backend failed to read or write.

    Raised inside backends; the ``DraftStore`` boundary logs it and resolves
    to ``False``/``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        backend: Optional[str] = None,
        cause: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        self.key = key
        self.backend = backend
        self.cause = cause

        details = kwargs.pop("details", {})
        if key:
            details["key"] = key
        if backend:
            details["backend"] = backend
        if cause is not None:
            details["cause"] = str(cause)
            details["cause_type"] = type(cause).__name__

        super().__init__(message, details=details, **kwargs)


class DisposedError(FormError):
    """A disposed controller or session was used."""

    def __init__(self, message: str = "Controller has been disposed", **kwargs: Any) -> None:
        suggestion = kwargs.pop(
            "suggestion", "Create a new controller; disposed instances cannot be reused."
        )
        super().__init__(message, suggestion=suggestion, **kwargs)
