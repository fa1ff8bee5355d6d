"""Form engine library modules.

This package contains the controllers, the validation and visibility
machinery, and the draft persistence backends.
"""

from forms.lib.errors import (
    ConfigError,
    DisposedError,
    FieldError,
    FormError,
    StorageError,
    SubmissionError,
    ValidationError,
)
from forms.lib.controller import FormController, SubmitResult
from forms.lib.drafts import (
    DraftStore,
    LocalDraftStore,
    MemoryDraftStore,
    S3DraftStore,
    create_draft_store,
)
from forms.lib.graph import DependencyGraph
from forms.lib.logging import FormLogger, get_form_logger, setup_logging
from forms.lib.masks import apply_mask, matches_mask
from forms.lib.resilience import RetryConfig, retry_async
from forms.lib.settings import EngineSettings
from forms.lib.timers import AsyncioScheduler, DebounceTimer, ManualScheduler, Scheduler
from forms.lib.validate import (
    ValidationIssue,
    ValidationSeverity,
    format_validation_report,
    validate_and_raise,
    validate_form_descriptor,
)
from forms.lib.visibility import evaluate_condition, is_visible, visible_fields
from forms.lib.wizard import SessionController, StepOutcome
from forms.lib import validators

__all__ = [
    # Errors
    "ConfigError",
    "DisposedError",
    "FieldError",
    "FormError",
    "StorageError",
    "SubmissionError",
    "ValidationError",
    # Controllers
    "FormController",
    "SessionController",
    "StepOutcome",
    "SubmitResult",
    # Drafts
    "DraftStore",
    "LocalDraftStore",
    "MemoryDraftStore",
    "S3DraftStore",
    "create_draft_store",
    # Engine pieces
    "DependencyGraph",
    "apply_mask",
    "matches_mask",
    "evaluate_condition",
    "is_visible",
    "visible_fields",
    "validators",
    # Config validation
    "ValidationIssue",
    "ValidationSeverity",
    "format_validation_report",
    "validate_and_raise",
    "validate_form_descriptor",
    # Settings, timers, logging, resilience
    "EngineSettings",
    "AsyncioScheduler",
    "DebounceTimer",
    "ManualScheduler",
    "Scheduler",
    "FormLogger",
    "get_form_logger",
    "setup_logging",
    "RetryConfig",
    "retry_async",
]
