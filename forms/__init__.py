"""form-foundry: declarative form engine.

Forms are described with ``FieldDescriptor``/``FormDescriptor`` and driven
by a ``FormController`` (single form) or a ``SessionController`` (multi-step
wizard). The controllers keep values, computed fields, conditional
visibility, validation, lifecycle state and draft persistence consistent.

Usage:
    from forms import FieldDescriptor, FormController, FormDescriptor, validators

    form = FormDescriptor(
        fields=[
            FieldDescriptor("email", validators=[validators.required(), validators.email()]),
        ],
        form_id="signup",
    )
    controller = FormController(form)
    controller.set("email", "a@b.com")
    result = await controller.submit(handle_signup)
"""

from forms.lib import (
    ConfigError,
    DisposedError,
    DraftStore,
    EngineSettings,
    FieldError,
    FormController,
    FormError,
    LocalDraftStore,
    ManualScheduler,
    MemoryDraftStore,
    S3DraftStore,
    SessionController,
    StepOutcome,
    StorageError,
    SubmissionError,
    SubmitResult,
    ValidationError,
    create_draft_store,
    validators,
)
from forms.models import (
    Condition,
    ConditionOperator,
    FieldDescriptor,
    FieldKind,
    FieldOption,
    FieldSource,
    FieldValue,
    FormDescriptor,
    FormState,
    ValidationMode,
)

__version__ = "0.1.0"

__all__ = [
    "Condition",
    "ConditionOperator",
    "ConfigError",
    "DisposedError",
    "DraftStore",
    "EngineSettings",
    "FieldDescriptor",
    "FieldError",
    "FieldKind",
    "FieldOption",
    "FieldSource",
    "FieldValue",
    "FormController",
    "FormDescriptor",
    "FormError",
    "FormState",
    "LocalDraftStore",
    "ManualScheduler",
    "MemoryDraftStore",
    "S3DraftStore",
    "SessionController",
    "StepOutcome",
    "StorageError",
    "SubmissionError",
    "SubmitResult",
    "ValidationError",
    "ValidationMode",
    "create_draft_store",
    "validators",
]
