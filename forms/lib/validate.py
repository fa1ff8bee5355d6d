"""Structural validation for form descriptors.

Validates a ``FormDescriptor`` tree before a controller installs it and
reports every problem at once, so a broken configuration is fixed in one
pass rather than one exception at a time. Cycle detection lives in
``forms.lib.graph``.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from forms.lib.errors import ConfigError
from forms.lib.values import matches_kind, values_equal
from forms.models.descriptors import FieldKind, FormDescriptor

logger = logging.getLogger(__name__)

__all__ = [
    "ValidationSeverity",
    "ValidationIssue",
    "validate_form_descriptor",
    "validate_and_raise",
    "format_validation_report",
]


class ValidationSeverity(Enum):
    """Severity of validation issues."""

    ERROR = "error"  # Controller refuses to install the descriptor
    WARNING = "warning"  # Installs, but probably not what was meant


@dataclass
class ValidationIssue:
    """A validation issue found in a descriptor."""

    severity: ValidationSeverity
    message: str
    field: str
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        prefix = "ERROR" if self.severity == ValidationSeverity.ERROR else "WARNING"
        result = f"[{prefix}] {self.field}: {self.message}"
        if self.suggestion:
            result += f"\n  Fix: {self.suggestion}"
        return result


def validate_form_descriptor(descriptor: FormDescriptor) -> List[ValidationIssue]:
    """Validate a FormDescriptor tree.

    Returns a list of validation issues. Empty list means valid.

    Example:
        >>> issues = validate_form_descriptor(signup_form)
        >>> if issues:
        ...     print(format_validation_report(issues))
    """
    issues: List[ValidationIssue] = []
    fields = descriptor.all_fields()
    names = [f.name for f in fields]
    declared = set(names)

    if descriptor.autosave and not descriptor.form_id:
        issues.append(
            ValidationIssue(
                severity=ValidationSeverity.ERROR,
                field="autosave",
                message="Autosave requires a form_id",
                suggestion="Add form_id='your_form' to the FormDescriptor",
            )
        )

    _check_sections(descriptor, "form", issues)

    for name, count in Counter(names).items():
        if count > 1:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    field=name,
                    message=f"Field name declared {count} times",
                    suggestion="Field names must be unique across all sections",
                )
            )

    for f in fields:
        if not f.name:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    field="<unnamed>",
                    message="Field name is required",
                )
            )

        if f.kind == FieldKind.CHOICE:
            if not f.options:
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        field=f.name,
                        message="Choice field has no options",
                        suggestion="Add options=[FieldOption(label, value), ...]",
                    )
                )
            elif f.default is not None and not any(
                values_equal(f.default, v) for v in f.option_values
            ):
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.WARNING,
                        field=f.name,
                        message=f"Default {f.default!r} is not one of the options",
                    )
                )

        for source in f.compute_from:
            if source not in declared:
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        field=f.name,
                        message=f"compute_from references undeclared field '{source}'",
                    )
                )

        if f.compute_from and f.compute_fn is None:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    field=f.name,
                    message="Computed field has compute_from but no compute_fn",
                    suggestion="Add compute_fn=lambda values: ...",
                )
            )
        elif f.compute_fn is not None and not f.compute_from:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field=f.name,
                    message="compute_fn without compute_from is never re-derived",
                    suggestion="List the fields compute_fn reads in compute_from",
                )
            )

        for condition in f.visible_when:
            if condition.field_name not in declared:
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        field=f.name,
                        message=(
                            f"visible_when references undeclared field "
                            f"'{condition.field_name}'"
                        ),
                    )
                )

        if f.mask and f.kind != FieldKind.TEXT:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field=f.name,
                    message=f"Mask is ignored on {f.kind.value} fields",
                )
            )

        if not f.is_computed and not matches_kind(f.kind, f.default):
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    field=f.name,
                    message=f"Default {f.default!r} is not a {f.kind.value} value",
                    suggestion="Use kind='custom' for values outside text, choice, date and boolean",
                )
            )

    return issues


def _check_sections(node: FormDescriptor, path: str, issues: List[ValidationIssue]) -> None:
    if node.fields and node.sections:
        issues.append(
            ValidationIssue(
                severity=ValidationSeverity.ERROR,
                field=path,
                message="Section declares both fields and nested sections",
                suggestion="Move the direct fields into their own section",
            )
        )
    for i, section in enumerate(node.sections):
        _check_sections(section, f"{path}.sections[{i}]", issues)


def validate_and_raise(descriptor: FormDescriptor) -> None:
    """Validate a descriptor and raise if errors are found.

    Warnings are logged; errors are collected into one ``ConfigError``.

    Raises:
        ConfigError: If any validation errors are found
    """
    all_issues = validate_form_descriptor(descriptor)

    errors = [i for i in all_issues if i.severity == ValidationSeverity.ERROR]
    warnings = [i for i in all_issues if i.severity == ValidationSeverity.WARNING]

    for warning in warnings:
        logger.warning(str(warning))

    if errors:
        raise ConfigError(
            "Form configuration validation failed",
            form_id=descriptor.form_id,
            issues=[str(e) for e in errors],
        )


def format_validation_report(issues: List[ValidationIssue]) -> str:
    """Format validation issues as a readable report."""
    if not issues:
        return "Configuration is valid."

    errors = [i for i in issues if i.severity == ValidationSeverity.ERROR]
    warnings = [i for i in issues if i.severity == ValidationSeverity.WARNING]

    lines = []

    if errors:
        lines.append(f"Found {len(errors)} error(s):")
        lines.append("-" * 40)
        for error in errors:
            lines.append(str(error))
            lines.append("")

    if warnings:
        lines.append(f"Found {len(warnings)} warning(s):")
        lines.append("-" * 40)
        for warning in warnings:
            lines.append(str(warning))
            lines.append("")

    return "\n".join(lines)
