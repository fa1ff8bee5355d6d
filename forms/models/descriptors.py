"""Declarative form and field descriptors.

Descriptors are immutable once supplied: list arguments are frozen into
tuples and enum-like strings are normalized at construction. Structural
checks (unique names, option lists, reference integrity, cycles) are run by
``forms.lib.validate`` when a descriptor is installed into a controller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, List, Mapping, Optional, Tuple

from forms.lib.errors import ConfigError

Validator = Callable[[Any], Optional[str]]
ComputeFn = Callable[[Mapping[str, Any]], Any]


class FieldKind(str, Enum):
    """Kind tag for the value a field holds."""

    TEXT = "text"
    CHOICE = "choice"
    DATE = "date"
    BOOLEAN = "boolean"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: "str | FieldKind") -> "FieldKind":
        if isinstance(value, cls):
            return value
        aliases = {
            "dropdown": cls.CHOICE,
            "select": cls.CHOICE,
            "datepicker": cls.DATE,
            "checkbox": cls.BOOLEAN,
            "bool": cls.BOOLEAN,
        }
        key = str(value).strip().lower().replace("_", "")
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ValueError(f"Invalid field kind '{value}'. Must be one of: {valid}")


class ConditionOperator(str, Enum):
    """Fixed operator set for visibility conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    @classmethod
    def parse(cls, value: "str | ConditionOperator") -> "ConditionOperator":
        """Accept ``notEquals``, ``not_equals`` and ``NOT_EQUALS`` alike."""
        if isinstance(value, cls):
            return value
        compact = str(value).strip().lower().replace("_", "")
        for member in cls:
            if member.value.replace("_", "") == compact:
                return member
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Invalid condition operator '{value}'. Must be one of: {valid}")


@dataclass(frozen=True)
class FieldOption:
    """Selectable option of a choice field."""

    label: str
    value: Any


@dataclass(frozen=True)
class Condition:
    """Predicate over another field's current value."""

    field_name: str
    operator: ConditionOperator
    value: Any = None

    def __post_init__(self) -> None:
        try:
            operator = ConditionOperator.parse(self.operator)
        except ValueError as e:
            raise ConfigError(str(e), field=self.field_name) from e
        object.__setattr__(self, "operator", operator)

    @classmethod
    def equals(cls, field_name: str, value: Any) -> "Condition":
        return cls(field_name, ConditionOperator.EQUALS, value)

    @classmethod
    def not_equals(cls, field_name: str, value: Any) -> "Condition":
        return cls(field_name, ConditionOperator.NOT_EQUALS, value)

    @classmethod
    def contains(cls, field_name: str, value: Any) -> "Condition":
        return cls(field_name, ConditionOperator.CONTAINS, value)

    @classmethod
    def greater_than(cls, field_name: str, value: Any) -> "Condition":
        return cls(field_name, ConditionOperator.GREATER_THAN, value)

    @classmethod
    def less_than(cls, field_name: str, value: Any) -> "Condition":
        return cls(field_name, ConditionOperator.LESS_THAN, value)

    @classmethod
    def is_empty(cls, field_name: str) -> "Condition":
        return cls(field_name, ConditionOperator.IS_EMPTY)

    @classmethod
    def is_not_empty(cls, field_name: str) -> "Condition":
        return cls(field_name, ConditionOperator.IS_NOT_EMPTY)

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_name": self.field_name,
            "operator": self.operator.value,
            "value": self.value,
        }


@dataclass(frozen=True)
class FieldDescriptor:
    """Declaration of one named slot in the value map.

    Attributes:
        name: Unique key across the whole descriptor tree
        kind: Value kind tag (text, choice, date, boolean, custom)
        label: Display label
        default: Seed value recorded as the initial snapshot
        validators: Ordered validators; the first failure wins
        options: Choices for ``choice`` fields (required, non-empty)
        compute_from: Names this field is derived from
        compute_fn: ``values -> value`` derivation for computed fields
        visible_when: Conditions, all of which must hold for visibility
        mask: Optional input mask for text fields (see ``forms.lib.masks``)
        hint: Optional helper text
    """

    name: str
    kind: FieldKind = FieldKind.TEXT
    label: str = ""
    default: Any = None
    validators: Tuple[Validator, ...] = ()
    options: Tuple[FieldOption, ...] = ()
    compute_from: Tuple[str, ...] = ()
    compute_fn: Optional[ComputeFn] = field(default=None, compare=False)
    visible_when: Tuple[Condition, ...] = ()
    mask: Optional[str] = None
    hint: Optional[str] = None

    def __post_init__(self) -> None:
        try:
            kind = FieldKind.parse(self.kind)
        except ValueError as e:
            raise ConfigError(str(e), field=self.name) from e
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "validators", tuple(self.validators))
        object.__setattr__(
            self,
            "options",
            tuple(
                o if isinstance(o, FieldOption) else FieldOption(**o)
                for o in self.options
            ),
        )
        object.__setattr__(self, "compute_from", tuple(dict.fromkeys(self.compute_from)))
        object.__setattr__(self, "visible_when", tuple(self.visible_when))
        if not self.label:
            object.__setattr__(self, "label", self.name.replace("_", " ").title())

    @property
    def is_computed(self) -> bool:
        return bool(self.compute_from) or self.compute_fn is not None

    @property
    def option_values(self) -> List[Any]:
        return [o.value for o in self.options]


@dataclass(frozen=True)
class FormDescriptor:
    """A form: either direct fields or nested sections, never both at one node.

    Sections may nest. Top-level sections double as wizard steps when a
    ``SessionController`` drives the form.
    """

    fields: Tuple[FieldDescriptor, ...] = ()
    sections: Tuple["FormDescriptor", ...] = ()
    form_id: Optional[str] = None
    autosave: bool = False
    title: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "sections", tuple(self.sections))

    @property
    def is_sectioned(self) -> bool:
        return bool(self.sections)

    def iter_fields(self) -> Iterator[FieldDescriptor]:
        """Yield every field in declaration order, depth-first through sections."""
        yield from self.fields
        for section in self.sections:
            yield from section.iter_fields()

    def all_fields(self) -> List[FieldDescriptor]:
        return list(self.iter_fields())

    def field_names(self) -> List[str]:
        return [f.name for f in self.iter_fields()]

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        for candidate in self.iter_fields():
            if candidate.name == name:
                return candidate
        return None

    def section(self, index: int) -> "FormDescriptor":
        """Return a top-level section; a flat form is its own single section."""
        if not 0 <= index < self.section_count:
            raise IndexError(f"Form has no section {index}")
        return self.sections[index] if self.sections else self

    @property
    def section_count(self) -> int:
        return len(self.sections) if self.sections else 1
