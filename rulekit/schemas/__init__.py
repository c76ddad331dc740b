"""Rule attribute schemas."""

from rulekit.schemas.attr_types import (
    AttributeSpec,
    AttributeValue,
    AttrKind,
    BoolKind,
    Constraint,
    DependencyRef,
    DepKind,
    EnumKind,
    IntKind,
    ListKind,
    OptionKind,
    SourceKind,
    StringKind,
    validate,
    validate_attributes,
)
from rulekit.schemas.attrs import attrs

__all__ = [
    "AttributeSpec",
    "AttributeValue",
    "AttrKind",
    "BoolKind",
    "Constraint",
    "DependencyRef",
    "DepKind",
    "EnumKind",
    "IntKind",
    "ListKind",
    "OptionKind",
    "SourceKind",
    "StringKind",
    "validate",
    "validate_attributes",
    "attrs",
]
