"""Attribute type system: typed schemas for rule attributes.

Validates raw attribute values (as read from configuration) against their
declared kind and coerces them structurally:
- string, boolean, integer: exact types, no widening (bool is not int)
- list<kind>: element-wise, first failure wins, annotated with its index
- option<kind>: None or a valid inner value
- enum: member of a closed set of strings
- dependency: a target label, coerced to a DependencyRef
- source-path: a normalised relative POSIX path

Defaults are validated once when the spec is bound to a rule, never per
call.
"""

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from rulekit.errors import SchemaDefinitionError, SchemaError, SchemaErrorKind
from rulekit.providers import ProviderKind, ProviderTag, provider_kind

_MISSING = object()


@dataclass(frozen=True)
class Constraint:
    """Extra value constraints, with JSON Schema keyword meanings."""

    pattern: Optional[str] = None
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None

    def check(self, value: Any) -> Optional[str]:
        """Return a description of the violated bound, or None."""
        if isinstance(value, str) and self.pattern is not None:
            if not re.fullmatch(self.pattern, value):
                return f"string matching {self.pattern}"
        if isinstance(value, int) and not isinstance(value, bool):
            if self.minimum is not None and value < self.minimum:
                return f"integer >= {self.minimum}"
            if self.maximum is not None and value > self.maximum:
                return f"integer <= {self.maximum}"
        if isinstance(value, tuple):
            if self.min_items is not None and len(value) < self.min_items:
                return f"at least {self.min_items} items"
            if self.max_items is not None and len(value) > self.max_items:
                return f"at most {self.max_items} items"
        return None


@dataclass(frozen=True)
class DependencyRef:
    """Reference to another rule instance by label. Does not own it."""

    label: str

    def __str__(self) -> str:
        return self.label


class AttrKind:
    """Base class for attribute kinds."""

    name = "any"

    def describe(self) -> str:
        return self.name

    def coerce(self, value: Any, attribute: str, path: str) -> Any:
        raise NotImplementedError

    def _mismatch(self, value: Any, attribute: str, path: str) -> SchemaError:
        return SchemaError(
            SchemaErrorKind.TYPE_MISMATCH,
            attribute,
            expected=self.describe(),
            actual=value,
            path=path,
        )

    def dependencies(self, value: Any) -> List[DependencyRef]:
        """Dependency references held in an already-coerced value."""
        return []

    def canonical(self, value: Any) -> Any:
        """JSON-ready form of a coerced value, used in configuration keys."""
        return value

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash((type(self), self.describe()))

    def __repr__(self) -> str:
        return f"<attr {self.describe()}>"


class StringKind(AttrKind):
    name = "string"

    def coerce(self, value, attribute, path):
        if not isinstance(value, str):
            raise self._mismatch(value, attribute, path)
        return value


class BoolKind(AttrKind):
    name = "boolean"

    def coerce(self, value, attribute, path):
        if not isinstance(value, bool):
            raise self._mismatch(value, attribute, path)
        return value


class IntKind(AttrKind):
    name = "integer"

    def coerce(self, value, attribute, path):
        if not isinstance(value, int) or isinstance(value, bool):
            raise self._mismatch(value, attribute, path)
        return value


class ListKind(AttrKind):
    name = "list"

    def __init__(self, inner: AttrKind):
        self.inner = inner

    def describe(self) -> str:
        return f"list<{self.inner.describe()}>"

    def coerce(self, value, attribute, path):
        if not isinstance(value, (list, tuple)):
            raise self._mismatch(value, attribute, path)
        return tuple(
            self.inner.coerce(item, attribute, f"{path}[{i}]")
            for i, item in enumerate(value)
        )

    def dependencies(self, value):
        refs: List[DependencyRef] = []
        for item in value:
            refs.extend(self.inner.dependencies(item))
        return refs

    def canonical(self, value):
        return [self.inner.canonical(item) for item in value]


class OptionKind(AttrKind):
    name = "option"

    def __init__(self, inner: AttrKind):
        self.inner = inner

    def describe(self) -> str:
        return f"option<{self.inner.describe()}>"

    def coerce(self, value, attribute, path):
        if value is None:
            return None
        return self.inner.coerce(value, attribute, path)

    def dependencies(self, value):
        return [] if value is None else self.inner.dependencies(value)

    def canonical(self, value):
        return None if value is None else self.inner.canonical(value)


class EnumKind(AttrKind):
    name = "enum"

    def __init__(self, values: Iterable[str]):
        values = tuple(values)
        if not values:
            raise SchemaDefinitionError("enum attribute needs at least one value")
        for v in values:
            if not isinstance(v, str):
                raise SchemaDefinitionError(f"enum values must be strings, got {v!r}")
        self.values: FrozenSet[str] = frozenset(values)
        self._order: Tuple[str, ...] = values

    def describe(self) -> str:
        return "enum(" + ", ".join(self._order) + ")"

    def coerce(self, value, attribute, path):
        if not isinstance(value, str):
            raise self._mismatch(value, attribute, path)
        if value not in self.values:
            raise SchemaError(
                SchemaErrorKind.ENUM_VALUE_NOT_ALLOWED,
                attribute,
                expected=self.describe(),
                actual=value,
                path=path,
                allowed=self._order,
            )
        return value


class DepKind(AttrKind):
    name = "dependency"

    def __init__(self, providers: Iterable[ProviderTag] = ()):
        try:
            kinds = [provider_kind(p) for p in providers]
        except ValueError as e:
            raise SchemaDefinitionError(f"unknown provider kind: {e}") from e
        self.providers: Tuple[ProviderKind, ...] = tuple(dict.fromkeys(kinds))

    def describe(self) -> str:
        if not self.providers:
            return "dependency"
        return "dependency(" + ", ".join(p.value for p in self.providers) + ")"

    def coerce(self, value, attribute, path):
        if isinstance(value, DependencyRef):
            return value
        if not isinstance(value, str):
            raise self._mismatch(value, attribute, path)
        if not value.strip():
            raise SchemaError(
                SchemaErrorKind.CONSTRAINT_VIOLATION,
                attribute,
                expected="non-empty target label",
                actual=value,
                path=path,
            )
        return DependencyRef(value.strip())

    def dependencies(self, value):
        return [value]

    def canonical(self, value):
        return value.label


class SourceKind(AttrKind):
    name = "source-path"

    def coerce(self, value, attribute, path):
        if not isinstance(value, str):
            raise self._mismatch(value, attribute, path)
        posix = PurePosixPath(value.replace("\\", "/"))
        if not value or posix.is_absolute() or ".." in posix.parts:
            raise SchemaError(
                SchemaErrorKind.CONSTRAINT_VIOLATION,
                attribute,
                expected="relative source path inside the package",
                actual=value,
                path=path,
            )
        return str(posix)


@dataclass(frozen=True)
class AttributeSpec:
    """Declaration of one rule attribute.

    An attribute without a default is required. ``name`` is empty until the
    spec is bound into a RuleSchema.
    """

    kind: AttrKind
    name: str = ""
    default: Any = _MISSING
    constraint: Optional[Constraint] = None
    doc: str = ""

    @property
    def required(self) -> bool:
        return self.default is _MISSING

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


def make_spec(
    kind: AttrKind,
    default: Any = _MISSING,
    required: Optional[bool] = None,
    constraint: Optional[Constraint] = None,
    doc: str = "",
) -> AttributeSpec:
    """Build an AttributeSpec, rejecting required+default combinations."""
    if required and default is not _MISSING:
        raise SchemaDefinitionError(
            "attribute cannot be both required and have a default"
        )
    if required is False and default is _MISSING:
        if not isinstance(kind, (OptionKind, ListKind)):
            raise SchemaDefinitionError(
                "optional attribute needs a default value"
            )
        default = None if isinstance(kind, OptionKind) else []
    return AttributeSpec(kind=kind, default=default, constraint=constraint, doc=doc)


@dataclass(frozen=True)
class AttributeValue:
    """A validated value bound to one attribute for one invocation."""

    name: str
    kind: AttrKind
    value: Any
    defaulted: bool = False

    def dependencies(self) -> List[DependencyRef]:
        return self.kind.dependencies(self.value)

    def canonical(self) -> Any:
        return self.kind.canonical(self.value)


def _coerce(spec: AttributeSpec, raw: Any, path: str) -> Any:
    value = spec.kind.coerce(raw, spec.name, path)
    if spec.constraint is not None:
        violated = spec.constraint.check(value)
        if violated is not None:
            raise SchemaError(
                SchemaErrorKind.CONSTRAINT_VIOLATION,
                spec.name,
                expected=violated,
                actual=raw,
                path=path,
            )
    return value


def coerce_default(spec: AttributeSpec, rule: str = "") -> Any:
    """Validate a spec's declared default. Called once at bind time.

    Raises:
        SchemaDefinitionError: If the default does not satisfy the kind.
    """
    try:
        return _coerce(spec, spec.default, spec.name)
    except SchemaError as e:
        raise SchemaDefinitionError(
            f"default for '{spec.name}' is invalid: {e.message}",
            rule=rule,
            attribute=spec.name,
        ) from e


def validate(
    spec: AttributeSpec,
    raw_value: Any = _MISSING,
    rule: str = "",
    coerced_default: Any = _MISSING,
) -> AttributeValue:
    """Validate one raw value against its spec.

    Args:
        spec: Attribute declaration.
        raw_value: Raw value; omit when the attribute was not supplied.
        rule: Rule name used in error messages.
        coerced_default: Default already validated at registration time.
            Falls back to validating ``spec.default`` when not given.

    Returns:
        AttributeValue with the coerced value.

    Raises:
        SchemaError: On type mismatch, missing required value, value outside
            an enum, or constraint violation.
    """
    if raw_value is _MISSING:
        if spec.required:
            raise SchemaError(
                SchemaErrorKind.MISSING_REQUIRED,
                spec.name,
                expected=spec.kind.describe(),
                rule=rule,
            )
        if coerced_default is _MISSING:
            coerced_default = _coerce(spec, spec.default, spec.name)
        return AttributeValue(spec.name, spec.kind, coerced_default, defaulted=True)

    try:
        value = _coerce(spec, raw_value, spec.name)
    except SchemaError as e:
        raise e.with_rule(rule) if rule else e
    return AttributeValue(spec.name, spec.kind, value)


def validate_attributes(
    specs: Sequence[AttributeSpec],
    raw: Mapping[str, Any],
    rule: str = "",
    defaults: Optional[Mapping[str, Any]] = None,
) -> Dict[str, AttributeValue]:
    """Validate a whole raw attribute mapping in declared order.

    Raises:
        SchemaError: UnknownAttribute for names not in ``specs``, otherwise
            the first per-attribute failure.
    """
    known = {s.name for s in specs}
    for name in raw:
        if name not in known:
            raise SchemaError(
                SchemaErrorKind.UNKNOWN_ATTRIBUTE,
                name,
                expected="one of " + ", ".join(sorted(known)) if known else "no attributes",
                actual=raw[name],
                rule=rule,
            )

    defaults = defaults or {}
    values: Dict[str, AttributeValue] = {}
    for spec in specs:
        values[spec.name] = validate(
            spec,
            raw.get(spec.name, _MISSING),
            rule=rule,
            coerced_default=defaults.get(spec.name, _MISSING),
        )
    return values
