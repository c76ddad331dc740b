"""Error types for rule schemas, providers and resolution.

Every error raised by rulekit derives from RuleError and carries an
ErrorCode so the surrounding build tool can report it uniformly:
- SchemaError: raw configuration does not match an attribute schema
- MissingProviderError / ProviderContractViolation: capability contracts
- DuplicateRuleDefinitionError / UnknownRuleError: registry misuse
- CyclicDependencyError: fatal, full cycle path reported

None of these are retried; composition is deterministic.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence


class ErrorCode(Enum):
    """Standardized error codes."""

    # Schema errors
    SCHEMA_ERROR = "SCHEMA_ERROR"
    SCHEMA_DEFINITION = "SCHEMA_DEFINITION"

    # Provider errors
    MISSING_PROVIDER = "MISSING_PROVIDER"
    PROVIDER_CONTRACT = "PROVIDER_CONTRACT"
    IMPLEMENTATION_FAILED = "IMPLEMENTATION_FAILED"

    # Registry errors
    DUPLICATE_RULE = "DUPLICATE_RULE"
    UNKNOWN_RULE = "UNKNOWN_RULE"
    REGISTRY_FROZEN = "REGISTRY_FROZEN"

    # Resolution errors
    CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"
    CHAIN_TOO_DEEP = "CHAIN_TOO_DEEP"

    # System errors
    CONFIG_ERROR = "CONFIG_ERROR"


class SchemaErrorKind(Enum):
    """What went wrong while validating a raw attribute value."""

    TYPE_MISMATCH = "TypeMismatch"
    MISSING_REQUIRED = "MissingRequired"
    ENUM_VALUE_NOT_ALLOWED = "EnumValueNotAllowed"
    CONSTRAINT_VIOLATION = "ConstraintViolation"
    UNKNOWN_ATTRIBUTE = "UnknownAttribute"


class RuleError(Exception):
    """Base exception for rulekit failures.

    Attributes:
        message: Error description.
        cause: Optional underlying exception being wrapped.
    """

    code = ErrorCode.SCHEMA_ERROR

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": False,
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details() or None,
                "retryable": False,
            },
        }


class SchemaError(RuleError):
    """A raw attribute value does not satisfy its declared schema.

    Attributes:
        kind: SchemaErrorKind describing the failure.
        rule: Rule name the attribute belongs to (may be empty while the
            value is validated outside a rule).
        attribute: Attribute name.
        path: Location inside the value, e.g. ``labels[2]``.
        expected: Human-readable description of what was expected.
        actual: The offending value.
    """

    code = ErrorCode.SCHEMA_ERROR

    def __init__(
        self,
        kind: SchemaErrorKind,
        attribute: str,
        expected: str,
        actual: Any = None,
        rule: str = "",
        path: str = "",
        allowed: Optional[Sequence[str]] = None,
    ):
        self.kind = kind
        self.rule = rule
        self.attribute = attribute
        self.path = path or attribute
        self.expected = expected
        self.actual = actual
        self.allowed = tuple(allowed) if allowed is not None else None
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"{self.rule}.{self.path}" if self.rule else self.path
        if self.kind is SchemaErrorKind.MISSING_REQUIRED:
            return f"{where}: required attribute missing ({self.expected})"
        if self.kind is SchemaErrorKind.ENUM_VALUE_NOT_ALLOWED:
            return (
                f"{where}: {self.actual!r} is not one of "
                f"{sorted(self.allowed or ())}"
            )
        if self.kind is SchemaErrorKind.UNKNOWN_ATTRIBUTE:
            return f"{where}: unknown attribute ({self.expected})"
        return f"{where}: expected {self.expected}, got {self.actual!r}"

    def with_rule(self, rule: str) -> "SchemaError":
        """Return a copy of this error attributed to ``rule``."""
        return SchemaError(
            self.kind,
            self.attribute,
            self.expected,
            self.actual,
            rule=rule,
            path=self.path,
            allowed=self.allowed,
        )

    def details(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "rule": self.rule,
            "attribute": self.attribute,
            "path": self.path,
            "expected": self.expected,
            "actual": repr(self.actual),
        }


class SchemaDefinitionError(RuleError):
    """An attribute or rule declaration is itself malformed."""

    code = ErrorCode.SCHEMA_DEFINITION

    def __init__(self, message: str, rule: str = "", attribute: str = ""):
        super().__init__(message)
        self.rule = rule
        self.attribute = attribute


class MissingProviderError(RuleError):
    """A dependency does not expose a provider its consumer requires."""

    code = ErrorCode.MISSING_PROVIDER

    def __init__(
        self,
        rule: str,
        required_kind: str,
        available_kinds: Iterable[str],
        attribute: str = "",
        dependency: str = "",
    ):
        self.rule = rule
        self.attribute = attribute
        self.dependency = dependency
        self.required_kind = required_kind
        self.available_kinds = tuple(sorted(available_kinds))
        via = f" via '{attribute}' -> '{dependency}'" if attribute else ""
        super().__init__(
            f"Rule '{rule}' requires provider {required_kind}{via}, "
            f"available: {list(self.available_kinds)}"
        )

    def details(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "attribute": self.attribute,
            "dependency": self.dependency,
            "required_kind": self.required_kind,
            "available_kinds": list(self.available_kinds),
        }


class ProviderContractViolation(RuleError):
    """A rule implementation did not honour its provider contract."""

    code = ErrorCode.PROVIDER_CONTRACT

    def __init__(self, rule: str, missing: str, reason: str = ""):
        self.rule = rule
        self.missing = missing
        message = f"Rule '{rule}' violates its provider contract: {missing}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        return {"rule": self.rule, "missing": self.missing}


class RuleImplementationError(RuleError):
    """The rule implementation raised while composing providers."""

    code = ErrorCode.IMPLEMENTATION_FAILED

    def __init__(self, rule: str, cause: Exception):
        super().__init__(
            f"Implementation of rule '{rule}' failed: "
            f"{type(cause).__name__}: {cause}",
            cause=cause,
        )
        self.rule = rule


class DuplicateRuleDefinitionError(RuleError):
    """A rule with the same name was already registered."""

    code = ErrorCode.DUPLICATE_RULE

    def __init__(self, name: str):
        super().__init__(f"Rule '{name}' is already registered")
        self.name = name


class UnknownRuleError(RuleError):
    """No rule is registered under the requested name."""

    code = ErrorCode.UNKNOWN_RULE

    def __init__(self, name: str, known: Iterable[str] = ()):
        self.name = name
        self.known = tuple(sorted(known))
        super().__init__(f"Unknown rule: '{name}'")

    def details(self) -> Dict[str, Any]:
        return {"name": self.name, "known": list(self.known)}


class RegistryFrozenError(RuleError):
    """Registration attempted after the registry left its init phase."""

    code = ErrorCode.REGISTRY_FROZEN

    def __init__(self, name: str):
        super().__init__(
            f"Cannot register rule '{name}': registry is frozen"
        )
        self.name = name


class CyclicDependencyError(RuleError):
    """A rule depends on itself, directly or transitively."""

    code = ErrorCode.CIRCULAR_DEPENDENCY

    def __init__(self, cycle: Sequence[str]):
        self.cycle: List[str] = list(cycle)
        super().__init__(
            "Circular dependency detected: " + " -> ".join(self.cycle)
        )

    def details(self) -> Dict[str, Any]:
        return {"chain": list(self.cycle)}


class ResolutionDepthError(RuleError):
    """Dependency chain exceeded the configured maximum depth."""

    code = ErrorCode.CHAIN_TOO_DEEP

    def __init__(self, max_depth: int, chain: Sequence[str]):
        self.max_depth = max_depth
        self.chain = list(chain)
        super().__init__(
            f"Dependency chain exceeds maximum depth {max_depth}: "
            + " -> ".join(self.chain)
        )


class ConfigurationError(RuleError):
    """Configuration file has an invalid shape or value.

    Attributes:
        message: Description of the error.
        field: Optional field name that failed.
    """

    code = ErrorCode.CONFIG_ERROR

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
