"""Rule registry: named, immutable rule schemas.

The registry is populated during an initialization phase, then frozen.
After that it is read-only and safe for concurrent lookups. Registration is
append-only; there is no removal.
"""

import inspect
import logging
import re
import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rulekit.errors import (
    DuplicateRuleDefinitionError,
    RegistryFrozenError,
    SchemaDefinitionError,
    UnknownRuleError,
)
from rulekit.providers import ProviderKind, ProviderTag, provider_kind
from rulekit.schemas.attr_types import AttributeSpec, coerce_default

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Members of the ctx.attrs view; an attribute of the same name would be shadowed.
RESERVED_ATTR_NAMES = frozenset({"get", "items", "keys", "values", "_values"})

Implementation = Callable[[Any], Any]


@dataclass(frozen=True)
class RuleSchema:
    """A rule definition: attributes, implementation and provider contract.

    Attributes:
        name: Unique rule name.
        attributes: Ordered attribute declarations, each with its name bound.
        implementation: Callable taking a RuleContext, returning providers.
        is_toolchain_rule: Toolchain rules must expose capability providers.
        provides: Provider tags the implementation must always return.
        defaults: Attribute defaults, validated once at construction.
        doc: Free-form description.
    """

    name: str
    attributes: Tuple[AttributeSpec, ...]
    implementation: Implementation
    is_toolchain_rule: bool = False
    provides: Tuple[ProviderKind, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=dict)
    doc: str = ""

    def attribute(self, name: str) -> Optional[AttributeSpec]:
        for spec in self.attributes:
            if spec.name == name:
                return spec
        return None

    @property
    def attribute_names(self) -> List[str]:
        return [spec.name for spec in self.attributes]


def _check_implementation(name: str, implementation: Any) -> None:
    """Implementation must be callable with exactly one positional ctx."""
    if not callable(implementation):
        raise SchemaDefinitionError(
            f"implementation of rule '{name}' is not callable", rule=name
        )
    try:
        sig = inspect.signature(implementation)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are accepted as-is
        return
    try:
        sig.bind(object())
    except TypeError as e:
        raise SchemaDefinitionError(
            f"implementation of rule '{name}' must accept a single ctx "
            f"argument: {e}",
            rule=name,
        ) from e


def rule(
    name: str,
    impl: Implementation,
    attrs: Optional[Mapping[str, AttributeSpec]] = None,
    is_toolchain_rule: bool = False,
    provides: Iterable[ProviderTag] = (),
    doc: str = "",
) -> RuleSchema:
    """Build a RuleSchema from an attribute mapping.

    Binds attribute names, validates every default once and checks the
    implementation signature.

    Raises:
        SchemaDefinitionError: On a malformed name, default or implementation.
    """
    if not NAME_PATTERN.match(name or ""):
        raise SchemaDefinitionError(f"invalid rule name: {name!r}", rule=name)
    _check_implementation(name, impl)

    bound: List[AttributeSpec] = []
    defaults: Dict[str, Any] = {}
    for attr_name, spec in (attrs or {}).items():
        if not NAME_PATTERN.match(attr_name):
            raise SchemaDefinitionError(
                f"invalid attribute name: {attr_name!r}",
                rule=name,
                attribute=attr_name,
            )
        if attr_name in RESERVED_ATTR_NAMES:
            raise SchemaDefinitionError(
                f"attribute name {attr_name!r} is reserved",
                rule=name,
                attribute=attr_name,
            )
        if not isinstance(spec, AttributeSpec):
            raise SchemaDefinitionError(
                f"attribute '{attr_name}' is not an attribute declaration",
                rule=name,
                attribute=attr_name,
            )
        spec = replace(spec, name=attr_name)
        if spec.has_default:
            defaults[attr_name] = coerce_default(spec, rule=name)
        bound.append(spec)

    try:
        tags = tuple(dict.fromkeys(provider_kind(p) for p in provides))
    except ValueError as e:
        raise SchemaDefinitionError(
            f"rule '{name}' declares an unknown provider: {e}", rule=name
        ) from e

    return RuleSchema(
        name=name,
        attributes=tuple(bound),
        implementation=impl,
        is_toolchain_rule=is_toolchain_rule,
        provides=tags,
        defaults=MappingProxyType(defaults),
        doc=doc or (inspect.getdoc(impl) or ""),
    )


@dataclass(frozen=True)
class RuleId:
    """Handle returned by registration."""

    name: str
    ordinal: int


class RuleRegistry:
    """Append-only store of rule schemas keyed by name."""

    def __init__(self, schemas: Sequence[RuleSchema] = ()):
        self._rules: Dict[str, RuleSchema] = {}
        self._lock = threading.Lock()
        self._frozen = False
        for schema in schemas:
            self.register(schema)

    def register(self, schema: RuleSchema) -> RuleId:
        """Register a schema.

        Raises:
            DuplicateRuleDefinitionError: If the name is already registered.
            RegistryFrozenError: If the registry has been frozen.
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(schema.name)
            if schema.name in self._rules:
                raise DuplicateRuleDefinitionError(schema.name)
            self._rules[schema.name] = schema
            ordinal = len(self._rules) - 1
        logger.debug(
            "Registered rule %s (toolchain=%s, attrs=%s)",
            schema.name,
            schema.is_toolchain_rule,
            schema.attribute_names,
        )
        return RuleId(name=schema.name, ordinal=ordinal)

    def lookup(self, name: str) -> RuleSchema:
        """Return the schema registered under ``name``.

        Raises:
            UnknownRuleError: If no such rule exists.
        """
        try:
            return self._rules[name]
        except KeyError:
            raise UnknownRuleError(name, known=self._rules) from None

    def freeze(self) -> None:
        """End the initialization phase; later registrations fail."""
        with self._lock:
            self._frozen = True
        logger.debug("Rule registry frozen with %d rules", len(self._rules))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        return list(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __len__(self) -> int:
        return len(self._rules)


# Process default registry, built on first use
_default_registry: Optional[RuleRegistry] = None
_default_lock = threading.Lock()


def default_registry() -> RuleRegistry:
    """Get or create the process-wide registry with built-in toolchains."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            from rulekit.toolchains import register_builtin_toolchains

            registry = RuleRegistry()
            register_builtin_toolchains(registry)
            registry.freeze()
            _default_registry = registry
    return _default_registry
