"""DependencyInjector - turns dependency attributes into producer instances.

Each dependency label is resolved through the resolver (recursively, on the
consumer's platform) and the producer is checked against the provider kinds
the attribute requires. Dependencies nested in list<dep> and option<dep>
are resolved element-wise.
"""

import logging
from typing import Any, Callable, Dict, Mapping

from rulekit.errors import MissingProviderError
from rulekit.executor.instance import RuleInstance
from rulekit.platform import ExecutionPlatform
from rulekit.registry import RuleSchema
from rulekit.schemas.attr_types import (
    AttributeValue,
    AttrKind,
    DependencyRef,
    DepKind,
    ListKind,
    OptionKind,
)

logger = logging.getLogger(__name__)

ResolveLabel = Callable[[str, ExecutionPlatform], RuleInstance]


class DependencyInjector:
    """Resolves dependency-kind attribute values for one rule invocation."""

    def inject(
        self,
        schema: RuleSchema,
        values: Mapping[str, AttributeValue],
        platform: ExecutionPlatform,
        resolve_label: ResolveLabel,
    ) -> Dict[str, Any]:
        """Return attribute values with dependencies replaced by instances.

        Args:
            schema: Consumer rule.
            values: Validated attribute values of the consumer.
            platform: Platform dependencies are resolved for.
            resolve_label: Callback resolving a label to a RuleInstance.

        Raises:
            MissingProviderError: A producer lacks a required provider kind.
            CyclicDependencyError: Propagated from the resolver.
        """
        resolved: Dict[str, Any] = {}
        for name, value in values.items():
            if not value.dependencies():
                resolved[name] = value.value
                continue
            resolved[name] = self._resolve(
                schema, name, value.kind, value.value, platform, resolve_label
            )
        return resolved

    def _resolve(
        self,
        schema: RuleSchema,
        attribute: str,
        kind: AttrKind,
        value: Any,
        platform: ExecutionPlatform,
        resolve_label: ResolveLabel,
    ) -> Any:
        if isinstance(kind, DepKind):
            return self._resolve_dep(schema, attribute, kind, value, platform, resolve_label)
        if isinstance(kind, ListKind):
            return tuple(
                self._resolve(schema, attribute, kind.inner, item, platform, resolve_label)
                for item in value
            )
        if isinstance(kind, OptionKind):
            if value is None:
                return None
            return self._resolve(schema, attribute, kind.inner, value, platform, resolve_label)
        return value

    def _resolve_dep(
        self,
        schema: RuleSchema,
        attribute: str,
        kind: DepKind,
        ref: DependencyRef,
        platform: ExecutionPlatform,
        resolve_label: ResolveLabel,
    ) -> RuleInstance:
        producer = resolve_label(ref.label, platform)
        check_providers(schema.name, attribute, kind, producer)
        logger.debug(
            "%s.%s -> %s satisfies %s",
            schema.name,
            attribute,
            producer.label,
            [p.value for p in kind.providers],
        )
        return producer


def check_providers(
    rule: str, attribute: str, kind: DepKind, producer: RuleInstance
) -> None:
    """Raise unless ``producer`` exposes every provider ``kind`` requires.

    An empty requirement is trivially satisfied.
    """
    available = producer.providers.tags
    for required in kind.providers:
        if required not in available:
            raise MissingProviderError(
                rule=rule,
                required_kind=required.value,
                available_kinds=[t.value for t in available],
                attribute=attribute,
                dependency=producer.label,
            )
