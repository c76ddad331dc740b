"""ProviderComposer - runs rule implementations and checks their output.

Post-conditions on what an implementation returns:
    - every item is a ProviderRecord
    - no two records share a tag
    - every tag the schema declares in ``provides`` is present
    - every record honours its own contract (non-empty invocation, ...)
    - toolchain rules expose at least one capability besides DefaultInfo
DefaultInfo is always present: an empty one is added when omitted.
"""

import logging
from typing import Any, Dict, List, Mapping

from rulekit.errors import ProviderContractViolation, RuleError, RuleImplementationError
from rulekit.executor.instance import ResolvedAttrs, RuleContext
from rulekit.platform import ExecutionPlatform
from rulekit.providers import (
    DefaultInfo,
    ProviderCollection,
    ProviderKind,
    ProviderRecord,
)
from rulekit.registry import RuleSchema

logger = logging.getLogger(__name__)


class ProviderComposer:
    """Invokes ``schema.implementation`` and validates the provider set."""

    def compose(
        self,
        schema: RuleSchema,
        resolved_attributes: Mapping[str, Any],
        platform: ExecutionPlatform,
        label: str = "",
    ) -> ProviderCollection:
        """Compose the provider set for one rule invocation.

        Args:
            schema: Rule being composed.
            resolved_attributes: Attribute values with dependencies already
                replaced by producer RuleInstances.
            platform: Execution platform for this configuration.
            label: Target label, defaults to the rule name.

        Returns:
            ProviderCollection with DefaultInfo first.

        Raises:
            ProviderContractViolation: If the output breaks a post-condition.
            RuleImplementationError: If the implementation itself raised.
        """
        ctx = RuleContext(
            label=label or schema.name,
            rule=schema.name,
            platform=platform,
            attrs=ResolvedAttrs(resolved_attributes),
        )

        try:
            result = schema.implementation(ctx)
        except RuleError:
            raise
        except Exception as e:
            raise RuleImplementationError(schema.name, e) from e

        records = self._normalize(schema, result)
        self._check_contract(schema, records)

        if ProviderKind.DEFAULT not in records:
            records = {ProviderKind.DEFAULT: DefaultInfo(), **records}
        else:
            default = records.pop(ProviderKind.DEFAULT)
            records = {ProviderKind.DEFAULT: default, **records}

        logger.debug(
            "Composed %s: %s", ctx.label, [tag.value for tag in records]
        )
        return ProviderCollection(records.values())

    def _normalize(self, schema: RuleSchema, result: Any) -> Dict[ProviderKind, ProviderRecord]:
        if result is None:
            result = []
        elif isinstance(result, ProviderRecord):
            result = [result]
        elif not isinstance(result, (list, tuple)):
            raise ProviderContractViolation(
                schema.name,
                "provider list",
                f"implementation returned {type(result).__name__}",
            )

        records: Dict[ProviderKind, ProviderRecord] = {}
        for item in result:
            if not isinstance(item, ProviderRecord):
                raise ProviderContractViolation(
                    schema.name,
                    "provider record",
                    f"implementation returned {type(item).__name__}",
                )
            if item.tag in records:
                raise ProviderContractViolation(
                    schema.name,
                    item.tag.value,
                    "provider returned more than once",
                )
            records[item.tag] = item
        return records

    def _check_contract(
        self, schema: RuleSchema, records: Dict[ProviderKind, ProviderRecord]
    ) -> None:
        for tag in schema.provides:
            if tag not in records:
                raise ProviderContractViolation(
                    schema.name, tag.value, "declared provider not returned"
                )

        for tag, record in records.items():
            missing: List[str] = record.contract_violations()
            if missing:
                raise ProviderContractViolation(
                    schema.name,
                    f"{tag.value}.{missing[0]}",
                    "required field is empty",
                )

        if schema.is_toolchain_rule:
            capabilities = [t for t in records if t is not ProviderKind.DEFAULT]
            if not capabilities:
                raise ProviderContractViolation(
                    schema.name,
                    "capability provider",
                    "toolchain rules must expose at least one capability",
                )
