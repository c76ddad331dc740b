"""Resolved rule instances and the context handed to implementations."""

from collections import abc
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from rulekit.errors import MissingProviderError
from rulekit.platform import ConfigurationKey, ExecutionPlatform
from rulekit.providers import ProviderCollection, ProviderRecord, ProviderTag, provider_kind
from rulekit.schemas.attr_types import AttributeValue


@dataclass(frozen=True, eq=False)
class RuleInstance:
    """One composed rule for one configuration. Shared and never mutated.

    Attributes:
        key: ConfigurationKey identifying this instance.
        label: Target label it was requested under (rule name if none).
        attributes: name -> AttributeValue; dependency values hold
            DependencyRef labels, not the producer instances.
        providers: Providers keyed uniquely by tag.
    """

    key: ConfigurationKey
    label: str
    attributes: Mapping[str, AttributeValue]
    providers: ProviderCollection

    @property
    def rule(self) -> str:
        return self.key.rule

    def provider(self, tag: ProviderTag) -> Optional[ProviderRecord]:
        """Look up a provider by tag; None when absent."""
        return self.providers.get(tag)

    def __getitem__(self, tag: ProviderTag) -> ProviderRecord:
        record = self.providers.get(tag)
        if record is None:
            raise MissingProviderError(
                rule=self.rule,
                required_kind=provider_kind(tag).value,
                available_kinds=[t.value for t in self.providers.tags],
            )
        return record

    def __contains__(self, tag: object) -> bool:
        return tag in self.providers

    def attr(self, name: str) -> Any:
        return self.attributes[name].value

    def describe(self) -> Dict[str, Any]:
        """JSON-ready summary for graph evaluators and audit output."""
        return {
            "label": self.label,
            "rule": self.rule,
            "key": self.key.digest,
            "attributes": {
                name: value.canonical() for name, value in self.attributes.items()
            },
            "providers": {
                record.tag.value: record.to_dict() for record in self.providers
            },
        }

    def __repr__(self) -> str:
        return f"RuleInstance({self.label!r}, {self.key})"


class ResolvedAttrs(abc.Mapping):
    """Read-only attribute view: ``ctx.attrs.link_style`` or ``ctx.attrs["link_style"]``.

    Dependency attributes hold the producer RuleInstance (or a tuple of them
    for list<dep>).
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Any]):
        object.__setattr__(self, "_values", MappingProxyType(dict(values)))

    def __getattr__(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"rule has no attribute '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("rule attributes are read-only")

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ResolvedAttrs({dict(self._values)!r})"


@dataclass(frozen=True)
class RuleContext:
    """Argument passed to rule implementations."""

    label: str
    rule: str
    platform: ExecutionPlatform
    attrs: ResolvedAttrs
