"""Attribute declaration helpers used by rule authors.

    attrs.string(default="shared")
    attrs.list(attrs.string(), default=[])
    attrs.dep(providers=[RunInfo])
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

from rulekit.providers import ProviderTag
from rulekit.schemas.attr_types import (
    _MISSING,
    AttributeSpec,
    AttrKind,
    BoolKind,
    Constraint,
    DepKind,
    EnumKind,
    IntKind,
    ListKind,
    OptionKind,
    SourceKind,
    StringKind,
    make_spec,
)

KindLike = Union[AttributeSpec, AttrKind]


def _kind_of(inner: KindLike) -> AttrKind:
    return inner.kind if isinstance(inner, AttributeSpec) else inner


def _constraint(**bounds: Any) -> Optional[Constraint]:
    bounds = {k: v for k, v in bounds.items() if v is not None}
    return Constraint(**bounds) if bounds else None


class attrs:
    """Namespace of attribute constructors."""

    @staticmethod
    def string(
        default: Any = _MISSING,
        doc: str = "",
        pattern: Optional[str] = None,
        required: Optional[bool] = None,
    ) -> AttributeSpec:
        return make_spec(
            StringKind(), default, required, _constraint(pattern=pattern), doc
        )

    @staticmethod
    def bool(default: Any = _MISSING, doc: str = "", required: Optional[bool] = None) -> AttributeSpec:
        return make_spec(BoolKind(), default, required, None, doc)

    @staticmethod
    def int(
        default: Any = _MISSING,
        doc: str = "",
        minimum: Optional[int] = None,
        maximum: Optional[int] = None,
        required: Optional[bool] = None,
    ) -> AttributeSpec:
        return make_spec(
            IntKind(),
            default,
            required,
            _constraint(minimum=minimum, maximum=maximum),
            doc,
        )

    @staticmethod
    def list(
        inner: KindLike,
        default: Any = _MISSING,
        doc: str = "",
        min_items: Optional[int] = None,
        max_items: Optional[int] = None,
        required: Optional[bool] = None,
    ) -> AttributeSpec:
        return make_spec(
            ListKind(_kind_of(inner)),
            default,
            required,
            _constraint(min_items=min_items, max_items=max_items),
            doc,
        )

    @staticmethod
    def option(inner: KindLike, default: Any = _MISSING, doc: str = "", required: Optional[bool] = None) -> AttributeSpec:
        return make_spec(OptionKind(_kind_of(inner)), default, required, None, doc)

    @staticmethod
    def enum(
        values: Iterable[str],
        default: Any = _MISSING,
        doc: str = "",
        required: Optional[bool] = None,
    ) -> AttributeSpec:
        return make_spec(EnumKind(values), default, required, None, doc)

    @staticmethod
    def dep(
        providers: Iterable[ProviderTag] = (),
        default: Any = _MISSING,
        doc: str = "",
        required: Optional[bool] = None,
    ) -> AttributeSpec:
        return make_spec(DepKind(providers), default, required, None, doc)

    @staticmethod
    def source(default: Any = _MISSING, doc: str = "", required: Optional[bool] = None) -> AttributeSpec:
        return make_spec(SourceKind(), default, required, None, doc)
