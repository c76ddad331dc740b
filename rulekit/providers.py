"""Provider records: the capabilities a rule instance exposes.

Providers form a closed set keyed by ProviderKind. Each variant is a frozen
dataclass; consumers look records up by tag rather than probing fields.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Optional, Tuple, Type, Union


class ProviderKind(str, Enum):
    """Capability tags."""

    DEFAULT = "DefaultInfo"
    RUN = "RunInfo"
    COMPILER = "CompilerInfo"
    LINKER = "LinkerInfo"
    INTERPRETER = "InterpreterInfo"
    PLATFORM = "PlatformInfo"

    def __str__(self) -> str:
        return self.value


def _as_tuple(value: Any) -> Tuple[Any, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class ProviderRecord:
    """Base class for every provider variant."""

    TAG: ClassVar[ProviderKind]

    @property
    def tag(self) -> ProviderKind:
        return self.TAG

    def contract_violations(self) -> List[str]:
        """Return the dotted names of required fields that are empty."""
        return []

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, ProviderRecord):
                value = value.to_dict()
            elif isinstance(value, tuple):
                value = list(value)
            data[f.name] = value
        return data


@dataclass(frozen=True)
class DefaultInfo(ProviderRecord):
    """Outputs a target produces by default. Present on every instance."""

    TAG: ClassVar[ProviderKind] = ProviderKind.DEFAULT

    default_outputs: Tuple[str, ...] = ()
    other_outputs: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "default_outputs", _as_tuple(self.default_outputs))
        object.__setattr__(self, "other_outputs", _as_tuple(self.other_outputs))


@dataclass(frozen=True)
class RunInfo(ProviderRecord):
    """An invocation descriptor: the argv prefix used to run a tool."""

    TAG: ClassVar[ProviderKind] = ProviderKind.RUN

    args: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "args", _as_tuple(self.args))

    def contract_violations(self) -> List[str]:
        return [] if self.args else ["args"]


def _run_info(value: Union[RunInfo, Iterable[str], str, None]) -> RunInfo:
    if isinstance(value, RunInfo):
        return value
    return RunInfo(args=_as_tuple(value))


@dataclass(frozen=True)
class CompilerInfo(ProviderRecord):
    TAG: ClassVar[ProviderKind] = ProviderKind.COMPILER

    language: str
    compiler: RunInfo
    compiler_type: str = ""
    c_compiler: Optional[RunInfo] = None
    flags: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "compiler", _run_info(self.compiler))
        if self.c_compiler is not None:
            object.__setattr__(self, "c_compiler", _run_info(self.c_compiler))
        object.__setattr__(self, "flags", _as_tuple(self.flags))

    def contract_violations(self) -> List[str]:
        return [] if self.compiler.args else ["compiler.args"]


@dataclass(frozen=True)
class LinkerInfo(ProviderRecord):
    TAG: ClassVar[ProviderKind] = ProviderKind.LINKER

    linker: RunInfo
    archiver: RunInfo = field(default_factory=RunInfo)
    linker_type: str = "gnu"
    archiver_type: str = "gnu"
    link_style: str = "shared"
    binary_extension: str = ""
    object_file_extension: str = "o"
    shared_library_name_format: str = "lib{}.so"
    static_library_extension: str = "a"

    def __post_init__(self):
        object.__setattr__(self, "linker", _run_info(self.linker))
        object.__setattr__(self, "archiver", _run_info(self.archiver))

    def contract_violations(self) -> List[str]:
        return [] if self.linker.args else ["linker.args"]


@dataclass(frozen=True)
class InterpreterInfo(ProviderRecord):
    TAG: ClassVar[ProviderKind] = ProviderKind.INTERPRETER

    language: str
    interpreter: RunInfo
    host_interpreter: Optional[RunInfo] = None
    package_style: str = "inplace"
    native_link_strategy: str = "separate"

    def __post_init__(self):
        object.__setattr__(self, "interpreter", _run_info(self.interpreter))
        if self.host_interpreter is not None:
            object.__setattr__(
                self, "host_interpreter", _run_info(self.host_interpreter)
            )

    def contract_violations(self) -> List[str]:
        return [] if self.interpreter.args else ["interpreter.args"]


@dataclass(frozen=True)
class PlatformInfo(ProviderRecord):
    TAG: ClassVar[ProviderKind] = ProviderKind.PLATFORM

    name: str
    os: str = ""
    arch: str = ""
    target_triple: str = ""

    def contract_violations(self) -> List[str]:
        return [] if self.name else ["name"]


PROVIDER_TYPES: Dict[ProviderKind, Type[ProviderRecord]] = {
    cls.TAG: cls
    for cls in (
        DefaultInfo,
        RunInfo,
        CompilerInfo,
        LinkerInfo,
        InterpreterInfo,
        PlatformInfo,
    )
}


ProviderTag = Union[ProviderKind, str, Type[ProviderRecord]]


def provider_kind(tag: ProviderTag) -> ProviderKind:
    """Normalize a tag given as enum, string or provider class.

    Raises:
        ValueError: If the tag names no known provider kind.
    """
    if isinstance(tag, ProviderKind):
        return tag
    if isinstance(tag, type) and issubclass(tag, ProviderRecord):
        return tag.TAG
    return ProviderKind(tag)


class ProviderCollection:
    """Immutable, ordered set of provider records keyed by tag.

    Construction assumes the composer already checked tag uniqueness.
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[ProviderRecord]):
        ordered: Dict[ProviderKind, ProviderRecord] = {}
        for record in records:
            if record.TAG in ordered:
                raise ValueError(f"duplicate provider tag {record.TAG}")
            ordered[record.TAG] = record
        self._records = ordered

    @property
    def tags(self) -> frozenset:
        return frozenset(self._records)

    def get(self, tag: ProviderTag) -> Optional[ProviderRecord]:
        return self._records.get(provider_kind(tag))

    def __contains__(self, tag: object) -> bool:
        try:
            return provider_kind(tag) in self._records  # type: ignore[arg-type]
        except ValueError:
            return False

    def __iter__(self) -> Iterator[ProviderRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProviderCollection):
            return NotImplemented
        return list(self._records.items()) == list(other._records.items())

    def __hash__(self) -> int:
        return hash(tuple(self._records.items()))

    def __repr__(self) -> str:
        return f"ProviderCollection({[str(t) for t in self._records]})"
