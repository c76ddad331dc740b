"""Execution platform descriptors and configuration keys.

A ConfigurationKey identifies one resolvable rule instance: the rule name
and target label plus the canonical JSON of everything that can change its providers (the
platform descriptor and the coerced attribute values). Canonical form is
sorted keys with no whitespace, so equal configurations always serialise
identically.
"""

import hashlib
import json
import platform as _host
import sys
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

# Tool names looked up by the built-in toolchains, with host defaults.
DEFAULT_TOOL_PATHS: Dict[str, str] = {
    "cc": "clang",
    "cxx": "clang++",
    "ld": "gcc",
    "ar": "ar",
    "rustc": "rustc",
}

_OS_ALIASES = {
    "darwin": "macos",
    "win32": "windows",
    "cygwin": "windows",
}

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
}


def canonical_json(data: Any) -> str:
    """Serialize data to canonical JSON (sorted keys, no whitespace)."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def _normalize_os(name: str) -> str:
    name = name.lower()
    return _OS_ALIASES.get(name, name)


def _normalize_arch(name: str) -> str:
    name = name.lower()
    return _ARCH_ALIASES.get(name, name)


@dataclass(frozen=True)
class ExecutionPlatform:
    """Where build tools run: operating system, architecture, tool paths."""

    name: str
    os: str
    arch: str
    tool_paths: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "os", _normalize_os(self.os))
        object.__setattr__(self, "arch", _normalize_arch(self.arch))
        object.__setattr__(
            self, "tool_paths", MappingProxyType(dict(self.tool_paths))
        )

    def __hash__(self) -> int:
        return hash(canonical_json(self.canonical()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExecutionPlatform):
            return NotImplemented
        return self.canonical() == other.canonical()

    @classmethod
    def host(cls, tool_paths: Optional[Mapping[str, str]] = None) -> "ExecutionPlatform":
        """Describe the machine rulekit is running on."""
        os_name = _normalize_os(_host.system() or sys.platform)
        arch = _normalize_arch(_host.machine() or "unknown")
        paths = dict(DEFAULT_TOOL_PATHS)
        paths["python"] = "python" if os_name == "windows" else "python3"
        paths.update(tool_paths or {})
        return cls(name=f"{os_name}-{arch}", os=os_name, arch=arch, tool_paths=paths)

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def tool(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.tool_paths.get(name, default)

    def with_overrides(
        self,
        name: Optional[str] = None,
        os: Optional[str] = None,
        arch: Optional[str] = None,
        tool_paths: Optional[Mapping[str, str]] = None,
    ) -> "ExecutionPlatform":
        """Return a copy with the given fields replaced; tool paths merge."""
        paths = dict(self.tool_paths)
        paths.update(tool_paths or {})
        return ExecutionPlatform(
            name=name or self.name,
            os=os or self.os,
            arch=arch or self.arch,
            tool_paths=paths,
        )

    def canonical(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "os": self.os,
            "arch": self.arch,
            "tool_paths": dict(sorted(self.tool_paths.items())),
        }


@dataclass(frozen=True)
class ConfigurationKey:
    """(rule name, target label, canonical configuration) identity.

    The label is part of the key because implementations see ``ctx.label``;
    two targets declaring the same rule and attributes are still two
    instances. A bare rule request uses the rule name as its label.
    """

    rule: str
    label: str
    canonical: str

    @classmethod
    def create(
        cls,
        rule: str,
        platform: ExecutionPlatform,
        attrs: Mapping[str, Any],
        label: Optional[str] = None,
    ) -> "ConfigurationKey":
        return cls(
            rule=rule,
            label=label or rule,
            canonical=canonical_json(
                {"platform": platform.canonical(), "attrs": dict(attrs)}
            ),
        )

    @property
    def digest(self) -> str:
        """SHA256 of the key, stable across processes."""
        data = canonical_json([self.rule, self.label, self.canonical])
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    def __str__(self) -> str:
        return f"{self.label}#{self.digest[:12]}"
