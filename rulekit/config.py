"""Layered YAML configuration for rulekit.

Config is merged in three tiers, later tiers overriding earlier ones:
    system:  rulekit/data/rulekit.yaml (shipped with the package)
    user:    {RULEKIT_USER_SPACE or ~/.rulekit}/config.yaml
    project: {project}/.rulekit/config.yaml

Recognised keys:
    platform:  name / os / arch / tool_paths overrides for the host platform
    targets:   label -> {rule, attrs}
    resolver:  max_depth
    logging:   level
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from rulekit.constants import CONFIG_FILE, MAX_CHAIN_DEPTH, PROJECT_DIR, USER_SPACE_ENV
from rulekit.errors import ConfigurationError
from rulekit.platform import ExecutionPlatform

logger = logging.getLogger(__name__)

SYSTEM_CONFIG = Path(__file__).parent / "data" / "rulekit.yaml"

_config_cache: Dict[str, "RulekitConfig"] = {}
_config_lock = threading.Lock()


def get_user_space() -> Path:
    """Get user space directory from env var or default to ~/.rulekit."""
    user_space = os.getenv(USER_SPACE_ENV)
    if user_space:
        return Path(user_space).expanduser()
    return Path.home() / PROJECT_DIR


@dataclass(frozen=True)
class TargetSpec:
    """A labelled rule declaration with raw attribute values."""

    label: str
    rule: str
    attrs: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RulekitConfig:
    platform: Mapping[str, Any] = field(default_factory=dict)
    targets: Mapping[str, TargetSpec] = field(default_factory=dict)
    max_depth: int = MAX_CHAIN_DEPTH
    log_level: str = "WARNING"

    def execution_platform(self) -> ExecutionPlatform:
        """Host platform with configured overrides applied."""
        overrides = self.platform
        return ExecutionPlatform.host().with_overrides(
            name=overrides.get("name"),
            os=overrides.get("os"),
            arch=overrides.get("arch"),
            tool_paths=overrides.get("tool_paths"),
        )


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge override into base."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return data


def _parse_targets(raw: Any) -> Dict[str, TargetSpec]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError("`targets` must be a mapping", field="targets")

    targets: Dict[str, TargetSpec] = {}
    for label, body in raw.items():
        if not isinstance(body, dict):
            raise ConfigurationError(
                f"target {label!r} must be a mapping", field=f"targets.{label}"
            )
        rule_name = str(body.get("rule", "")).strip()
        if not rule_name:
            raise ConfigurationError(
                f"target {label!r} missing `rule`", field=f"targets.{label}.rule"
            )
        attrs = body.get("attrs") or {}
        if not isinstance(attrs, dict):
            raise ConfigurationError(
                f"target {label!r} `attrs` must be a mapping",
                field=f"targets.{label}.attrs",
            )
        targets[str(label)] = TargetSpec(
            label=str(label), rule=rule_name, attrs=MappingProxyType(dict(attrs))
        )
    return targets


def parse_config(raw: Mapping[str, Any]) -> RulekitConfig:
    """Build a RulekitConfig from an already-merged mapping.

    Raises:
        ConfigurationError: If a section has the wrong shape.
    """
    platform = raw.get("platform") or {}
    if not isinstance(platform, dict):
        raise ConfigurationError("`platform` must be a mapping", field="platform")
    tool_paths = platform.get("tool_paths") or {}
    if not isinstance(tool_paths, dict):
        raise ConfigurationError(
            "`platform.tool_paths` must be a mapping", field="platform.tool_paths"
        )
    for name in ("name", "os", "arch"):
        value = platform.get(name)
        if value is not None and (not isinstance(value, str) or not value.strip()):
            raise ConfigurationError(
                f"`platform.{name}` must be a non-empty string",
                field=f"platform.{name}",
            )
    for tool, path in tool_paths.items():
        if not isinstance(path, str):
            raise ConfigurationError(
                f"`platform.tool_paths.{tool}` must be a string",
                field=f"platform.tool_paths.{tool}",
            )

    resolver = raw.get("resolver") or {}
    if not isinstance(resolver, dict):
        raise ConfigurationError("`resolver` must be a mapping", field="resolver")
    max_depth = resolver.get("max_depth", MAX_CHAIN_DEPTH)
    if not isinstance(max_depth, int) or isinstance(max_depth, bool) or max_depth < 1:
        raise ConfigurationError(
            "`resolver.max_depth` must be a positive integer",
            field="resolver.max_depth",
        )

    log_level = str((raw.get("logging") or {}).get("level", "WARNING")).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError(
            f"unknown log level {log_level!r}", field="logging.level"
        )

    return RulekitConfig(
        platform=MappingProxyType(
            {**platform, "tool_paths": {str(k): str(v) for k, v in tool_paths.items()}}
        ),
        targets=MappingProxyType(_parse_targets(raw.get("targets"))),
        max_depth=max_depth,
        log_level=log_level,
    )


def load_config(project_path: Optional[Path] = None) -> RulekitConfig:
    """Load config with 3-tier merge: system -> user -> project.

    Results are cached per project path; see clear_config_cache().
    """
    cache_key = str(project_path or "")
    with _config_lock:
        if cache_key in _config_cache:
            return _config_cache[cache_key]

    config: Dict[str, Any] = {}
    paths = [SYSTEM_CONFIG, get_user_space() / CONFIG_FILE]
    if project_path:
        paths.append(Path(project_path) / PROJECT_DIR / CONFIG_FILE)

    for path in paths:
        if path.exists():
            logger.debug("Loading config layer %s", path)
            config = _deep_merge(config, _load_yaml(path))

    parsed = parse_config(config)
    with _config_lock:
        _config_cache[cache_key] = parsed
    return parsed


def clear_config_cache() -> None:
    with _config_lock:
        _config_cache.clear()
