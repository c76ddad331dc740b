"""ToolchainResolver - resolves rules to memoized RuleInstances.

Each (rule, label, configuration) key moves through:
    UNRESOLVED -> RESOLVING -> RESOLVED   (terminal)
    UNRESOLVED -> RESOLVING -> FAILED     (terminal)

Caching:
    - At most one composition per key: the first requester owns a
      publish-once Future and composes; concurrent requesters block on it.
    - Failures are memoized like results; every waiter gets the same error.
      ResolutionDepthError depends on the requesting chain and interrupts
      (KeyboardInterrupt, SystemExit) on the caller; neither is memoized
      and the key reverts to UNRESOLVED.
    - A short lock guards only the key table, never composition, so
      unrelated keys compose in parallel.

Cycles:
    - Each thread keeps its own in-progress stack; revisiting a key on it
      raises CyclicDependencyError.
    - Before blocking on a key owned by another thread, the chain of
      owner/waiting edges is walked; if it leads back to this thread the
      wait would deadlock, and CyclicDependencyError is raised instead.
"""

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from rulekit.config import RulekitConfig, TargetSpec
from rulekit.constants import MAX_CHAIN_DEPTH
from rulekit.errors import CyclicDependencyError, ResolutionDepthError, UnknownRuleError
from rulekit.executor.composer import ProviderComposer
from rulekit.executor.injector import DependencyInjector
from rulekit.executor.instance import RuleInstance
from rulekit.platform import ConfigurationKey, ExecutionPlatform
from rulekit.registry import RuleRegistry, RuleSchema, default_registry
from rulekit.schemas.attr_types import AttributeValue, validate_attributes
from rulekit.utils.logger import get_logger, resolution_context

logger = logging.getLogger(__name__)


class ResolutionState(Enum):
    UNRESOLVED = "unresolved"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class _Entry:
    """Cache slot for one key."""

    label: str
    owner: int
    future: Future = field(default_factory=Future)

    @property
    def state(self) -> ResolutionState:
        if not self.future.done():
            return ResolutionState.RESOLVING
        if self.future.exception() is not None:
            return ResolutionState.FAILED
        return ResolutionState.RESOLVED


class ToolchainResolver:
    """Resolves rule names and target labels to shared RuleInstances.

    Args:
        registry: Rule schemas; defaults to the process registry with the
            built-in toolchains.
        platform: Default execution platform; defaults to the host.
        targets: Declared targets, label -> TargetSpec.
        max_depth: Maximum dependency chain depth.
    """

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        platform: Optional[ExecutionPlatform] = None,
        targets: Optional[Mapping[str, TargetSpec]] = None,
        max_depth: int = MAX_CHAIN_DEPTH,
    ):
        self.registry = registry if registry is not None else default_registry()
        self.platform = platform or ExecutionPlatform.host()
        self.targets: Mapping[str, TargetSpec] = MappingProxyType(dict(targets or {}))
        self.max_depth = max_depth

        self.composer = ProviderComposer()
        self.injector = DependencyInjector()

        self._lock = threading.Lock()
        self._entries: Dict[ConfigurationKey, _Entry] = {}
        # thread ident -> key that thread is blocked on
        self._waiting: Dict[int, ConfigurationKey] = {}
        self._local = threading.local()

    @classmethod
    def from_config(
        cls, config: RulekitConfig, registry: Optional[RuleRegistry] = None
    ) -> "ToolchainResolver":
        """Build a resolver from loaded config; also applies its log level."""
        get_logger("rulekit", config.log_level)
        return cls(
            registry=registry,
            platform=config.execution_platform(),
            targets=config.targets,
            max_depth=config.max_depth,
        )

    # Public API

    def resolve(
        self,
        rule: str,
        attrs: Optional[Mapping[str, Any]] = None,
        platform: Optional[ExecutionPlatform] = None,
        label: Optional[str] = None,
    ) -> RuleInstance:
        """Resolve ``rule`` with raw attribute overrides on a platform.

        Raises:
            UnknownRuleError: If the rule is not registered.
            SchemaError: If ``attrs`` do not match the rule's schema.
            MissingProviderError, ProviderContractViolation,
            RuleImplementationError, CyclicDependencyError: Memoized per
                key once raised.
            ResolutionDepthError: If the chain is too deep; not memoized.
        """
        schema = self.registry.lookup(rule)
        platform = platform or self.platform
        values = validate_attributes(
            schema.attributes, attrs or {}, rule=rule, defaults=schema.defaults
        )
        label = label or rule
        key = self._key(schema, values, platform, label)
        return self._resolve_key(key, schema, values, platform, label)

    def resolve_target(
        self, label: str, platform: Optional[ExecutionPlatform] = None
    ) -> RuleInstance:
        """Resolve a declared target, or a bare rule name with no overrides."""
        target = self.targets.get(label)
        if target is not None:
            return self.resolve(target.rule, target.attrs, platform, label=label)
        if label in self.registry:
            return self.resolve(label, None, platform, label=label)
        raise UnknownRuleError(label, known=list(self.targets) + self.registry.names())

    def key_for(
        self,
        rule: str,
        attrs: Optional[Mapping[str, Any]] = None,
        platform: Optional[ExecutionPlatform] = None,
        label: Optional[str] = None,
    ) -> ConfigurationKey:
        """The cache key ``resolve`` would use, without resolving."""
        schema = self.registry.lookup(rule)
        values = validate_attributes(
            schema.attributes, attrs or {}, rule=rule, defaults=schema.defaults
        )
        return self._key(schema, values, platform or self.platform, label or rule)

    def state(self, key: ConfigurationKey) -> ResolutionState:
        with self._lock:
            entry = self._entries.get(key)
        return entry.state if entry is not None else ResolutionState.UNRESOLVED

    def cached(self) -> List[RuleInstance]:
        """All successfully resolved instances, in first-request order."""
        with self._lock:
            entries = list(self._entries.values())
        return [
            e.future.result()
            for e in entries
            if e.state is ResolutionState.RESOLVED
        ]

    # Internals

    def _key(
        self,
        schema: RuleSchema,
        values: Mapping[str, AttributeValue],
        platform: ExecutionPlatform,
        label: str,
    ) -> ConfigurationKey:
        return ConfigurationKey.create(
            schema.name,
            platform,
            {name: value.canonical() for name, value in values.items()},
            label=label,
        )

    def _stack(self) -> List[Tuple[ConfigurationKey, str]]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = self._local.stack = []
        return stack

    def _resolve_key(
        self,
        key: ConfigurationKey,
        schema: RuleSchema,
        values: Mapping[str, AttributeValue],
        platform: ExecutionPlatform,
        label: str,
    ) -> RuleInstance:
        stack = self._stack()
        labels = [lbl for _, lbl in stack]
        for i, (in_progress, _) in enumerate(stack):
            if in_progress == key:
                raise CyclicDependencyError(labels[i:] + [label])
        if len(stack) >= self.max_depth:
            raise ResolutionDepthError(self.max_depth, labels + [label])

        me = threading.get_ident()
        with self._lock:
            entry = self._entries.get(key)
            owner = entry is None
            if owner:
                entry = _Entry(label=label, owner=me)
                self._entries[key] = entry
            elif not entry.future.done():
                self._check_wait_cycle(key, entry, me, stack)
                self._waiting[me] = key

        if not owner:
            if entry.future.done():
                logger.debug("Cache hit for %s (%s)", label, key, extra=resolution_context(key))
            else:
                logger.debug("Waiting on %s (%s)", label, key, extra=resolution_context(key))
            try:
                return entry.future.result()
            finally:
                with self._lock:
                    self._waiting.pop(me, None)

        stack.append((key, label))
        try:
            logger.debug("Resolving %s (%s)", label, key, extra=resolution_context(key))
            instance = self._compose(key, schema, values, platform, label)
        except ResolutionDepthError as e:
            # Depth depends on the requesting chain, not on this key
            if len(stack) == 1:
                logger.warning(
                    "Resolution of %s failed: %s", label, e, extra=resolution_context(key)
                )
            self._abandon(key, entry, e)
            raise
        except Exception as e:
            # Only the outermost frame reports at WARNING
            log = logger.warning if len(stack) == 1 else logger.debug
            log("Resolution of %s failed: %s", label, e, extra=resolution_context(key))
            entry.future.set_exception(e)
            raise
        except BaseException as e:
            # Interrupted: wake waiters, leave the key unresolved
            self._abandon(key, entry, e)
            raise
        else:
            entry.future.set_result(instance)
            return instance
        finally:
            stack.pop()

    def _abandon(self, key: ConfigurationKey, entry: _Entry, exc: BaseException) -> None:
        """Fail current waiters without memoizing; the key reverts to UNRESOLVED."""
        logger.debug(
            "Abandoning %s (%s): %r", entry.label, key, exc, extra=resolution_context(key)
        )
        with self._lock:
            if self._entries.get(key) is entry:
                del self._entries[key]
        entry.future.set_exception(exc)

    def _check_wait_cycle(
        self,
        key: ConfigurationKey,
        entry: _Entry,
        me: int,
        stack: List[Tuple[ConfigurationKey, str]],
    ) -> None:
        """Raise if blocking on ``entry`` would wait on this thread itself.

        Must be called with the table lock held.
        """
        chain = [entry.label]
        owner = entry.owner
        seen = set()
        while owner not in seen:
            seen.add(owner)
            blocked_on = self._waiting.get(owner)
            if blocked_on is None:
                return
            next_entry = self._entries.get(blocked_on)
            if next_entry is None or next_entry.future.done():
                return
            chain.append(next_entry.label)
            if next_entry.owner == me:
                keys = [k for k, _ in stack]
                start = keys.index(blocked_on) if blocked_on in keys else 0
                raise CyclicDependencyError([lbl for _, lbl in stack[start:]] + chain)
            owner = next_entry.owner

    def _compose(
        self,
        key: ConfigurationKey,
        schema: RuleSchema,
        values: Mapping[str, AttributeValue],
        platform: ExecutionPlatform,
        label: str,
    ) -> RuleInstance:
        resolved = self.injector.inject(
            schema, values, platform, self.resolve_target
        )
        providers = self.composer.compose(schema, resolved, platform, label=label)
        return RuleInstance(
            key=key,
            label=label,
            attributes=MappingProxyType(dict(values)),
            providers=providers,
        )
