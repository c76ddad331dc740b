"""rulekit - typed rule schemas and capability-provider resolution.

Extension authors declare rules with typed attributes; implementations
return provider records (compiler, linker, interpreter, platform) that
consumers depend on by capability tag.

    registry = RuleRegistry()
    registry.register(rule("my_toolchain", impl, attrs={...}, is_toolchain_rule=True))
    resolver = ToolchainResolver(registry)
    instance = resolver.resolve("my_toolchain")
    instance[CompilerInfo].compiler.args
"""

from rulekit.config import RulekitConfig, TargetSpec, load_config
from rulekit.errors import (
    ConfigurationError,
    CyclicDependencyError,
    DuplicateRuleDefinitionError,
    ErrorCode,
    MissingProviderError,
    ProviderContractViolation,
    RegistryFrozenError,
    ResolutionDepthError,
    RuleError,
    RuleImplementationError,
    SchemaDefinitionError,
    SchemaError,
    SchemaErrorKind,
    UnknownRuleError,
)
from rulekit.executor import ResolutionState, RuleContext, RuleInstance, ToolchainResolver
from rulekit.platform import ConfigurationKey, ExecutionPlatform
from rulekit.providers import (
    CompilerInfo,
    DefaultInfo,
    InterpreterInfo,
    LinkerInfo,
    PlatformInfo,
    ProviderCollection,
    ProviderKind,
    ProviderRecord,
    RunInfo,
)
from rulekit.registry import RuleId, RuleRegistry, RuleSchema, default_registry, rule
from rulekit.schemas import AttributeSpec, AttributeValue, DependencyRef, attrs

__all__ = [
    # Config
    "RulekitConfig",
    "TargetSpec",
    "load_config",
    # Errors
    "ConfigurationError",
    "CyclicDependencyError",
    "DuplicateRuleDefinitionError",
    "ErrorCode",
    "MissingProviderError",
    "ProviderContractViolation",
    "RegistryFrozenError",
    "ResolutionDepthError",
    "RuleError",
    "RuleImplementationError",
    "SchemaDefinitionError",
    "SchemaError",
    "SchemaErrorKind",
    "UnknownRuleError",
    # Resolution
    "ResolutionState",
    "RuleContext",
    "RuleInstance",
    "ToolchainResolver",
    "ConfigurationKey",
    "ExecutionPlatform",
    # Providers
    "CompilerInfo",
    "DefaultInfo",
    "InterpreterInfo",
    "LinkerInfo",
    "PlatformInfo",
    "ProviderCollection",
    "ProviderKind",
    "ProviderRecord",
    "RunInfo",
    # Registry
    "RuleId",
    "RuleRegistry",
    "RuleSchema",
    "default_registry",
    "rule",
    # Schemas
    "AttributeSpec",
    "AttributeValue",
    "DependencyRef",
    "attrs",
]
