"""rulekit executor - provider composition with dependency resolution.

Components:
    - ToolchainResolver: Entry point; memoizes one RuleInstance per key
    - DependencyInjector: Resolves dependency attributes, checks providers
    - ProviderComposer: Runs rule implementations, validates provider sets
"""

from rulekit.executor.composer import ProviderComposer
from rulekit.executor.injector import DependencyInjector, check_providers
from rulekit.executor.instance import ResolvedAttrs, RuleContext, RuleInstance
from rulekit.executor.resolver import ResolutionState, ToolchainResolver

__all__ = [
    "ProviderComposer",
    "DependencyInjector",
    "check_providers",
    "ResolvedAttrs",
    "RuleContext",
    "RuleInstance",
    "ResolutionState",
    "ToolchainResolver",
]
