"""Built-in toolchain rules.

Simple toolchains hardcoded to the execution platform: tool paths come from
``ctx.platform.tool_paths`` so a config file can point them elsewhere.
"""

import logging

from rulekit.constants import LinkStyle, NativeLinkStrategy, PackageStyle
from rulekit.providers import (
    CompilerInfo,
    DefaultInfo,
    InterpreterInfo,
    LinkerInfo,
    PlatformInfo,
    ProviderKind,
    RunInfo,
)
from rulekit.registry import RuleRegistry, rule
from rulekit.schemas.attrs import attrs

logger = logging.getLogger(__name__)

RUST_EDITIONS = ["2015", "2018", "2021"]

_RUST_TRIPLES = {
    ("linux", "x86_64"): "x86_64-unknown-linux-gnu",
    ("linux", "aarch64"): "aarch64-unknown-linux-gnu",
    ("macos", "x86_64"): "x86_64-apple-darwin",
    ("macos", "aarch64"): "aarch64-apple-darwin",
    ("windows", "x86_64"): "x86_64-pc-windows-gnu",
}


def _platform_info(ctx) -> PlatformInfo:
    return PlatformInfo(
        name=ctx.platform.arch or ctx.platform.name,
        os=ctx.platform.os,
        arch=ctx.platform.arch,
    )


def _command_alias(ctx):
    """A named command: ``exe`` followed by fixed ``args``."""
    return [
        DefaultInfo(),
        RunInfo(args=(ctx.attrs.exe,) + ctx.attrs.args),
    ]


def _cxx_toolchain(ctx):
    """A C/C++ toolchain using the platform's cc/cxx/ld/ar."""
    tools = ctx.platform
    compiler_type = ctx.attrs.compiler_type
    if compiler_type == "clang":
        cxx, cc = tools.tool("cxx", "clang++"), tools.tool("cc", "clang")
    else:
        cxx, cc = tools.tool("gxx", "g++"), tools.tool("gcc", "gcc")

    # The comp db helper travels with the toolchain
    outputs = ()
    if ctx.attrs.make_comp_db is not None:
        outputs = (ctx.attrs.make_comp_db.label,)

    shlib_format = "{}.dll" if tools.is_windows else "lib{}.so"
    return [
        DefaultInfo(other_outputs=outputs),
        CompilerInfo(
            language="cxx",
            compiler=RunInfo(args=[cxx]),
            compiler_type=compiler_type,
            c_compiler=RunInfo(args=[cc]),
            flags=ctx.attrs.compiler_flags,
        ),
        LinkerInfo(
            linker=RunInfo(args=[tools.tool("ld", "gcc")]),
            archiver=RunInfo(args=[tools.tool("ar", "ar"), "rcs"]),
            link_style=ctx.attrs.link_style,
            binary_extension=".exe" if tools.is_windows else "",
            shared_library_name_format=shlib_format,
        ),
        _platform_info(ctx),
    ]


def _python_toolchain(ctx):
    """A Python toolchain using the platform's interpreter."""
    # Windows installs ship python.exe, not python3
    default = "python" if ctx.platform.is_windows else "python3"
    python = ctx.platform.tool("python", default)
    return [
        DefaultInfo(),
        InterpreterInfo(
            language="python",
            interpreter=RunInfo(args=[python]),
            host_interpreter=RunInfo(args=[python]),
            package_style=ctx.attrs.package_style,
            native_link_strategy=ctx.attrs.native_link_strategy,
        ),
        _platform_info(ctx),
    ]


def _python_bootstrap_toolchain(ctx):
    default = "python" if ctx.platform.is_windows else "python3"
    return [
        DefaultInfo(),
        InterpreterInfo(
            language="python",
            interpreter=RunInfo(args=[ctx.platform.tool("python", default)]),
        ),
    ]


def _rust_toolchain(ctx):
    """A Rust toolchain targeting the execution platform."""
    platform = ctx.platform
    triple = ctx.attrs.target_triple or _RUST_TRIPLES.get(
        (platform.os, platform.arch), ""
    )
    return [
        DefaultInfo(),
        CompilerInfo(
            language="rust",
            compiler=RunInfo(args=[platform.tool("rustc", "rustc")]),
            compiler_type="rustc",
            flags=("--edition=" + ctx.attrs.default_edition,),
        ),
        PlatformInfo(
            name=platform.arch or platform.name,
            os=platform.os,
            arch=platform.arch,
            target_triple=triple,
        ),
    ]


BUILTIN_RULES = [
    rule(
        "command_alias",
        _command_alias,
        attrs={
            "exe": attrs.string(doc="Executable to run."),
            "args": attrs.list(attrs.string(), default=[]),
        },
        provides=[ProviderKind.RUN],
    ),
    rule(
        "cxx_toolchain",
        _cxx_toolchain,
        attrs={
            "link_style": attrs.enum(LinkStyle.ALL, default=LinkStyle.SHARED),
            "compiler_type": attrs.enum(["clang", "gcc"], default="clang"),
            "compiler_flags": attrs.list(attrs.string(), default=[]),
            "labels": attrs.list(attrs.string(), default=[]),
            "make_comp_db": attrs.option(
                attrs.dep(providers=[ProviderKind.RUN]), default=None
            ),
        },
        is_toolchain_rule=True,
        provides=[ProviderKind.COMPILER, ProviderKind.LINKER, ProviderKind.PLATFORM],
    ),
    rule(
        "python_toolchain",
        _python_toolchain,
        attrs={
            "package_style": attrs.enum(PackageStyle.ALL, default=PackageStyle.INPLACE),
            "native_link_strategy": attrs.enum(
                NativeLinkStrategy.ALL, default=NativeLinkStrategy.MERGED
            ),
            "labels": attrs.list(attrs.string(), default=[]),
        },
        is_toolchain_rule=True,
        provides=[ProviderKind.INTERPRETER, ProviderKind.PLATFORM],
    ),
    rule(
        "python_bootstrap_toolchain",
        _python_bootstrap_toolchain,
        attrs={},
        is_toolchain_rule=True,
        provides=[ProviderKind.INTERPRETER],
    ),
    rule(
        "rust_toolchain",
        _rust_toolchain,
        attrs={
            "default_edition": attrs.enum(RUST_EDITIONS, default="2021"),
            "target_triple": attrs.option(attrs.string(), default=None),
            "labels": attrs.list(attrs.string(), default=[]),
        },
        is_toolchain_rule=True,
        provides=[ProviderKind.COMPILER, ProviderKind.PLATFORM],
    ),
]


def register_builtin_toolchains(registry: RuleRegistry) -> None:
    """Register every built-in rule into ``registry``."""
    for schema in BUILTIN_RULES:
        registry.register(schema)
    logger.debug("Registered %d built-in rules", len(BUILTIN_RULES))
