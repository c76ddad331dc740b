"""rulekit constants."""

# Directory name used for the user space (~/.rulekit) and inside projects.
PROJECT_DIR = ".rulekit"

# Env var overriding the user space location.
USER_SPACE_ENV = "RULEKIT_USER_SPACE"

CONFIG_FILE = "config.yaml"

# Maximum dependency chain depth before resolution gives up
MAX_CHAIN_DEPTH = 32


class LinkStyle:
    """Link style constants shared by C/C++ toolchains."""

    STATIC = "static"
    STATIC_PIC = "static_pic"
    SHARED = "shared"

    ALL = [STATIC, STATIC_PIC, SHARED]


class PackageStyle:
    """Python packaging styles."""

    INPLACE = "inplace"
    STANDALONE = "standalone"

    ALL = [INPLACE, STANDALONE]


class NativeLinkStrategy:
    SEPARATE = "separate"
    MERGED = "merged"

    ALL = [SEPARATE, MERGED]
