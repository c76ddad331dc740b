"""Shared fixtures for rulekit tests."""

import logging

import pytest

from rulekit.config import clear_config_cache
from rulekit.platform import ExecutionPlatform
from rulekit.registry import RuleRegistry


@pytest.fixture(autouse=True)
def _setup_user_space(tmp_path, monkeypatch):
    """Point RULEKIT_USER_SPACE at a temp dir and reset cached config."""
    user_space = tmp_path / "user_space"
    user_space.mkdir()

    monkeypatch.setenv("RULEKIT_USER_SPACE", str(user_space))
    clear_config_cache()

    yield user_space

    clear_config_cache()


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo handler and level changes made to the rulekit logger."""
    pkg_logger = logging.getLogger("rulekit")
    handlers = list(pkg_logger.handlers)
    level = pkg_logger.level

    yield

    for handler in pkg_logger.handlers:
        if handler not in handlers:
            handler.close()
    pkg_logger.handlers = handlers
    pkg_logger.setLevel(level)


@pytest.fixture
def linux_platform():
    """A fixed Linux platform so results don't depend on the host."""
    return ExecutionPlatform(
        name="linux-x86_64",
        os="linux",
        arch="x86_64",
        tool_paths={
            "cc": "/usr/bin/clang",
            "cxx": "/usr/bin/clang++",
            "ld": "/usr/bin/ld",
            "ar": "/usr/bin/ar",
            "rustc": "/opt/rust/bin/rustc",
        },
    )


@pytest.fixture
def windows_platform():
    return ExecutionPlatform(name="windows-x86_64", os="win32", arch="amd64")


@pytest.fixture
def registry():
    """Empty, unfrozen registry."""
    return RuleRegistry()
