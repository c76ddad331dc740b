"""Tests for rulekit error types."""

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
    SchemaError,
    SchemaErrorKind,
    UnknownRuleError,
)


class TestRuleError:
    """Test base error."""

    def test_message_and_cause(self):
        """RuleError keeps message and cause."""
        cause = ValueError("boom")
        err = RuleError("failed", cause=cause)
        assert str(err) == "failed"
        assert err.message == "failed"
        assert err.cause is cause

    def test_to_dict(self):
        """to_dict carries the code and is never retryable."""
        data = DuplicateRuleDefinitionError("cxx_toolchain").to_dict()
        assert data["success"] is False
        assert data["error"]["code"] == "DUPLICATE_RULE"
        assert data["error"]["retryable"] is False
        assert data["error"]["details"] is None

    def test_all_errors_are_rule_errors(self):
        """Every error type derives from RuleError."""
        for err in (
            ConfigurationError("x"),
            UnknownRuleError("x"),
            RegistryFrozenError("x"),
            ResolutionDepthError(2, ["a", "b", "c"]),
        ):
            assert isinstance(err, RuleError)


class TestSchemaError:
    """Test SchemaError formatting."""

    def test_type_mismatch_message(self):
        err = SchemaError(
            SchemaErrorKind.TYPE_MISMATCH, "labels", "string", 3, rule="cxx", path="labels[2]"
        )
        assert str(err) == "cxx.labels[2]: expected string, got 3"
        assert err.code is ErrorCode.SCHEMA_ERROR

    def test_enum_message_lists_allowed(self):
        err = SchemaError(
            SchemaErrorKind.ENUM_VALUE_NOT_ALLOWED,
            "link_style",
            "enum(static, shared)",
            "pie",
            allowed=["static", "shared"],
        )
        assert "'pie' is not one of ['shared', 'static']" in str(err)

    def test_with_rule(self):
        """with_rule returns an attributed copy."""
        err = SchemaError(SchemaErrorKind.TYPE_MISMATCH, "exe", "string", 1)
        attributed = err.with_rule("command_alias")
        assert attributed.rule == "command_alias"
        assert attributed.kind is err.kind
        assert err.rule == ""

    def test_details(self):
        err = SchemaError(SchemaErrorKind.MISSING_REQUIRED, "exe", "string", rule="r")
        details = err.to_dict()["error"]["details"]
        assert details["kind"] == "MissingRequired"
        assert details["rule"] == "r"
        assert details["path"] == "exe"


class TestProviderErrors:
    """Test provider-related errors."""

    def test_missing_provider_details(self):
        """Available kinds are sorted; attribute and dependency are named."""
        err = MissingProviderError(
            "cxx_toolchain",
            "RunInfo",
            ["PlatformInfo", "DefaultInfo"],
            attribute="make_comp_db",
            dependency="//tools:db",
        )
        assert err.available_kinds == ("DefaultInfo", "PlatformInfo")
        assert "make_comp_db" in str(err)
        assert err.details()["required_kind"] == "RunInfo"
        assert err.code is ErrorCode.MISSING_PROVIDER

    def test_contract_violation_message(self):
        err = ProviderContractViolation("cxx", "CompilerInfo.compiler.args", "required field is empty")
        assert err.missing == "CompilerInfo.compiler.args"
        assert "cxx" in str(err)
        assert "required field is empty" in str(err)

    def test_implementation_error_wraps_cause(self):
        cause = KeyError("cc")
        err = RuleImplementationError("cxx", cause)
        assert err.cause is cause
        assert "KeyError" in str(err)


class TestResolutionErrors:
    """Test cycle and depth errors."""

    def test_cycle_path(self):
        err = CyclicDependencyError(["a", "b", "a"])
        assert err.cycle == ["a", "b", "a"]
        assert str(err) == "Circular dependency detected: a -> b -> a"
        assert err.details() == {"chain": ["a", "b", "a"]}

    def test_unknown_rule_known_sorted(self):
        err = UnknownRuleError("nope", known=["b", "a"])
        assert err.known == ("a", "b")
        assert err.code is ErrorCode.UNKNOWN_RULE
