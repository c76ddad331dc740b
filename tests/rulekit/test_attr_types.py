"""Tests for the attribute type system."""

from dataclasses import replace

import pytest

from rulekit.errors import SchemaDefinitionError, SchemaError, SchemaErrorKind
from rulekit.providers import ProviderKind, RunInfo
from rulekit.registry import rule
from rulekit.schemas import DependencyRef, attrs, validate, validate_attributes
from rulekit.schemas.attr_types import EnumKind, ListKind, StringKind


def _bound(spec, name):
    return replace(spec, name=name)


def _noop(ctx):
    return []


class TestScalarKinds:
    """Test string, boolean and integer coercion."""

    def test_string_accepts_string(self):
        """String value passes through unchanged."""
        result = validate(_bound(attrs.string(), "exe"), "clang")
        assert result.value == "clang"
        assert result.defaulted is False

    def test_string_rejects_integer(self):
        """No widening from integer to string."""
        with pytest.raises(SchemaError) as exc_info:
            validate(_bound(attrs.string(), "exe"), 3)
        assert exc_info.value.kind is SchemaErrorKind.TYPE_MISMATCH
        assert exc_info.value.expected == "string"
        assert exc_info.value.actual == 3

    def test_integer_rejects_bool(self):
        """bool is not an integer."""
        with pytest.raises(SchemaError) as exc_info:
            validate(_bound(attrs.int(), "jobs"), True)
        assert exc_info.value.kind is SchemaErrorKind.TYPE_MISMATCH

    def test_bool_rejects_integer(self):
        """Integer is not a bool."""
        with pytest.raises(SchemaError):
            validate(_bound(attrs.bool(), "strip"), 1)

    def test_integer_bounds(self):
        """minimum/maximum are enforced as constraint violations."""
        spec = _bound(attrs.int(minimum=1, maximum=8), "jobs")
        assert validate(spec, 4).value == 4
        with pytest.raises(SchemaError) as exc_info:
            validate(spec, 9)
        assert exc_info.value.kind is SchemaErrorKind.CONSTRAINT_VIOLATION
        assert exc_info.value.expected == "integer <= 8"

    def test_string_pattern(self):
        """pattern must match the whole string."""
        spec = _bound(attrs.string(pattern=r"[a-z]+"), "name")
        assert validate(spec, "abc").value == "abc"
        with pytest.raises(SchemaError) as exc_info:
            validate(spec, "abc1")
        assert exc_info.value.kind is SchemaErrorKind.CONSTRAINT_VIOLATION


class TestCompositeKinds:
    """Test list and option recursion."""

    def test_list_coerced_to_tuple(self):
        """Lists come back as tuples."""
        result = validate(_bound(attrs.list(attrs.string()), "labels"), ["a", "b"])
        assert result.value == ("a", "b")

    def test_list_element_failure_has_index(self):
        """First failing element is reported with its index."""
        spec = _bound(attrs.list(attrs.string()), "labels")
        with pytest.raises(SchemaError) as exc_info:
            validate(spec, ["a", "b", 3, 4])
        assert exc_info.value.kind is SchemaErrorKind.TYPE_MISMATCH
        assert exc_info.value.path == "labels[2]"
        assert exc_info.value.attribute == "labels"
        assert exc_info.value.actual == 3

    def test_list_rejects_scalar(self):
        """A bare string is not a list."""
        with pytest.raises(SchemaError) as exc_info:
            validate(_bound(attrs.list(attrs.string()), "labels"), "a")
        assert exc_info.value.path == "labels"

    def test_nested_list_path(self):
        """Nested paths accumulate indices."""
        spec = _bound(attrs.list(attrs.list(attrs.int())), "matrix")
        with pytest.raises(SchemaError) as exc_info:
            validate(spec, [[1], [2, "x"]])
        assert exc_info.value.path == "matrix[1][1]"

    def test_list_item_bounds(self):
        """max_items applies to the coerced list."""
        spec = _bound(attrs.list(attrs.string(), max_items=1), "flags")
        with pytest.raises(SchemaError) as exc_info:
            validate(spec, ["-O2", "-g"])
        assert exc_info.value.kind is SchemaErrorKind.CONSTRAINT_VIOLATION

    def test_option_accepts_none(self):
        """option<kind> accepts None."""
        spec = _bound(attrs.option(attrs.string()), "triple")
        assert validate(spec, None).value is None
        assert validate(spec, "x86_64-unknown-linux-gnu").value == "x86_64-unknown-linux-gnu"

    def test_option_checks_inner(self):
        """option<string> still rejects non-strings."""
        with pytest.raises(SchemaError):
            validate(_bound(attrs.option(attrs.string()), "triple"), 5)

    def test_list_kind_describe(self):
        """Kinds describe themselves for error messages."""
        assert ListKind(StringKind()).describe() == "list<string>"


class TestEnumKind:
    """Test enum closure."""

    def test_member_echoes_unchanged(self):
        """A member of the set is returned as-is."""
        spec = _bound(attrs.enum(["static", "static_pic", "shared"]), "link_style")
        assert validate(spec, "static_pic").value == "static_pic"

    def test_non_member_rejected(self):
        """Values outside the set fail naming the value and allowed set."""
        spec = _bound(attrs.enum(["static", "static_pic", "shared"]), "link_style")
        with pytest.raises(SchemaError) as exc_info:
            validate(spec, "static_pie")
        err = exc_info.value
        assert err.kind is SchemaErrorKind.ENUM_VALUE_NOT_ALLOWED
        assert err.actual == "static_pie"
        assert err.allowed == ("static", "static_pic", "shared")
        assert "static_pie" in str(err)
        assert "shared" in str(err)

    def test_non_string_is_type_mismatch(self):
        """Non-strings are a type mismatch, not an enum violation."""
        spec = _bound(attrs.enum(["a"]), "mode")
        with pytest.raises(SchemaError) as exc_info:
            validate(spec, 1)
        assert exc_info.value.kind is SchemaErrorKind.TYPE_MISMATCH

    def test_empty_enum_rejected(self):
        """An enum needs at least one value."""
        with pytest.raises(SchemaDefinitionError):
            EnumKind([])

    def test_non_string_values_rejected(self):
        """Enum members must be strings."""
        with pytest.raises(SchemaDefinitionError):
            attrs.enum(["a", 2])


class TestDependencyAndSourceKinds:
    """Test dependency labels and source paths."""

    def test_dependency_coerced_to_ref(self):
        """Labels become DependencyRef values."""
        spec = _bound(attrs.dep(providers=[RunInfo]), "tool")
        result = validate(spec, "//tools:make_comp_db")
        assert result.value == DependencyRef("//tools:make_comp_db")
        assert result.dependencies() == [DependencyRef("//tools:make_comp_db")]
        assert result.canonical() == "//tools:make_comp_db"

    def test_dependency_blank_label(self):
        """Blank labels are constraint violations."""
        with pytest.raises(SchemaError) as exc_info:
            validate(_bound(attrs.dep(), "tool"), "   ")
        assert exc_info.value.kind is SchemaErrorKind.CONSTRAINT_VIOLATION

    def test_dependency_provider_kinds_normalized(self):
        """Provider requirements accept classes and strings."""
        spec = attrs.dep(providers=[RunInfo, "CompilerInfo", ProviderKind.RUN])
        assert spec.kind.providers == (ProviderKind.RUN, ProviderKind.COMPILER)

    def test_dependency_unknown_provider(self):
        """Unknown provider kinds are a declaration error."""
        with pytest.raises(SchemaDefinitionError):
            attrs.dep(providers=["NoSuchInfo"])

    def test_source_normalized(self):
        """Source paths are normalized relative POSIX paths."""
        spec = _bound(attrs.source(), "src")
        assert validate(spec, "lib/./util.c").value == "lib/util.c"
        assert validate(spec, "lib\\win.c").value == "lib/win.c"

    @pytest.mark.parametrize("path", ["/etc/passwd", "../outside.c", "a/../../b.c", ""])
    def test_source_rejects_escaping_paths(self, path):
        """Absolute, empty and escaping paths are rejected."""
        with pytest.raises(SchemaError) as exc_info:
            validate(_bound(attrs.source(), "src"), path)
        assert exc_info.value.kind is SchemaErrorKind.CONSTRAINT_VIOLATION


class TestDefaultsAndRequired:
    """Test default application and required attributes."""

    def test_missing_required(self):
        """Missing value without default fails with MissingRequired."""
        with pytest.raises(SchemaError) as exc_info:
            validate(_bound(attrs.string(), "exe"), rule="command_alias")
        err = exc_info.value
        assert err.kind is SchemaErrorKind.MISSING_REQUIRED
        assert err.rule == "command_alias"
        assert "command_alias.exe" in str(err)

    def test_default_applied(self):
        """Missing value with default yields the default."""
        spec = _bound(attrs.enum(["static", "shared"], default="shared"), "link_style")
        result = validate(spec)
        assert result.value == "shared"
        assert result.defaulted is True

    def test_list_default_is_tuple(self):
        """List defaults are coerced like supplied values."""
        result = validate(_bound(attrs.list(attrs.string(), default=[]), "labels"))
        assert result.value == ()

    def test_required_and_default_conflict(self):
        """An attribute can't be both required and defaulted."""
        with pytest.raises(SchemaDefinitionError):
            attrs.string(default="x", required=True)

    def test_optional_without_default(self):
        """required=False picks an empty default for option and list."""
        assert attrs.option(attrs.string(), required=False).default is None
        assert attrs.list(attrs.string(), required=False).default == []
        with pytest.raises(SchemaDefinitionError):
            attrs.string(required=False)

    def test_required_property(self):
        """required is true iff there is no default."""
        assert attrs.string().required is True
        assert attrs.string(default="").required is False

    def test_invalid_default_rejected_at_rule_construction(self):
        """Defaults are validated once, when the rule is built."""
        with pytest.raises(SchemaDefinitionError) as exc_info:
            rule("bad", _noop, attrs={"jobs": attrs.int(default="four")})
        assert exc_info.value.attribute == "jobs"
        assert exc_info.value.rule == "bad"

    def test_invalid_enum_default_rejected(self):
        """An enum default must be a member."""
        with pytest.raises(SchemaDefinitionError):
            rule("bad", _noop, attrs={"mode": attrs.enum(["a", "b"], default="c")})


class TestValidateAttributes:
    """Test whole-mapping validation."""

    def _schema(self):
        return rule(
            "demo",
            _noop,
            attrs={
                "exe": attrs.string(),
                "args": attrs.list(attrs.string(), default=[]),
            },
        )

    def test_validates_in_declared_order(self):
        """Result preserves declaration order and fills defaults."""
        schema = self._schema()
        values = validate_attributes(
            schema.attributes, {"exe": "cc"}, rule="demo", defaults=schema.defaults
        )
        assert list(values) == ["exe", "args"]
        assert values["args"].value == ()
        assert values["args"].defaulted is True

    def test_unknown_attribute(self):
        """Names outside the schema are rejected."""
        schema = self._schema()
        with pytest.raises(SchemaError) as exc_info:
            validate_attributes(schema.attributes, {"exe": "cc", "env": {}}, rule="demo")
        assert exc_info.value.kind is SchemaErrorKind.UNKNOWN_ATTRIBUTE
        assert exc_info.value.attribute == "env"

    def test_error_carries_rule_name(self):
        """Per-attribute errors are attributed to the rule."""
        schema = self._schema()
        with pytest.raises(SchemaError) as exc_info:
            validate_attributes(schema.attributes, {"exe": 1}, rule="demo")
        assert exc_info.value.rule == "demo"
        assert str(exc_info.value).startswith("demo.exe:")
