"""
Tests for native functions.
"""

import pytest

from loxi import run
from loxi.errors import ExecutionError
from loxi.runtime import (
    BuiltinRegistry, NativeFunction, LoxType, get_builtin_registry,
    number_val, string_val, array_val,
)


def printed(source):
    result = run(source)
    assert result.success, result.diagnostics
    return result.outputs


def failure(source):
    result = run(source)
    assert result.had_runtime_error
    return result.diagnostics[-1]


@pytest.fixture
def registry():
    return BuiltinRegistry()


class TestRegistry:
    """Test native registration and lookup."""

    def test_names(self, registry):
        assert registry.names() == sorted([
            "arrayLength", "clock", "floor", "read", "stringSplit", "stringToNumber",
        ])

    def test_arities(self, registry):
        assert registry.get_function("clock").arity == 0
        assert registry.get_function("floor").arity == 1
        assert registry.get_function("stringSplit").arity == 2

    def test_parameter_types(self, registry):
        assert registry.get_function("arrayLength").param_types == (LoxType.ARRAY,)
        assert registry.get_function("stringSplit").param_types == (LoxType.STRING, LoxType.STRING)

    def test_unknown(self, registry):
        assert registry.get_function("nope") is None
        assert "nope" not in registry
        assert "clock" in registry

    def test_register_replaces(self, registry):
        registry.register(NativeFunction("clock", (), lambda: number_val(0)))
        assert registry.get_function("clock").implementation() == number_val(0)

    def test_singleton(self):
        assert get_builtin_registry() is get_builtin_registry()

    def test_display(self, registry):
        assert str(registry.get_function("floor")) == "<native fn floor>"


class TestImplementations:
    """Call the natives directly."""

    def test_floor(self, registry):
        floor = registry.get_function("floor").implementation
        assert floor(number_val(2.7)) == number_val(2)
        assert floor(number_val(-2.5)) == number_val(-3)
        assert floor(number_val(float("inf"))).data == float("inf")

    def test_string_split(self, registry):
        split = registry.get_function("stringSplit").implementation
        result = split(string_val("a,b,,c"), string_val(","))
        assert [v.data for v in result.data] == ["a", "b", "", "c"]

    def test_string_split_multichar_separator(self, registry):
        split = registry.get_function("stringSplit").implementation
        result = split(string_val("a::b"), string_val("::"))
        assert [v.data for v in result.data] == ["a", "b"]

    def test_string_split_empty_separator(self, registry):
        """An empty separator splits into characters."""
        split = registry.get_function("stringSplit").implementation
        result = split(string_val("abc"), string_val(""))
        assert [v.data for v in result.data] == ["a", "b", "c"]

    def test_array_length(self, registry):
        length = registry.get_function("arrayLength").implementation
        assert length(array_val([string_val("x")] * 3)) == number_val(3)

    def test_string_to_number(self, registry):
        convert = registry.get_function("stringToNumber").implementation
        assert convert(string_val("42")) == number_val(42)
        assert convert(string_val(" -1.5 ")) == number_val(-1.5)
        assert convert(string_val("1e3")) == number_val(1000)

    def test_string_to_number_rejects(self, registry):
        """Errors from natives carry no location of their own."""
        convert = registry.get_function("stringToNumber").implementation
        with pytest.raises(ExecutionError) as exc_info:
            convert(string_val("abc"))
        assert exc_info.value.token is None
        assert "Cannot convert 'abc' to number." in str(exc_info.value)

    @pytest.mark.parametrize("text", ["", "nan", "inf", "1.2.3", "0x10"])
    def test_string_to_number_rejects_non_decimal(self, registry, text):
        convert = registry.get_function("stringToNumber").implementation
        with pytest.raises(ExecutionError):
            convert(string_val(text))

    def test_read(self, registry, tmp_path):
        path = tmp_path / "data.txt"
        path.write_text("line one\nline two\n", encoding="utf-8")
        read = registry.get_function("read").implementation
        assert read(string_val(str(path))).data == "line one\nline two\n"

    def test_read_missing(self, registry, tmp_path):
        read = registry.get_function("read").implementation
        missing = str(tmp_path / "missing.txt")
        with pytest.raises(ExecutionError) as exc_info:
            read(string_val(missing))
        assert f"Could not open file {missing}" in str(exc_info.value)


class TestFromPrograms:
    """Call the natives through the interpreter."""

    def test_clock(self):
        assert printed("print clock() > 0;") == ["true"]

    def test_floor(self):
        assert printed("print floor(2.7); print floor(-2.5);") == ["2", "-3"]

    def test_array_length(self):
        assert printed('print arrayLength(stringSplit("a b c", " "));') == ["3"]

    def test_string_to_number(self):
        assert printed('print stringToNumber("2.5") * 2;') == ["5"]

    def test_read(self, tmp_path):
        path = tmp_path / "in.txt"
        path.write_text("1,2,3", encoding="utf-8")
        source = f'var parts = stringSplit(read("{path.as_posix()}"), ","); print parts[2];'
        assert printed(source) == ["3"]

    def test_argument_type_checked(self):
        diag = failure('floor("x");')
        assert "Argument 1" in diag.message
        assert "number" in diag.message
        assert "string" in diag.message

    def test_array_argument_type_checked(self):
        diag = failure('arrayLength("x");')
        assert diag.message == "Argument 1 of 'arrayLength' expected array but got string."

    def test_arity_checked(self):
        diag = failure("clock(1);")
        assert diag.message == "Expected 0 arguments but got 1."

    def test_native_error_located_at_call(self):
        """A native's error is reported at the call's closing parenthesis."""
        diag = failure('print 1;\nstringToNumber("x");')
        assert diag.message == "Cannot convert 'x' to number."
        assert diag.span is not None
        assert diag.span.start.line == 2

    def test_program_name_shadows_native(self):
        """A declared name hides a native of the same name."""
        assert printed("var clock = 5; print clock;") == ["5"]
        assert printed("fun floor(x) { return 0; } print floor(9.5);") == ["0"]

    def test_native_as_value(self):
        assert printed("var f = floor; print f(1.5);") == ["1"]
