"""
Pytest configuration and shared fixtures for bridge tests.
"""
import ctypes

import pytest
from pytest_bdd import given, parsers, then, when

from stackbridge import BridgeConfig, BufferVar, ConstBufferVar, ScriptVM, extract, matches


# Spec names used in feature files, mapped to the type specs they denote.
SPEC_NAMES = {
    "int": int,
    "float": float,
    "bool": bool,
    "str": str,
    "bytes": bytes,
    "buffer": BufferVar,
    "const buffer": ConstBufferVar,
    "c_byte": ctypes.c_byte,
    "c_ubyte": ctypes.c_ubyte,
    "c_short": ctypes.c_short,
    "c_ushort": ctypes.c_ushort,
    "c_int": ctypes.c_int,
    "c_uint": ctypes.c_uint,
    "c_long": ctypes.c_long,
    "c_ulong": ctypes.c_ulong,
    "c_longlong": ctypes.c_longlong,
    "c_ulonglong": ctypes.c_ulonglong,
    "c_float": ctypes.c_float,
    "c_double": ctypes.c_double,
}


@pytest.fixture
def specs():
    """Lookup table from feature-file spec names to type specs."""
    return dict(SPEC_NAMES)


@pytest.fixture
def log_lines():
    """Diagnostics emitted through the VM's output sink."""
    return []


@pytest.fixture
def vm(log_lines):
    """A fresh reference VM whose diagnostics land in log_lines."""
    config = BridgeConfig(output_sink=log_lines.append, log_level="debug")
    return ScriptVM(config=config)


@pytest.fixture
def test_context():
    """Shared context for passing data between steps."""
    return {}


def push_literal(vm, kind, raw):
    """Push a literal described in a feature file onto the VM stack."""
    if kind == "integer":
        vm.push_integer(int(raw))
    elif kind == "float":
        vm.push_float(float(raw))
    elif kind == "bool":
        vm.push_bool(raw == "true")
    elif kind == "string":
        vm.push_string(raw.encode("utf-8").decode("unicode_escape").encode("latin-1"))
    elif kind == "null":
        vm.push_null()
    else:
        raise ValueError(f"Unknown literal kind: {kind}")


@pytest.fixture
def push(vm):
    """Push a feature-file literal onto the fixture VM."""

    def _push(kind, raw=""):
        push_literal(vm, kind, raw)

    return _push


# =============================================================================
# Shared steps
# =============================================================================


@given("a fresh script VM")
def fresh_vm(vm, test_context):
    """Start every scenario from an empty stack."""
    assert vm.get_top() == 0
    test_context["vm"] = vm


@given("assertions on mismatch are disabled")
def disable_assertions(vm):
    vm.config.assert_on_mismatch = False


@given("integer parameters accept floats")
def integer_accepts_float(vm):
    vm.config.integer_accepts_float = True


@when(parsers.parse('I push an integer "{raw}"'))
@given(parsers.parse('an integer "{raw}" on the stack'))
def push_integer(push, raw):
    push("integer", raw)


@when(parsers.parse('I push a float "{raw}"'))
@given(parsers.parse('a float "{raw}" on the stack'))
def push_float(push, raw):
    push("float", raw)


@when(parsers.parse('I push a bool "{raw}"'))
@given(parsers.parse('a bool "{raw}" on the stack'))
def push_bool(push, raw):
    push("bool", raw)


@when(parsers.parse('I push a string "{raw}"'))
@given(parsers.parse('a string "{raw}" on the stack'))
def push_string(push, raw):
    push("string", raw)


@when("I push null")
@given("null on the stack")
def push_null(push):
    push("null")


@when(parsers.parse('I extract slot {idx:d} as "{spec}"'))
def extract_slot(vm, specs, test_context, idx, spec):
    test_context["value"] = extract(vm, idx, specs[spec])


@when(parsers.parse('I try to extract slot {idx:d} as "{spec}"'))
def try_extract_slot(vm, specs, test_context, idx, spec):
    try:
        test_context["value"] = extract(vm, idx, specs[spec])
        test_context["error"] = None
    except Exception as exc:
        test_context["error"] = exc


@then(parsers.parse("the extracted value should equal the integer {expected:d}"))
def check_integer_value(test_context, expected):
    value = test_context["value"]
    assert type(value) is int, f"Expected an int, got {type(value).__name__}"
    assert value == expected, f"Expected {expected}, got {value}"


@then(parsers.parse("the extracted value should equal the float {expected:g}"))
def check_float_value(test_context, expected):
    value = test_context["value"]
    assert isinstance(value, float)
    assert value == expected, f"Expected {expected}, got {value}"


@then(parsers.parse('the top slot should be tagged "{tag}"'))
def check_top_tag(vm, tag):
    assert vm.get_type(-1).value == tag


@then(parsers.parse("the stack depth should be {depth:d}"))
def check_depth(vm, depth):
    assert vm.get_top() == depth, f"Expected depth {depth}, got {vm.get_top()}"


@then(parsers.parse('a "{name}" error should be raised'))
def check_error_raised(test_context, name):
    error = test_context.get("error")
    assert error is not None, "Expected an error, none was raised"
    assert type(error).__name__ == name, f"Expected {name}, got {type(error).__name__}: {error}"


@then(parsers.parse('the error message should mention "{text}"'))
def check_error_message(test_context, text):
    assert text in str(test_context["error"])


@then(parsers.parse('a "{prefix}" line should have been logged'))
def check_logged(log_lines, prefix):
    assert any(line.startswith(prefix) for line in log_lines), f"No {prefix} line in {log_lines}"


@then(parsers.parse('slot {idx:d} should match "{spec}"'))
def check_matches(vm, specs, idx, spec):
    assert matches(vm, idx, specs[spec])


@then(parsers.parse('slot {idx:d} should not match "{spec}"'))
def check_not_matches(vm, specs, idx, spec):
    assert not matches(vm, idx, specs[spec])
