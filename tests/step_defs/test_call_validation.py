"""
Step definitions for the Call Argument Validation feature.

These tests verify the variadic pipeline:
- check_var_types walks parameters left to right and short-circuits
- the diagnostic names the expected and the actual script type
- make_vars extracts every parameter at the same positions

BDD Flow: Feature file -> Step definitions -> Implementation
"""
from typing import Any, List

from pytest_bdd import given, parsers, scenarios, then, when

from stackbridge import Signature, extract, push_var_r, var_for

# Load scenarios from feature file
scenarios("../features/call_validation.feature")


class Widget:
    pass


def _recording(adapter, calls: List[int]):
    """Wrap an adapter so every matches() call records its slot index."""

    class Recording(adapter):
        @classmethod
        def matches(cls, vm, idx):
            calls.append(idx)
            return super().matches(vm, idx)

    Recording.__name__ = f"Recording{adapter.__name__}"
    return Recording


def _parse_signature(specs, text: str, calls: List[int]) -> Signature:
    names = [name.strip() for name in text.split(",") if name.strip()]
    return Signature(*(_recording(var_for(specs[name]), calls) for name in names))


# =============================================================================
# Setup Steps
# =============================================================================


@given(parsers.parse('the class "{name}" is registered with the VM'))
def register_widget(vm, name: str):
    assert name == "Widget"
    vm.classes.register(Widget)


@given("a Widget pushed by reference")
def push_widget(vm):
    push_var_r(vm, Widget())


# =============================================================================
# Pipeline Steps
# =============================================================================


@when(parsers.parse('I validate the arguments from slot {start:d} against "{text}"'))
def validate_arguments(vm, specs, test_context, start: int, text: str):
    calls: List[int] = []
    signature = _parse_signature(specs, text, calls)
    test_context["calls"] = calls
    test_context["valid"] = signature.validate(vm, start)


@when(parsers.parse('I build the arguments from slot {start:d} against "{text}"'))
def build_arguments(vm, specs, test_context, start: int, text: str):
    signature = _parse_signature(specs, text, [])
    test_context["built"] = signature.values(vm, start)


@when(parsers.parse("I validate the arguments from slot {start:d} against no parameters"))
def validate_no_arguments(vm, test_context, start: int):
    test_context["calls"] = []
    test_context["valid"] = Signature().validate(vm, start)


@when(parsers.parse("I build the arguments from slot {start:d} against no parameters"))
def build_no_arguments(vm, test_context, start: int):
    test_context["built"] = Signature().values(vm, start)


@when(parsers.parse("I call an adding function with the arguments from slot {start:d}"))
def call_adder(vm, start: int):
    def add(a: int, b: int) -> int:
        return a + b

    signature = Signature(int, int)
    assert signature.validate(vm, start)
    args = signature.values(vm, start)
    var_for(int).insert(vm, add(*args))


# =============================================================================
# Assertions
# =============================================================================


@then("validation should fail")
def check_failed(test_context):
    assert test_context["valid"] is False


@then("validation should succeed")
def check_succeeded(test_context):
    assert test_context["valid"] is True


@then(parsers.parse('the VM error should be "{message}"'))
def check_vm_error(vm, message: str):
    assert vm.last_error == message, f"Got {vm.last_error!r}"


@then("the VM error should be unset")
def check_no_vm_error(vm):
    assert vm.last_error is None


@then(parsers.parse("only parameter {index:d} should have been checked"))
def check_short_circuit(test_context, index: int):
    assert test_context["calls"] == [1 + index]


@then(parsers.parse("the built values should be {expected}"))
def check_built_values(test_context, expected: str):
    values: List[Any] = []
    for raw in (part.strip() for part in expected.split(",")):
        if raw.startswith('"'):
            values.append(raw.strip('"'))
        elif raw in ("true", "false"):
            values.append(raw == "true")
        elif "." in raw:
            values.append(float(raw))
        else:
            values.append(int(raw))
    assert list(test_context["built"]) == values


@then("no values should have been built")
def check_nothing_built(test_context):
    assert test_context["built"] == ()


@then(parsers.parse("slot {idx:d} should read as the integer {value:d}"))
def check_slot_integer(vm, idx: int, value: int):
    assert extract(vm, idx, int) == value
