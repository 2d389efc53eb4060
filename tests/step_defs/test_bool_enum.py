"""
Step definitions for the Bool and Enum Adapters feature.

Bool reads any slot through VM truthiness; enum reads integers and falls back
to zero for anything else (unlike numeric adapters, which fail).
"""
import enum

from pytest_bdd import given, parsers, scenarios, then, when

from stackbridge import ConstRef, Ref, extract, matches, push_var, type_name

# Load scenarios from feature file
scenarios("../features/bool_enum.feature")


class Color(enum.IntEnum):
    NONE = 0
    RED = 1
    GREEN = 2
    BLUE = 3


@given(parsers.parse('a string "" on the stack'))
def push_empty_string(vm):
    vm.push_string(b"")


@when("I insert the bool value true")
def insert_true(vm):
    push_var(vm, True)


@when("I extract slot -1 as the Color enum")
def extract_color(vm, test_context):
    test_context["value"] = extract(vm, -1, Color)


@when(parsers.parse('I insert the Color member "{name}"'))
def insert_color(vm, name: str):
    push_var(vm, Color[name])


@then(parsers.parse("the extracted value should be {expected}"))
def check_bool_value(test_context, expected: str):
    assert test_context["value"] is (expected == "true")


@then(parsers.parse('the extracted enum should be "{name}"'))
def check_enum_value(test_context, name: str):
    value = test_context["value"]
    assert isinstance(value, Color)
    assert value is Color[name]


@then("slot -1 should match the Color enum")
def check_matches_enum(vm):
    assert matches(vm, -1, Color)


@then("slot -1 should not match the Color enum")
def check_not_matches_enum(vm):
    assert not matches(vm, -1, Color)


@then(parsers.parse('slot -1 should read back as {value:d} through "{spec}"'))
def check_read_back(vm, specs, value: int, spec: str):
    assert extract(vm, -1, specs[spec]) == value


@then(parsers.parse('the scalar type name of "{spec}" should be "{name}"'))
def check_scalar_type_name(specs, spec: str, name: str):
    assert type_name(specs[spec]) == name


@then(parsers.parse('the reference type name of "{spec}" should be "{name}"'))
def check_ref_type_name(specs, spec: str, name: str):
    assert type_name(Ref[specs[spec]]) == name


@then(parsers.parse('the const reference type name of "{spec}" should be "{name}"'))
def check_const_ref_type_name(specs, spec: str, name: str):
    assert type_name(ConstRef[specs[spec]]) == name


@then(parsers.parse('the enum type name should be "{name}"'))
def check_enum_type_name(name: str):
    assert type_name(Color) == name
