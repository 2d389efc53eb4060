"""
Step definitions for the Numeric Coercion feature.

These tests verify the coercion table shared by every numeric adapter:
- bool / integer / float slots read into any ctypes width
- float -> integer goes through a truncating machine-int stage
- pushes always use the VM's single integer or float representation

BDD Flow: Feature file -> Step definitions -> Implementation
"""
from pytest_bdd import parsers, scenarios, when

from stackbridge import var_for

# Load scenarios from feature file
scenarios("../features/numeric_coercion.feature")


# =============================================================================
# Insert Steps
# =============================================================================


@when(parsers.parse('I insert the integer {value:d} as "{spec}"'))
def insert_integer(vm, specs, value: int, spec: str):
    """Push through the adapter rather than the raw VM primitive."""
    var_for(specs[spec]).insert(vm, value)


@when(parsers.parse('I insert the float {value:g} as "{spec}"'))
def insert_float(vm, specs, value: float, spec: str):
    var_for(specs[spec]).insert(vm, value)
