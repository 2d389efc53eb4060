"""
Domain: Call Arguments

Validates and extracts the ordered parameter list of a call.

  - check_var_types: left-to-right tag check, stopping at the first mismatch
    and handing "Wrong argument type, expected '<T>', got '<actual>'" to the
    VM's error channel
  - make_vars: one adapter per parameter, same order and positions

make_vars is only meant to run after check_var_types succeeded; host code
never sees partially extracted arguments.
"""
from __future__ import annotations

from typing import Any, Iterator, Sequence, Tuple, Type

from ..kernel.var import Var, slot_type_name, var_for
from ..kernel.vm import ScriptVM


def wrong_argument_message(expected: str, actual: str) -> str:
    return f"Wrong argument type, expected '{expected}', got '{actual}'"


def _has_slot(vm: ScriptVM, idx: int) -> bool:
    top = vm.get_top()
    return 0 < idx <= top if idx > 0 else -top <= idx < 0


def check_var_type(vm: ScriptVM, idx: int, spec: Any) -> bool:
    adapter = var_for(spec)
    # A missing argument fails like any other mismatch; its type reads as "unknown".
    if _has_slot(vm, idx) and adapter.matches(vm, idx):
        return True
    message = wrong_argument_message(adapter.type_name(), slot_type_name(vm, idx))
    vm.config.log(f"argument {idx}: {message}", level="warn")
    vm.throw_error(message)
    return False


def check_var_types(vm: ScriptVM, start: int, specs: Sequence[Any]) -> bool:
    for offset, spec in enumerate(specs):
        if not check_var_type(vm, start + offset, spec):
            return False
    return True


def make_vars(vm: ScriptVM, start: int, specs: Sequence[Any]) -> Tuple[Var, ...]:
    return tuple(var_for(spec)(vm, start + offset) for offset, spec in enumerate(specs))


class Signature:
    """An ordered list of parameter specs for one callable.

    Example:
        sig = Signature(int, str, bool)
        if sig.validate(vm, 2):
            count, name, flag = sig.values(vm, 2)
    """

    def __init__(self, *specs: Any) -> None:
        self.specs: Tuple[Any, ...] = specs
        # Resolve now so an unsupported type fails at binding time.
        self.adapters: Tuple[Type[Var], ...] = tuple(var_for(spec) for spec in specs)

    def __len__(self) -> int:
        return len(self.specs)

    def __iter__(self) -> Iterator[Type[Var]]:
        return iter(self.adapters)

    def type_names(self) -> Tuple[str, ...]:
        return tuple(adapter.type_name() for adapter in self.adapters)

    def validate(self, vm: ScriptVM, start: int) -> bool:
        return check_var_types(vm, start, self.adapters)

    def build(self, vm: ScriptVM, start: int) -> Tuple[Var, ...]:
        return make_vars(vm, start, self.adapters)

    def values(self, vm: ScriptVM, start: int) -> Tuple[Any, ...]:
        """Build and unwrap. Buffer views stay wrapped: their value dies with them."""
        return tuple(
            var if var.controls_value_lifetime else var.value
            for var in self.build(vm, start)
        )

    def __repr__(self) -> str:
        return f"Signature({', '.join(self.type_names())})"
