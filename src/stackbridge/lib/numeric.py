"""
Domain: Numeric (Coercion)

Shared rules for turning a tagged slot into any host integer or float type,
and one generic adapter per family parameterized over the concrete ctypes
type that fixes width and signedness.

Coercion table:
  - bool    -> 0 / 1
  - integer -> cast to the target width (two's complement wrap)
  - float   -> integers: truncate into a machine int, then cast to the target
               floats: pass through (rounded for c_float)
  - other   -> TypeMismatch

Whatever the host width, values are pushed as the VM's single integer or
float representation.
"""
from __future__ import annotations

import ctypes
import math
from functools import lru_cache
from typing import Any, Optional, Tuple, Type

from ..kernel.schema import SlotTag
from ..kernel.var import (
    TypeSpec,
    Var,
    mismatch,
    register_qualified_resolver,
    register_var,
)
from ..kernel.vm import ScriptVM

# The intermediate type for float -> integer conversion.
MACHINE_INT = ctypes.c_int

INTEGER_CTYPES = (
    ctypes.c_byte,
    ctypes.c_ubyte,
    ctypes.c_short,
    ctypes.c_ushort,
    ctypes.c_int,
    ctypes.c_uint,
    ctypes.c_long,
    ctypes.c_ulong,
    ctypes.c_longlong,
    ctypes.c_ulonglong,
)

FLOAT_CTYPES = (ctypes.c_float, ctypes.c_double)


@lru_cache(maxsize=None)
def _int_layout(ctype: Any) -> Tuple[int, bool]:
    return ctypes.sizeof(ctype) * 8, ctype(-1).value < 0


def cast(ctype: Any, value: Any) -> Any:
    """C-style static_cast of a Python number into ctype's range."""
    if ctype in FLOAT_CTYPES:
        return ctype(value).value
    bits, signed = _int_layout(ctype)
    value = int(value) & ((1 << bits) - 1)
    if signed and value >> (bits - 1):
        value -= 1 << bits
    return value


def _truncate_to_machine_int(value: float) -> int:
    if not math.isfinite(value):
        return 0
    return cast(MACHINE_INT, math.trunc(value))


def extract_integer(vm: ScriptVM, idx: int, ctype: Any = ctypes.c_longlong) -> int:
    tag = vm.get_type(idx)
    if tag == SlotTag.BOOL:
        return cast(ctype, int(vm.get_bool(idx)))
    if tag == SlotTag.INTEGER:
        return cast(ctype, vm.get_integer(idx))
    if tag == SlotTag.FLOAT:
        return cast(ctype, _truncate_to_machine_int(vm.get_float(idx)))
    return mismatch(vm, idx, "integer", 0)


def extract_float(vm: ScriptVM, idx: int, ctype: Any = ctypes.c_double) -> float:
    tag = vm.get_type(idx)
    if tag == SlotTag.BOOL:
        return cast(ctype, float(vm.get_bool(idx)))
    if tag == SlotTag.INTEGER:
        return cast(ctype, float(vm.get_integer(idx)))
    if tag == SlotTag.FLOAT:
        return cast(ctype, vm.get_float(idx))
    return mismatch(vm, idx, "float", 0.0)


def insert_integer(vm: ScriptVM, value: Any) -> None:
    vm.push_integer(int(value))


def insert_float(vm: ScriptVM, value: Any) -> None:
    vm.push_float(float(value))


class IntegerVar(Var):
    TYPE_NAME = "integer"
    referencable = False
    ctype: Any = ctypes.c_longlong

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        self.value = extract_integer(vm, idx, self.ctype)

    @classmethod
    def insert(cls, vm: ScriptVM, value: Any) -> None:
        insert_integer(vm, value)

    @classmethod
    def matches(cls, vm: ScriptVM, idx: int) -> bool:
        tag = vm.get_type(idx)
        if tag == SlotTag.INTEGER:
            return True
        return tag == SlotTag.FLOAT and vm.config.integer_accepts_float


class FloatVar(Var):
    TYPE_NAME = "float"
    referencable = False
    ctype: Any = ctypes.c_double

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        self.value = extract_float(vm, idx, self.ctype)

    @classmethod
    def insert(cls, vm: ScriptVM, value: Any) -> None:
        insert_float(vm, value)

    @classmethod
    def matches(cls, vm: ScriptVM, idx: int) -> bool:
        return vm.get_type(idx).is_numeric


# Qualifier suffixes each family accepts; anything else collapses to the plain adapter.
_INTEGER_SUFFIXES = {None: "", "ref": " ref", "const_ref": " const ref"}
_FLOAT_SUFFIXES = {None: "", "const_ref": " const ref"}


@lru_cache(maxsize=None)
def integer_var(ctype: Any, qualifier: Optional[str] = None) -> Type[IntegerVar]:
    return type(
        f"IntegerVar[{ctype.__name__}]",
        (IntegerVar,),
        {"ctype": ctype, "TYPE_NAME": "integer" + _INTEGER_SUFFIXES[qualifier]},
    )


@lru_cache(maxsize=None)
def float_var(ctype: Any, qualifier: Optional[str] = None) -> Type[FloatVar]:
    return type(
        f"FloatVar[{ctype.__name__}]",
        (FloatVar,),
        {"ctype": ctype, "TYPE_NAME": "float" + _FLOAT_SUFFIXES[qualifier]},
    )


_INTEGER_KEYS = {ctype: ctype for ctype in INTEGER_CTYPES}
_INTEGER_KEYS[int] = ctypes.c_longlong
_FLOAT_KEYS = {ctype: ctype for ctype in FLOAT_CTYPES}
_FLOAT_KEYS[float] = ctypes.c_double

for _key, _ctype in _INTEGER_KEYS.items():
    register_var(_key)(integer_var(_ctype))
for _key, _ctype in _FLOAT_KEYS.items():
    register_var(_key)(float_var(_ctype))


@register_qualified_resolver(priority=10)
def _resolve_qualified_numeric(spec: TypeSpec) -> Optional[Type[Var]]:
    if spec.target in _INTEGER_KEYS and spec.qualifier in _INTEGER_SUFFIXES:
        return integer_var(_INTEGER_KEYS[spec.target], spec.qualifier)
    if spec.target in _FLOAT_KEYS and spec.qualifier in _FLOAT_SUFFIXES:
        return float_var(_FLOAT_KEYS[spec.target], spec.qualifier)
    return None
