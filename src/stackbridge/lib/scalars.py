"""
Domain: Scalars (Bool, Enum, Null)

  - bool: accepts any slot and reads it through the VM's truthiness rule
  - enum: reads integer slots only; anything else quietly becomes zero
  - None: pushes null; extraction always yields None
"""
from __future__ import annotations

import enum
from functools import lru_cache
from typing import Any, Optional, Type

from ..kernel.schema import SlotTag
from ..kernel.var import TypeSpec, Var, register_qualified_resolver, register_resolver, register_var
from ..kernel.vm import ScriptVM


@register_var(bool)
class BoolVar(Var):
    TYPE_NAME = "bool"
    referencable = False

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        self.value = vm.to_bool(idx)

    @classmethod
    def insert(cls, vm: ScriptVM, value: Any) -> None:
        vm.push_bool(bool(value))

    @classmethod
    def matches(cls, vm: ScriptVM, idx: int) -> bool:
        return True


class ConstBoolVar(BoolVar):
    TYPE_NAME = "bool const ref"


@register_var(type(None))
class NullVar(Var):
    TYPE_NAME = "null"
    referencable = False

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        self.value = None

    @classmethod
    def insert(cls, vm: ScriptVM, value: Any) -> None:
        vm.push_null()

    @classmethod
    def matches(cls, vm: ScriptVM, idx: int) -> bool:
        return vm.get_type(idx) == SlotTag.NULL


class EnumVar(Var):
    TYPE_NAME = "enum"
    referencable = False
    enum_cls: Type[enum.Enum] = enum.IntEnum

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        raw = vm.get_integer(idx) if vm.get_type(idx) == SlotTag.INTEGER else 0
        self.value = self.coerce(raw)

    @classmethod
    def coerce(cls, raw: int) -> Any:
        """Map an integer onto the enum; values with no member stay plain ints."""
        try:
            return cls.enum_cls(raw)
        except ValueError:
            return raw

    @classmethod
    def insert(cls, vm: ScriptVM, value: Any) -> None:
        if isinstance(value, enum.Enum):
            value = value.value
        vm.push_integer(int(value))

    @classmethod
    def matches(cls, vm: ScriptVM, idx: int) -> bool:
        return vm.get_type(idx) == SlotTag.INTEGER


@lru_cache(maxsize=None)
def enum_var(enum_cls: Type[enum.Enum]) -> Type[EnumVar]:
    return type(f"EnumVar[{enum_cls.__name__}]", (EnumVar,), {"enum_cls": enum_cls})


@register_resolver(priority=10)
def _resolve_enum(spec: Any) -> Optional[Type[Var]]:
    if isinstance(spec, type) and issubclass(spec, enum.Enum):
        return enum_var(spec)
    return None


@register_qualified_resolver(priority=20)
def _resolve_qualified_bool(spec: TypeSpec) -> Optional[Type[Var]]:
    if spec.target is bool and spec.qualifier == "const_ref":
        return ConstBoolVar
    return None
