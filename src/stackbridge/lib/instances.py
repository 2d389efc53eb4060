"""
Domain: Class Instances (Ownership Policies)

How a host object crosses the boundary is fixed per class when it is bound:

  - BY_VALUE:     extract a fresh default-constructed copy; push a copy
  - BY_REFERENCE: extract the instance itself; push an alias (a copy when const)
  - BY_POINTER:   extract leniently (null allowed); push an alias, or the
                  object's address as an integer when the class has no metadata
  - SHARED:       extract a copy into a SharedBox both sides hold; push an
                  alias of the box's object that keeps the box alive

Ref[T], ConstRef[T], Ptr[T] and Shared[T] request a policy explicitly.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Callable, Dict, Generic, Optional, Type, TypeVar, Union

from ..kernel.errors import NullInstance
from ..kernel.schema import OwnershipMode, SlotTag
from ..kernel.var import TypeSpec, Var, register_qualified_resolver, register_resolver, var_for
from ..kernel.vm import ScriptVM

T = TypeVar("T")

_OWNERSHIP: Dict[type, OwnershipMode] = {}


def bind_class(
    cls: Optional[type] = None,
    *,
    ownership: OwnershipMode = OwnershipMode.BY_VALUE,
) -> Union[type, Callable[[type], type]]:
    """Fix the ownership policy a class uses when no qualifier is given.

    Usable as a plain call or as a decorator:

        @bind_class(ownership=OwnershipMode.BY_REFERENCE)
        class Widget: ...
    """

    def decorator(target: type) -> type:
        _OWNERSHIP[target] = OwnershipMode(ownership)
        return target

    if cls is None:
        return decorator
    return decorator(cls)


def ownership_of(cls: type) -> OwnershipMode:
    return _OWNERSHIP.get(cls, OwnershipMode.BY_VALUE)


class SharedBox(Generic[T]):
    """Storage held jointly by host code and every script slot aliasing it."""

    __slots__ = ("_value", "__weakref__")

    def __init__(self, value: T) -> None:
        self._value = value

    def get(self) -> T:
        return self._value

    @property
    def value(self) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"SharedBox({self._value!r})"


_TYPE_NAMES = {
    OwnershipMode.BY_VALUE: "native instance",
    OwnershipMode.BY_REFERENCE: "native instance ref",
    OwnershipMode.BY_POINTER: "native instance ptr",
    OwnershipMode.SHARED: "native instance shared",
}


class InstanceVar(Var):
    cls: type = object
    mode: OwnershipMode = OwnershipMode.BY_VALUE
    const: bool = False

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        classes = vm.classes
        mode = self.mode
        if mode == OwnershipMode.BY_VALUE:
            self.value = classes.construct_from(vm, idx, self.cls)
        elif mode == OwnershipMode.BY_REFERENCE:
            self.value = classes.get_instance(vm, idx, self.cls)
        elif mode == OwnershipMode.BY_POINTER:
            self.value = classes.get_instance(vm, idx, self.cls, nullable=True)
        elif mode == OwnershipMode.SHARED:
            if vm.get_type(idx) == SlotTag.NULL:
                self.value = None
            else:
                self.value = SharedBox(classes.construct_from(vm, idx, self.cls))
        else:
            raise ValueError(f"Unknown ownership mode: {mode!r}")

    @classmethod
    def insert(cls, vm: ScriptVM, value: Any) -> None:
        classes = vm.classes
        mode = cls.mode
        if mode == OwnershipMode.BY_VALUE:
            if value is None:
                raise NullInstance(f"Cannot push a null value of {cls.cls.__qualname__}")
            classes.push_instance_copy(vm, cls.cls, value)
        elif mode == OwnershipMode.BY_REFERENCE:
            if value is None:
                raise NullInstance(f"Cannot push a null reference to {cls.cls.__qualname__}")
            if cls.const:
                classes.push_instance_copy(vm, cls.cls, value)
            else:
                classes.push_instance(vm, cls.cls, value)
        elif mode == OwnershipMode.BY_POINTER:
            if classes.has_class_data(cls.cls):
                classes.push_instance(vm, cls.cls, value)
            else:
                address = 0 if value is None else id(value)
                vm.config.log(
                    f"{cls.cls.__qualname__} is not bound; pushing its address as an integer",
                    level="debug",
                )
                vm.push_integer(address)
        elif mode == OwnershipMode.SHARED:
            box = value if isinstance(value, SharedBox) or value is None else SharedBox(value)
            if box is None:
                classes.require(cls.cls)
                vm.push_null()
            else:
                classes.push_instance(vm, cls.cls, box.get(), keepalive=box)
        else:
            raise ValueError(f"Unknown ownership mode: {mode!r}")

    @classmethod
    def matches(cls, vm: ScriptVM, idx: int) -> bool:
        return vm.classes.is_class_instance(vm, idx, cls.cls)


@lru_cache(maxsize=None)
def instance_var(
    cls: type,
    mode: OwnershipMode,
    const: bool = False,
    referencable: Optional[bool] = None,
) -> Type[InstanceVar]:
    """Adapter class for cls under one policy.

    Reference pushes of a plain class always take the Ref/ConstRef route, so
    the adapter behind an unqualified class is referencable whatever its
    binding-time mode. Explicit Ptr[T] and Shared[T] specs already fix their
    representation and are not.
    """
    if referencable is None:
        referencable = mode in (OwnershipMode.BY_VALUE, OwnershipMode.BY_REFERENCE)
    prefix = "Const" if const else ""
    return type(
        f"{prefix}InstanceVar[{cls.__name__}, {mode.value}]",
        (InstanceVar,),
        {
            "cls": cls,
            "mode": mode,
            "const": const,
            "TYPE_NAME": _TYPE_NAMES[mode],
            "referencable": referencable,
        },
    )


_QUALIFIER_MODES = {
    "ref": (OwnershipMode.BY_REFERENCE, False),
    "const_ref": (OwnershipMode.BY_REFERENCE, True),
    "ptr": (OwnershipMode.BY_POINTER, False),
    "shared": (OwnershipMode.SHARED, False),
}


@register_resolver(priority=100)
def _resolve_class(spec: Any) -> Optional[Type[Var]]:
    if isinstance(spec, type) and not issubclass(spec, Var):
        return instance_var(spec, ownership_of(spec), referencable=True)
    return None


@register_qualified_resolver(priority=100)
def _resolve_qualified_class(spec: TypeSpec) -> Optional[Type[Var]]:
    if not isinstance(spec.target, type) or issubclass(spec.target, Var):
        return None
    if not issubclass(var_for(spec.target), InstanceVar):
        return None
    mode, const = _QUALIFIER_MODES[spec.qualifier]
    return instance_var(spec.target, mode, const)
