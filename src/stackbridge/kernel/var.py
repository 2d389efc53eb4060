"""
Var: the adapter contract and the static type-indexed adapter registry.

Every host type that crosses the boundary has one Var subclass offering four
operations:

- construction from a slot (extraction; the host value lands on .value)
- insert: push a host value onto the VM stack
- matches: tag test used by call validation
- type_name: the name shown in diagnostics

Adapters are looked up by type spec with var_for(). A spec is a Var subclass,
a key registered with register_var(), a plain Python type, or a qualified
spec such as Ref[Widget] or ConstRef[int].
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional, Tuple, Type

from .errors import TypeMismatch, VMError

if TYPE_CHECKING:
    from .vm import ScriptVM


class Var:
    TYPE_NAME = "unknown"
    # Pushed "by reference" only when True; otherwise always copied.
    referencable = True
    # .value stays valid only while the adapter is alive.
    controls_value_lifetime = False

    value: Any

    def __init__(self, vm: "ScriptVM", idx: int) -> None:
        raise NotImplementedError

    @classmethod
    def insert(cls, vm: "ScriptVM", value: Any) -> None:
        raise NotImplementedError

    @classmethod
    def matches(cls, vm: "ScriptVM", idx: int) -> bool:
        raise NotImplementedError

    @classmethod
    def type_name(cls) -> str:
        return cls.TYPE_NAME

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {getattr(self, 'value', None)!r}>"


# =============================================================================
# Qualified specs
# =============================================================================


@dataclass(frozen=True)
class TypeSpec:
    qualifier: str
    target: Any

    def __repr__(self) -> str:
        name = getattr(self.target, "__name__", repr(self.target))
        return f"{QUALIFIERS[self.qualifier].label}[{name}]"


class Qualifier:
    def __init__(self, key: str, label: str) -> None:
        self.key = key
        self.label = label

    def __getitem__(self, target: Any) -> TypeSpec:
        if isinstance(target, TypeSpec):
            raise TypeError(f"Cannot qualify {target!r} twice")
        return TypeSpec(self.key, target)

    def __repr__(self) -> str:
        return self.label


Ref = Qualifier("ref", "Ref")
ConstRef = Qualifier("const_ref", "ConstRef")
Ptr = Qualifier("ptr", "Ptr")
Shared = Qualifier("shared", "Shared")

QUALIFIERS: Dict[str, Qualifier] = {q.key: q for q in (Ref, ConstRef, Ptr, Shared)}


# =============================================================================
# Registry
# =============================================================================

Resolver = Callable[[Any], Optional[Type[Var]]]
QualifiedResolver = Callable[[TypeSpec], Optional[Type[Var]]]

_VARS: Dict[Any, Type[Var]] = {}
_RESOLVERS: List[Tuple[int, Resolver]] = []
_QUALIFIED_RESOLVERS: List[Tuple[int, QualifiedResolver]] = []


def register_var(key: Any) -> Callable[[Type[Var]], Type[Var]]:
    """Class decorator binding an adapter to an exact type key."""

    def decorator(adapter: Type[Var]) -> Type[Var]:
        _VARS[key] = adapter
        return adapter

    return decorator


def unregister_var(key: Any) -> None:
    _VARS.pop(key, None)


def register_resolver(priority: int) -> Callable[[Resolver], Resolver]:
    """Register a fallback resolver; lower priorities are consulted first."""

    def decorator(fn: Resolver) -> Resolver:
        _RESOLVERS.append((priority, fn))
        _RESOLVERS.sort(key=lambda item: item[0])
        return fn

    return decorator


def register_qualified_resolver(priority: int) -> Callable[[QualifiedResolver], QualifiedResolver]:
    def decorator(fn: QualifiedResolver) -> QualifiedResolver:
        _QUALIFIED_RESOLVERS.append((priority, fn))
        _QUALIFIED_RESOLVERS.sort(key=lambda item: item[0])
        return fn

    return decorator


def var_for(spec: Any) -> Type[Var]:
    """Return the adapter class for a type spec."""
    if isinstance(spec, type) and issubclass(spec, Var):
        return spec

    if isinstance(spec, TypeSpec):
        for _, resolver in _QUALIFIED_RESOLVERS:
            adapter = resolver(spec)
            if adapter is not None:
                return adapter
        # Qualifiers that change nothing for this type collapse to the plain adapter.
        return var_for(spec.target)

    try:
        adapter = _VARS.get(spec)
    except TypeError:
        adapter = None
    if adapter is not None:
        return adapter

    for _, resolver in _RESOLVERS:
        adapter = resolver(spec)
        if adapter is not None:
            return adapter

    raise TypeError(f"No adapter for type spec {spec!r}")


def is_referencable(spec: Any) -> bool:
    return var_for(spec).referencable


def controls_value_lifetime(spec: Any) -> bool:
    return var_for(spec).controls_value_lifetime


# =============================================================================
# Diagnostics and shared helpers
# =============================================================================


@contextmanager
def preserve_top(vm: "ScriptVM") -> Iterator[int]:
    """Restore the stack depth on exit, whatever happened inside."""
    top = vm.get_top()
    try:
        yield top
    finally:
        vm.set_top(top)


def slot_type_name(vm: "ScriptVM", idx: int) -> str:
    """Script-visible type name of a slot, leaving the stack as it was."""
    with preserve_top(vm):
        try:
            vm.type_of(idx)
            vm.to_string(-1)
            obj, size = vm.get_string_and_size(-1)
        except VMError:
            return "unknown"
        return bytes(obj.data[:size]).decode("utf-8", "replace")


def format_type_error(vm: "ScriptVM", idx: int, expected: str) -> str:
    return f"Expected '{expected}', got '{slot_type_name(vm, idx)}'"


def mismatch(vm: "ScriptVM", idx: int, expected: str, default: Any) -> Any:
    """Handle a tag the adapter cannot read.

    Raises TypeMismatch unless the VM is configured to continue, in which case
    the mismatch is logged and the zero default is returned.
    """
    message = format_type_error(vm, idx, expected)
    if vm.config.assert_on_mismatch:
        raise TypeMismatch(message)
    vm.config.log(f"{message}; using {default!r}", level="warn")
    return default


# =============================================================================
# Entry points
# =============================================================================


def extract(vm: "ScriptVM", idx: int, spec: Any) -> Any:
    """Extract the slot at idx as spec and return the bare host value.

    Adapters that control their value's lifetime are returned whole, since
    their .value dies with them.
    """
    adapter = var_for(spec)
    var = adapter(vm, idx)
    if adapter.controls_value_lifetime:
        return var
    return var.value


def matches(vm: "ScriptVM", idx: int, spec: Any) -> bool:
    return var_for(spec).matches(vm, idx)


def type_name(spec: Any) -> str:
    return var_for(spec).type_name()


def push_var(vm: "ScriptVM", value: Any, spec: Any = None) -> None:
    """Push value using the adapter for spec (default: the value's own type)."""
    var_for(type(value) if spec is None else spec).insert(vm, value)


def push_var_r(vm: "ScriptVM", value: Any, spec: Any = None, const: bool = False) -> None:
    """Push value by reference where its type allows, by copy otherwise.

    Qualified specs (pointers, shared storage) already fix their representation
    and are pushed as given. A const reference never exposes mutable storage.
    """
    if spec is None:
        spec = type(value)
    if isinstance(spec, TypeSpec) or not is_referencable(spec):
        var_for(spec).insert(vm, value)
        return
    qualified = ConstRef[spec] if const else Ref[spec]
    var_for(qualified).insert(vm, value)
