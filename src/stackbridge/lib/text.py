"""
Domain: Text

Three ways to read a text slot:
  - BufferVar: writable view into the VM's interned text, kept alive by a
    LifetimeGuard for as long as any copy of the adapter exists
  - ConstBufferVar: the same, read-only
  - BytesVar / StringVar: an owned copy of exactly `length` bytes, independent
    of the VM afterwards (embedded zero bytes survive)

Non-text slots are first converted with the VM's to-text coercion. All three
push a fresh text value of the given byte length.
"""
from __future__ import annotations

from typing import Any, Optional, Union

from ..kernel.guard import LifetimeGuard
from ..kernel.schema import SlotTag
from ..kernel.var import Var, preserve_top, register_var
from ..kernel.vm import ScriptString, ScriptVM

TextLike = Union[str, bytes, bytearray, memoryview]


def insert_text(vm: ScriptVM, value: TextLike, length: int = -1) -> None:
    vm.push_string(value, length)


def _is_text(vm: ScriptVM, idx: int) -> bool:
    return vm.get_type(idx) == SlotTag.STRING


def copy_text(vm: ScriptVM, idx: int) -> bytes:
    with preserve_top(vm):
        vm.to_string(idx)
        obj, size = vm.get_string_and_size(-1)
        return bytes(obj.data[:size])


class BufferVar(Var):
    TYPE_NAME = "string"
    referencable = False
    controls_value_lifetime = True
    readonly = False

    value: memoryview
    length: int

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        with preserve_top(vm):
            vm.to_string(idx)
            obj, size = vm.get_string_and_size(-1)
            self._guard = LifetimeGuard(vm, obj)
        self._bind(obj, size)

    def _bind(self, obj: ScriptString, size: int) -> None:
        view = memoryview(obj.data)[:size]
        self.value = view.toreadonly() if self.readonly else view
        self.length = size

    def __copy__(self) -> "BufferVar":
        clone = object.__new__(type(self))
        clone._guard = self._guard.copy()
        clone.value = self.value
        clone.length = self.length
        return clone

    copy = __copy__

    @property
    def target(self) -> Optional[ScriptString]:
        return self._guard.target

    @property
    def alive(self) -> bool:
        return self._guard.active

    def tobytes(self) -> bytes:
        return self.value.tobytes()

    def release(self) -> None:
        """Drop this copy's hold on the text; the view must not be used afterwards."""
        self._guard.release()

    def __enter__(self) -> "BufferVar":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __len__(self) -> int:
        return self.length

    @classmethod
    def insert(cls, vm: ScriptVM, value: TextLike, length: int = -1) -> None:
        insert_text(vm, value, length)

    @classmethod
    def matches(cls, vm: ScriptVM, idx: int) -> bool:
        return _is_text(vm, idx)


@register_var(memoryview)
class ConstBufferVar(BufferVar):
    readonly = True


@register_var(bytes)
class BytesVar(Var):
    TYPE_NAME = "string"
    referencable = False

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        self.value = copy_text(vm, idx)

    @classmethod
    def insert(cls, vm: ScriptVM, value: TextLike, length: int = -1) -> None:
        insert_text(vm, value, length)

    @classmethod
    def matches(cls, vm: ScriptVM, idx: int) -> bool:
        return _is_text(vm, idx)


@register_var(str)
class StringVar(BytesVar):
    encoding = "utf-8"

    def __init__(self, vm: ScriptVM, idx: int) -> None:
        self.value = copy_text(vm, idx).decode(self.encoding, "surrogateescape")

    @classmethod
    def insert(cls, vm: ScriptVM, value: Any, length: int = -1) -> None:
        if isinstance(value, str):
            value = value.encode(cls.encoding, "surrogateescape")
        insert_text(vm, value, length)
