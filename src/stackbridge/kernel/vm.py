"""
Script VM: a reference value stack for the marshaling core.

The core only talks to a VM through the primitives below. Any embedder may
substitute its own runtime as long as it offers the same method names; this
implementation keeps the Squirrel conventions the adapters were written for:

- positive stack indices are 1-based from the bottom, negative from the top
- text is interned and reference counted
- class instances sit in slots as handles tagged with their class
- errors raised by the script side are a single pending message
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import VMError
from .registry import ClassRegistry, InstanceHandle
from .schema import BridgeConfig, SlotTag

INTEGER_BITS = 64
_INTEGER_MASK = (1 << INTEGER_BITS) - 1
_INTEGER_SIGN = 1 << (INTEGER_BITS - 1)


def wrap_integer(value: int) -> int:
    """Wrap an arbitrary int into the VM's signed 64-bit integer."""
    value &= _INTEGER_MASK
    return value - (1 << INTEGER_BITS) if value & _INTEGER_SIGN else value


class ScriptString:
    """Interned text object owned by the VM."""

    __slots__ = ("data", "refs")

    def __init__(self, data: bytes) -> None:
        self.data = bytearray(data)
        self.refs = 0

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"ScriptString({bytes(self.data)!r}, refs={self.refs})"


@dataclass
class Slot:
    tag: SlotTag
    payload: Any = None


RefCounted = Union[ScriptString, InstanceHandle]


class ScriptVM:
    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        classes: Optional[ClassRegistry] = None,
    ) -> None:
        self.config = config or BridgeConfig()
        self.classes = classes or ClassRegistry()
        self._stack: List[Slot] = []
        self._strings: Dict[bytes, ScriptString] = {}
        self._error: Optional[str] = None

    # ------------------------------------------------------------------
    # Stack shape
    # ------------------------------------------------------------------

    def _abs_index(self, idx: int) -> int:
        top = len(self._stack)
        if idx > 0:
            pos = idx - 1
        elif idx < 0:
            pos = top + idx
        else:
            raise VMError("Stack index 0 is not addressable")
        if pos < 0 or pos >= top:
            raise VMError(f"Stack index {idx} out of range (top={top})")
        return pos

    def _slot(self, idx: int) -> Slot:
        return self._stack[self._abs_index(idx)]

    def get_top(self) -> int:
        return len(self._stack)

    def set_top(self, top: int) -> None:
        if top < 0:
            raise VMError(f"Negative stack top: {top}")
        if top < len(self._stack):
            del self._stack[top:]
        else:
            self._stack.extend(Slot(SlotTag.NULL) for _ in range(top - len(self._stack)))

    def pop(self, count: int = 1) -> None:
        if count > len(self._stack):
            raise VMError(f"Cannot pop {count} values from a stack of {len(self._stack)}")
        self.set_top(len(self._stack) - count)

    def get_type(self, idx: int) -> SlotTag:
        return self._slot(idx).tag

    # ------------------------------------------------------------------
    # Push primitives
    # ------------------------------------------------------------------

    def push_null(self) -> None:
        self._stack.append(Slot(SlotTag.NULL))

    def push_bool(self, value: bool) -> None:
        self._stack.append(Slot(SlotTag.BOOL, bool(value)))

    def push_integer(self, value: int) -> None:
        self._stack.append(Slot(SlotTag.INTEGER, wrap_integer(int(value))))

    def push_float(self, value: float) -> None:
        self._stack.append(Slot(SlotTag.FLOAT, float(value)))

    def push_string(self, value: Union[str, bytes, bytearray, memoryview], length: int = -1) -> None:
        """Push a text value; a non-negative length truncates to that many bytes."""
        if isinstance(value, str):
            data = value.encode("utf-8", "surrogateescape")
        else:
            data = bytes(value)
        if length >= 0:
            data = data[:length]
        self._stack.append(Slot(SlotTag.STRING, self._intern(data)))

    def push_instance(self, handle: InstanceHandle) -> None:
        self._stack.append(Slot(SlotTag.INSTANCE, handle))

    def push_other(self, tag: SlotTag, payload: Any = None) -> None:
        if tag in (SlotTag.NULL, SlotTag.BOOL, SlotTag.INTEGER, SlotTag.FLOAT,
                   SlotTag.STRING, SlotTag.INSTANCE):
            raise VMError(f"push_other cannot push a {tag.value} value")
        self._stack.append(Slot(tag, payload))

    def _intern(self, data: bytes) -> ScriptString:
        existing = self._strings.get(data)
        # Buffer views may have rewritten an interned object in place.
        if existing is not None and existing.data == data:
            return existing
        obj = ScriptString(data)
        self._strings[data] = obj
        return obj

    # ------------------------------------------------------------------
    # Get primitives
    # ------------------------------------------------------------------

    def get_bool(self, idx: int) -> bool:
        slot = self._slot(idx)
        if slot.tag != SlotTag.BOOL:
            raise VMError(f"Slot {idx} is {slot.tag.value}, not bool")
        return slot.payload

    def get_integer(self, idx: int) -> int:
        slot = self._slot(idx)
        if slot.tag == SlotTag.INTEGER:
            return slot.payload
        if slot.tag == SlotTag.FLOAT:
            return wrap_integer(int(slot.payload))
        raise VMError(f"Slot {idx} is {slot.tag.value}, not numeric")

    def get_float(self, idx: int) -> float:
        slot = self._slot(idx)
        if slot.tag.is_numeric:
            return float(slot.payload)
        raise VMError(f"Slot {idx} is {slot.tag.value}, not numeric")

    def get_string_and_size(self, idx: int) -> Tuple[ScriptString, int]:
        slot = self._slot(idx)
        if slot.tag != SlotTag.STRING:
            raise VMError(f"Slot {idx} is {slot.tag.value}, not string")
        return slot.payload, len(slot.payload)

    def get_instance_handle(self, idx: int) -> Optional[InstanceHandle]:
        slot = self._slot(idx)
        if slot.tag != SlotTag.INSTANCE:
            return None
        return slot.payload

    def get_stack_obj(self, idx: int) -> RefCounted:
        slot = self._slot(idx)
        if not isinstance(slot.payload, (ScriptString, InstanceHandle)):
            raise VMError(f"Slot {idx} ({slot.tag.value}) holds no reference counted object")
        return slot.payload

    # ------------------------------------------------------------------
    # Coercions
    # ------------------------------------------------------------------

    def to_bool(self, idx: int) -> bool:
        """Script truthiness: null, false, 0 and 0.0 are false."""
        slot = self._slot(idx)
        if slot.tag == SlotTag.NULL:
            return False
        if slot.tag in (SlotTag.BOOL, SlotTag.INTEGER, SlotTag.FLOAT):
            return bool(slot.payload)
        return True

    def to_string(self, idx: int) -> None:
        """Push the text form of the value at idx."""
        slot = self._slot(idx)
        if slot.tag == SlotTag.STRING:
            self._stack.append(Slot(SlotTag.STRING, slot.payload))
            return
        if slot.tag == SlotTag.NULL:
            text = "null"
        elif slot.tag == SlotTag.BOOL:
            text = "true" if slot.payload else "false"
        elif slot.tag == SlotTag.INTEGER:
            text = str(slot.payload)
        elif slot.tag == SlotTag.FLOAT:
            text = format(slot.payload, ".14g")
        else:
            text = f"({self._type_name(slot)} : 0x{id(slot.payload):x})"
        self.push_string(text)

    def _type_name(self, slot: Slot) -> str:
        if slot.tag == SlotTag.INSTANCE:
            record = self.classes.find(slot.payload.cls)
            if record is not None:
                return record.name
        return slot.tag.value

    def type_of(self, idx: int) -> None:
        """Push the script-visible type name of the value at idx."""
        self.push_string(self._type_name(self._slot(idx)))

    # ------------------------------------------------------------------
    # Reference counting
    # ------------------------------------------------------------------

    def add_ref(self, obj: RefCounted) -> None:
        obj.refs += 1

    def release(self, obj: RefCounted) -> None:
        if obj.refs <= 0:
            raise VMError(f"Release of unreferenced object {obj!r}")
        obj.refs -= 1

    def ref_count(self, obj: RefCounted) -> int:
        return obj.refs

    def is_interned(self, obj: ScriptString) -> bool:
        return any(candidate is obj for candidate in self._strings.values())

    def collect_garbage(self) -> int:
        """Drop interned text nobody references; returns how many were dropped."""
        on_stack = {id(slot.payload) for slot in self._stack if slot.tag == SlotTag.STRING}
        dead = [
            key for key, obj in self._strings.items()
            if obj.refs == 0 and id(obj) not in on_stack
        ]
        for key in dead:
            del self._strings[key]
        self.config.log(f"collected {len(dead)} text objects", level="debug")
        return len(dead)

    # ------------------------------------------------------------------
    # Error channel
    # ------------------------------------------------------------------

    def throw_error(self, message: str) -> None:
        self._error = message

    @property
    def last_error(self) -> Optional[str]:
        return self._error

    def clear_error(self) -> None:
        self._error = None
