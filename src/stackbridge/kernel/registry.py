from __future__ import annotations

import copy as _copy
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from .errors import MissingMetadata, NullInstance

if TYPE_CHECKING:
    from .vm import ScriptVM


Constructor = Callable[[], Any]
Assigner = Callable[[Any, Any], None]
Copier = Callable[[Any], Any]


@dataclass(eq=False)
class InstanceHandle:
    """A class instance as the script side sees it.

    owned is True when the script holds its own copy, False for an alias of
    host storage. keepalive pins jointly-held storage for as long as the
    handle exists.
    """

    cls: type
    instance: Any
    owned: bool = False
    keepalive: Any = None
    refs: int = 0


def assign_state(target: Any, source: Any) -> None:
    """Copy-assign the attribute state of source onto target."""
    if hasattr(source, "__dict__"):
        target.__dict__.update(source.__dict__)
    for klass in type(source).__mro__:
        for name in getattr(klass, "__slots__", ()):
            if name in ("__dict__", "__weakref__"):
                continue
            if hasattr(source, name):
                setattr(target, name, getattr(source, name))


@dataclass
class ClassRecord:
    cls: type
    name: str
    construct: Constructor
    assign: Assigner
    copy: Copier


class ClassRegistry:
    """Per-VM class metadata: how to construct, copy and alias instances."""

    def __init__(self) -> None:
        self._records: Dict[type, ClassRecord] = {}

    def register(
        self,
        cls: type,
        *,
        name: Optional[str] = None,
        construct: Optional[Constructor] = None,
        assign: Optional[Assigner] = None,
        copy: Optional[Copier] = None,
    ) -> ClassRecord:
        record = ClassRecord(
            cls=cls,
            name=name or cls.__name__,
            construct=construct or cls,
            assign=assign or assign_state,
            copy=copy or _copy.copy,
        )
        self._records[cls] = record
        return record

    def has_class_data(self, cls: type) -> bool:
        return cls in self._records

    def find(self, cls: type) -> Optional[ClassRecord]:
        return self._records.get(cls)

    def require(self, cls: type) -> ClassRecord:
        record = self._records.get(cls)
        if record is None:
            raise MissingMetadata(f"Class/typename was not bound: {cls.__qualname__}")
        return record

    def is_class_instance(self, vm: "ScriptVM", idx: int, cls: type) -> bool:
        handle = vm.get_instance_handle(idx)
        return handle is not None and issubclass(handle.cls, cls)

    def get_instance(self, vm: "ScriptVM", idx: int, cls: type, nullable: bool = False) -> Any:
        """Fetch the host object behind the slot at idx.

        With nullable=True a null or foreign slot yields None; otherwise it
        raises NullInstance.
        """
        if self.is_class_instance(vm, idx, cls):
            return vm.get_instance_handle(idx).instance
        if nullable:
            return None
        raise NullInstance(
            f"Expected an instance of {cls.__qualname__} at slot {idx}, "
            f"got {vm.get_type(idx).value}"
        )

    def push_instance_copy(self, vm: "ScriptVM", cls: type, value: Any) -> None:
        record = self.require(cls)
        vm.push_instance(InstanceHandle(cls=cls, instance=record.copy(value), owned=True))

    def push_instance(self, vm: "ScriptVM", cls: type, value: Any, keepalive: Any = None) -> None:
        self.require(cls)
        if value is None:
            vm.push_null()
            return
        vm.push_instance(InstanceHandle(cls=cls, instance=value, owned=False, keepalive=keepalive))

    def construct_from(self, vm: "ScriptVM", idx: int, cls: type) -> Any:
        """Default-construct a fresh object and copy-assign the slot's instance onto it."""
        source = self.get_instance(vm, idx, cls)
        record = self.find(cls)
        if record is None:
            target = cls()
            assign_state(target, source)
        else:
            target = record.construct()
            record.assign(target, source)
        return target


__all__ = [
    "ClassRecord",
    "ClassRegistry",
    "InstanceHandle",
    "assign_state",
]
