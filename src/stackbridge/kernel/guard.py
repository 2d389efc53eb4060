"""
Lifetime Guard: keeps a VM-owned object alive while host code borrows it.

Every guard adds exactly one reference when it is created (directly or as a
copy of another guard) and drops exactly one when released. Releasing twice
is a no-op, so the VM's count always returns to where it started once every
guard is gone.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .vm import RefCounted, ScriptVM


class LifetimeGuard:
    __slots__ = ("_vm", "_obj")

    def __init__(self, vm: "ScriptVM", obj: "RefCounted") -> None:
        vm.add_ref(obj)
        self._vm: Optional["ScriptVM"] = vm
        self._obj: Optional["RefCounted"] = obj

    @property
    def target(self) -> Optional["RefCounted"]:
        return self._obj

    @property
    def active(self) -> bool:
        return self._obj is not None

    @property
    def ref_count(self) -> int:
        if self._vm is None or self._obj is None:
            return 0
        return self._vm.ref_count(self._obj)

    def copy(self) -> "LifetimeGuard":
        if self._vm is None or self._obj is None:
            raise ValueError("Cannot copy a released LifetimeGuard")
        return LifetimeGuard(self._vm, self._obj)

    __copy__ = copy

    def release(self) -> None:
        vm, obj = self._vm, self._obj
        if vm is None or obj is None:
            return
        self._vm = None
        self._obj = None
        vm.release(obj)

    def __enter__(self) -> "LifetimeGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __del__(self) -> None:
        # Interpreter shutdown may have torn the VM down already.
        if getattr(self, "_obj", None) is not None:
            self.release()

    def __repr__(self) -> str:
        state = "active" if self.active else "released"
        return f"<LifetimeGuard {state} {self._obj!r}>"
