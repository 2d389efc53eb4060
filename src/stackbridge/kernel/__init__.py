"""
Kernel: The machinery of the bridge.

This module contains the boundary infrastructure:
- schema: slot tags, ownership modes, configuration
- errors: the marshaling error taxonomy
- vm: reference script VM (the value stack the core talks to)
- registry: per-VM class metadata
- guard: reference-counted lifetime guard
- var: adapter contract, type-indexed adapter registry, push entry points

The kernel is distinct from lib/ (the per-type adapters).
Kernel = machinery. Lib = vocabulary.
"""
from .schema import BridgeConfig, OwnershipMode, SlotTag
from .errors import MarshalError, MissingMetadata, NullInstance, TypeMismatch, VMError
from .registry import ClassRecord, ClassRegistry, InstanceHandle
from .vm import ScriptString, ScriptVM
from .guard import LifetimeGuard
from .var import (
    ConstRef,
    Ptr,
    Ref,
    Shared,
    TypeSpec,
    Var,
    extract,
    format_type_error,
    is_referencable,
    matches,
    push_var,
    push_var_r,
    register_var,
    type_name,
    var_for,
)

__all__ = [
    # Schema
    "BridgeConfig",
    "OwnershipMode",
    "SlotTag",
    # Errors
    "MarshalError",
    "MissingMetadata",
    "NullInstance",
    "TypeMismatch",
    "VMError",
    # Registry
    "ClassRecord",
    "ClassRegistry",
    "InstanceHandle",
    # VM
    "ScriptString",
    "ScriptVM",
    # Guard
    "LifetimeGuard",
    # Var
    "ConstRef",
    "Ptr",
    "Ref",
    "Shared",
    "TypeSpec",
    "Var",
    "extract",
    "format_type_error",
    "is_referencable",
    "matches",
    "push_var",
    "push_var_r",
    "register_var",
    "type_name",
    "var_for",
]
