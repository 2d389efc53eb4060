from __future__ import annotations


class MarshalError(Exception):
    """Error moving a value across the host/script boundary."""

    kind = "marshal_error"


class TypeMismatch(MarshalError):
    """Slot tag is incompatible with the requested host type."""

    kind = "type_mismatch"


class MissingMetadata(MarshalError):
    """A push needs class metadata that was never registered with the VM."""

    kind = "missing_metadata"


class NullInstance(MarshalError):
    """A value or reference instance adapter found no instance at the slot."""

    kind = "null_instance"


class VMError(Exception):
    """Misuse of the reference VM itself (bad index, wrong payload)."""

    kind = "vm_error"
