"""
stackbridge: marshaling core between host Python and a tagged script value stack.

Public API re-exports from kernel/ (machinery) and lib/ (per-type adapters).
Importing the package registers every built-in adapter with the type registry.
"""
from .kernel import *  # noqa: F401, F403
from .kernel import __all__ as _kernel_all
from .lib.numeric import FloatVar, IntegerVar, extract_float, extract_integer
from .lib.scalars import BoolVar, EnumVar, NullVar
from .lib.text import BufferVar, BytesVar, ConstBufferVar, StringVar
from .lib.instances import InstanceVar, SharedBox, bind_class, ownership_of
from .lib.varargs import Signature, check_var_types, make_vars

__all__ = list(_kernel_all) + [
    # Numeric
    "FloatVar",
    "IntegerVar",
    "extract_float",
    "extract_integer",
    # Scalars
    "BoolVar",
    "EnumVar",
    "NullVar",
    # Text
    "BufferVar",
    "BytesVar",
    "ConstBufferVar",
    "StringVar",
    # Instances
    "InstanceVar",
    "SharedBox",
    "bind_class",
    "ownership_of",
    # Call arguments
    "Signature",
    "check_var_types",
    "make_vars",
]
