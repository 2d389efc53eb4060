from __future__ import annotations

import os
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SlotTag(str, Enum):
    NULL = "null"
    BOOL = "bool"
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    INSTANCE = "instance"
    TABLE = "table"
    ARRAY = "array"
    CLOSURE = "closure"
    USERPOINTER = "userpointer"

    @property
    def is_numeric(self) -> bool:
        return self in (SlotTag.INTEGER, SlotTag.FLOAT)


class OwnershipMode(str, Enum):
    """How a class instance crosses the boundary."""

    BY_VALUE = "by_value"
    BY_REFERENCE = "by_reference"
    BY_POINTER = "by_pointer"
    SHARED = "shared"


LOG_LEVELS = ("debug", "info", "warn", "error")

_LOG_PREFIXES = {
    "debug": "[DEBUG]",
    "info": "[BRIDGE LOG]",
    "warn": "[WARN]",
    "error": "[ERROR]",
}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class BridgeConfig(BaseModel):
    """Behavior switches and diagnostics sink for one VM.

    The output_sink enables the I/O Membrane pattern: the marshaling core never
    prints directly. Embedders pass a collector, tests pass a list.append.
    """

    # Raw extraction of an incompatible tag raises TypeMismatch. When off,
    # a warning is emitted and the zero default is used instead.
    assert_on_mismatch: bool = True
    # Integer parameters also match float-tagged slots during validation.
    integer_accepts_float: bool = False
    log_level: str = "warn"

    output_sink: Optional[Callable[[str], None]] = Field(default=None, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value

    @classmethod
    def from_env(cls, output_sink: Optional[Callable[[str], None]] = None) -> "BridgeConfig":
        return cls(
            assert_on_mismatch=_env_flag("STACKBRIDGE_ASSERT_ON_MISMATCH", True),
            integer_accepts_float=_env_flag("STACKBRIDGE_INTEGER_ACCEPTS_FLOAT", False),
            log_level=os.environ.get("STACKBRIDGE_LOG_LEVEL", "warn"),
            output_sink=output_sink,
        )

    def emit(self, content: str) -> None:
        """Send output to the configured sink, or stdout as fallback."""
        if self.output_sink:
            self.output_sink(content)
        else:
            print(content)

    def log(self, message: str, level: str = "info") -> None:
        if LOG_LEVELS.index(level) < LOG_LEVELS.index(self.log_level):
            return
        self.emit(f"{_LOG_PREFIXES[level]} {message}")
