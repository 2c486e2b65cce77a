"""
Typed events produced while a request executes.

The names follow the notifications a TDS driver raises for a request:
column metadata when a result set starts, one row event per row, a
completion event per statement (``Done``, or ``DoneInProc`` inside a
procedure), ``ReturnValue`` for each output parameter and ``DoneProc``
once the procedure finishes with its return status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Tuple


@dataclass(frozen=True)
class Column:
    name: str
    type_code: Any = None


@dataclass(frozen=True)
class ColumnMetadata:
    kind: ClassVar[str] = "column_metadata"
    columns: Tuple[Column, ...]


@dataclass(frozen=True)
class Row:
    kind: ClassVar[str] = "row"
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class Done:
    """A statement of a batch or raw statement completed."""

    kind: ClassVar[str] = "done"
    row_count: int
    more: bool


@dataclass(frozen=True)
class DoneInProc:
    """A statement inside a stored procedure completed."""

    kind: ClassVar[str] = "done_in_proc"
    row_count: int
    more: bool


@dataclass(frozen=True)
class DoneProc:
    kind: ClassVar[str] = "done_proc"
    row_count: int
    more: bool
    return_value: Optional[int]


@dataclass(frozen=True)
class ReturnValue:
    kind: ClassVar[str] = "return_value"
    name: str
    value: Any
