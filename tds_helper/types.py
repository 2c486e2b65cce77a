"""
SQL Server type tokens.

``SqlType`` (exported as ``TYPES`` too) enumerates the parameter types a
definition may declare.  Each member knows its T-SQL name and how to
render a declaration such as ``nvarchar(50)`` or ``decimal(18, 4)`` from
the definition's ``options``.  Output parameters are declared as T-SQL
variables, which is why the declaration matters at all.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

# Declaration styles
_FIXED = "fixed"
_LENGTH = "length"
_VAR_LENGTH = "var_length"
_PRECISION = "precision"
_TIME_SCALE = "time_scale"


class SqlType(Enum):
    Bit = ("bit", _FIXED)
    TinyInt = ("tinyint", _FIXED)
    SmallInt = ("smallint", _FIXED)
    Int = ("int", _FIXED)
    BigInt = ("bigint", _FIXED)
    Numeric = ("numeric", _PRECISION)
    Decimal = ("decimal", _PRECISION)
    SmallMoney = ("smallmoney", _FIXED)
    Money = ("money", _FIXED)
    Float = ("float", _FIXED)
    Real = ("real", _FIXED)
    SmallDateTime = ("smalldatetime", _FIXED)
    DateTime = ("datetime", _FIXED)
    DateTime2 = ("datetime2", _TIME_SCALE)
    DateTimeOffset = ("datetimeoffset", _TIME_SCALE)
    Time = ("time", _TIME_SCALE)
    Date = ("date", _FIXED)
    Char = ("char", _LENGTH)
    VarChar = ("varchar", _VAR_LENGTH)
    Text = ("text", _FIXED)
    NChar = ("nchar", _LENGTH)
    NVarChar = ("nvarchar", _VAR_LENGTH)
    NText = ("ntext", _FIXED)
    Binary = ("binary", _LENGTH)
    VarBinary = ("varbinary", _VAR_LENGTH)
    Image = ("image", _FIXED)
    UniqueIdentifier = ("uniqueidentifier", _FIXED)
    Xml = ("xml", _FIXED)

    def __init__(self, sql_name: str, style: str) -> None:
        self.sql_name = sql_name
        self.style = style

    @property
    def is_datetime(self) -> bool:
        """True for types whose string values are parsed into ``datetime``."""
        return self in _DATETIME_TYPES

    def declaration(self, options: Optional[Mapping[str, Any]] = None) -> str:
        """Render the T-SQL type used to declare a variable of this type."""
        options = options or {}
        if self.style == _VAR_LENGTH:
            length = options.get("length")
            if length is None or str(length).lower() == "max":
                return f"{self.sql_name}(max)"
            return f"{self.sql_name}({int(length)})"
        if self.style == _LENGTH:
            length = options.get("length")
            if length is None:
                return self.sql_name
            return f"{self.sql_name}({int(length)})"
        if self.style == _PRECISION:
            precision = int(options.get("precision", 18))
            scale = int(options.get("scale", 0))
            return f"{self.sql_name}({precision}, {scale})"
        if self.style == _TIME_SCALE:
            return f"{self.sql_name}({int(options.get('scale', 7))})"
        return self.sql_name


_DATETIME_TYPES = frozenset(
    {SqlType.SmallDateTime, SqlType.DateTime, SqlType.DateTime2, SqlType.DateTimeOffset}
)

# Alias kept for callers used to ``TYPES.Int`` style declarations.
TYPES = SqlType
