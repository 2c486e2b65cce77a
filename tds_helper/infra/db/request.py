"""
Request construction and the event stream read back from a cursor.

``pymssql`` substitutes ``%(name)s`` placeholders client side and has no
notion of output parameters or procedure return status.  A ``Request``
therefore renders a small T-SQL batch around the caller's statement:

* output parameters become variables declared up front,
* a procedure call becomes ``EXEC @__tds_rv = proc @A = %(A)s, @B = @B OUTPUT``,
* a final result set whose first column is ``__tds_return_value`` selects
  the return status and the output variables.

``read_events`` walks the cursor's result sets and turns that final
result set into ``ReturnValue``/``DoneProc`` events, so callers see the
same event sequence a TDS driver would report.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Tuple

from ...params import ParamDef
from .events import Column, ColumnMetadata, Done, DoneInProc, DoneProc, ReturnValue, Row

logger = logging.getLogger(__name__)

RETURN_MARKER = "__tds_return_value"
_RETURN_VAR = "@__tds_rv"

_PARAM_NAME_RE = re.compile(r"^\w+$")
_PART = r"(?:\[[^\]]+\]|[\w#$@]+)"
_PROC_NAME_RE = re.compile(rf"^{_PART}(?:\.{_PART}){{0,3}}$")
# Comments and string literals are matched first so tokens inside them are left alone.
_TOKEN_RE = re.compile(r"(--[^\n]*|/\*.*?\*/|'(?:[^']|'')*')|(?<![@\w])@(\w+)", re.DOTALL)


class RequestKind(Enum):
    SQL = "sql"
    PROCEDURE = "procedure"
    BATCH = "batch"


def _clean_name(name: str) -> str:
    clean = name[1:] if name.startswith('@') else name
    if not _PARAM_NAME_RE.match(clean):
        raise ValueError(f"Invalid parameter name: {name!r}")
    return clean


class Request:
    """One statement, procedure call or batch plus its parameters."""

    def __init__(self, kind: RequestKind, query: str) -> None:
        query = (query or "").strip()
        if not query:
            raise ValueError("Empty query")
        if kind is RequestKind.PROCEDURE and not _PROC_NAME_RE.match(query):
            raise ValueError(f"Invalid procedure name: {query!r}")
        self.kind = kind
        self.query = query
        self.inputs: Dict[str, ParamDef] = {}
        self.outputs: Dict[str, ParamDef] = {}

    def add_parameter(self, name: str, param: ParamDef) -> None:
        if self.kind is RequestKind.BATCH:
            raise ValueError("Batches do not take parameters")
        self.inputs[_clean_name(name)] = param

    def add_output_parameter(self, name: str, param: ParamDef) -> None:
        if self.kind is RequestKind.BATCH:
            raise ValueError("Batches do not take parameters")
        self.outputs[_clean_name(name)] = param

    @property
    def has_trailer(self) -> bool:
        return self.kind is RequestKind.PROCEDURE or bool(self.outputs)

    def render(self) -> Tuple[str, Dict[str, Any]]:
        """Return the SQL text and the placeholder values for ``cursor.execute``."""
        if self.kind is RequestKind.BATCH:
            return self.query, {}

        args: Dict[str, Any] = {name: p.bind_value() for name, p in self.inputs.items()}
        args.update({name: p.bind_value() for name, p in self.outputs.items() if p.has_value})

        declarations = []
        if self.kind is RequestKind.PROCEDURE:
            declarations.append(f"{_RETURN_VAR} int")
        for name, p in self.outputs.items():
            declaration = f"@{name} {p.type.declaration(p.options)}"
            if p.has_value:
                declaration += f" = %({name})s"
            declarations.append(declaration)

        lines = []
        if declarations:
            lines.append("DECLARE " + ", ".join(declarations) + ";")
        if self.kind is RequestKind.PROCEDURE:
            lines.append(self._render_call())
        else:
            lines.append(self._render_statement(escape=bool(args)))
        if self.has_trailer:
            selected = [f"{_RETURN_VAR if self.kind is RequestKind.PROCEDURE else 'NULL'} AS [{RETURN_MARKER}]"]
            selected += [f"@{name} AS [{name}]" for name in self.outputs]
            lines.append("SELECT " + ", ".join(selected) + ";")
        return "\n".join(lines), args

    def _render_call(self) -> str:
        arguments = [f"@{name} = %({name})s" for name in self.inputs]
        arguments += [f"@{name} = @{name} OUTPUT" for name in self.outputs]
        call = f"EXEC {_RETURN_VAR} = {self.query}"
        if arguments:
            call += " " + ", ".join(arguments)
        return call + ";"

    def _render_statement(self, escape: bool) -> str:
        # T-SQL parameter names are case insensitive
        inputs = {name.lower(): name for name in self.inputs}

        def replace(match: re.Match[str]) -> str:
            literal, token = match.group(1), match.group(2)  # literal also covers comments
            if literal is not None:
                return literal.replace('%', '%%') if escape else literal
            name = inputs.get(token.lower())
            if name is None:
                return match.group(0)
            return f"%({name})s"

        if not escape:
            return _TOKEN_RE.sub(replace, self.query)
        # Escape '%' outside literals and tokens; literals and comments are escaped in replace().
        pieces = []
        last = 0
        for match in _TOKEN_RE.finditer(self.query):
            pieces.append(self.query[last:match.start()].replace('%', '%%'))
            pieces.append(replace(match))
            last = match.end()
        pieces.append(self.query[last:].replace('%', '%%'))
        return "".join(pieces)


def _row_values(row: Any) -> Tuple[Any, ...]:
    if isinstance(row, Mapping):
        return tuple(row.values())
    return tuple(row)


def read_events(cursor: Any, kind: RequestKind) -> Iterator[Any]:
    """Yield the events for every result set left on ``cursor``.

    Driver errors raised while fetching propagate to the consumer.
    """
    while True:
        description = cursor.description
        if description and description[0][0] == RETURN_MARKER:
            row = cursor.fetchone()
            values = _row_values(row) if row is not None else ()
            for column, value in zip(description[1:], values[1:]):
                yield ReturnValue(column[0], value)
            row_count = cursor.rowcount
            more = bool(cursor.nextset())
            if kind is RequestKind.PROCEDURE:
                yield DoneProc(row_count, more, values[0] if values else None)
            else:
                yield Done(row_count, more)
        else:
            if description:
                yield ColumnMetadata(tuple(Column(d[0], d[1]) for d in description))
                for row in cursor.fetchall():
                    yield Row(_row_values(row))
            row_count = cursor.rowcount
            more = bool(cursor.nextset())
            if kind is RequestKind.PROCEDURE:
                yield DoneInProc(row_count, more)
            else:
                yield Done(row_count, more)
        if not more:
            break
