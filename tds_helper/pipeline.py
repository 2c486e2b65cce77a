"""
Execution pipeline.

Each call opens its own connection, renders the request with the merged
parameters, submits it, feeds the resulting events to a
``ResultCollector`` and closes the connection exactly once, whatever
happens after the connection was established::

    result = exec_sp(cfg, 'dbo.spAddObject', merge(params, values))
    result.data          # rows, or the decoded JSON value
    result.return_value  # the procedure's return status

Result shape is decided per result set: a single column whose name
starts with ``json_`` (``FOR JSON`` output) is concatenated and decoded,
one starting with ``xml_`` (``FOR XML``) is concatenated and returned as
text, anything else is collected as a list of row dicts.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import MissingRequiredParameterError, ResultParseError
from .infra.db.connection_factory import ConnectionSource, get_connection
from .infra.db.request import Request, RequestKind, read_events
from .params import RETURN_VALUE_KEY, ParamDef, ParamMap, coerce_params
from .types import SqlType

_logger = logging.getLogger(__name__)


class Mode(Enum):
    TABLE = "table"
    JSON = "json"
    XML = "xml"


class State(Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    BOUND = "bound"
    PARAMETERIZED = "parameterized"
    SUBMITTED = "submitted"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    CLOSED = "closed"


@dataclass
class Result:
    """Outcome of one execution.

    ``params`` is a new parameter map with output values written back and,
    for procedure calls, the return status under ``returnValue``.
    """

    data: Any
    params: ParamMap = field(default_factory=dict)
    return_value: Optional[int] = None


class ResultCollector:
    """Accumulates rows from an ordered stream of request events."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.log = logger or _logger
        self.mode = Mode.TABLE
        self.next_mode = Mode.TABLE
        self.columns: List[str] = []
        self.rows: List[Dict[str, Any]] = []
        self.fragments: List[str] = []
        self.reset_pending = False
        self.outputs: Dict[str, Any] = {}
        self.return_value: Optional[int] = None

    def feed(self, event: Any) -> None:
        getattr(self, f"on_{event.kind}")(event)

    def clear(self) -> None:
        self.rows = []
        self.fragments = []

    def on_column_metadata(self, event: Any) -> None:
        self.columns = [column.name for column in event.columns]
        mode = Mode.TABLE
        if len(self.columns) == 1:
            name = (self.columns[0] or "").lower()
            if name.startswith("json_"):
                mode = Mode.JSON
            elif name.startswith("xml_"):
                mode = Mode.XML
        # applied on the first row, so an empty result set keeps what was collected
        self.next_mode = mode

    def on_row(self, event: Any) -> None:
        if self.reset_pending or self.next_mode is not self.mode:
            if self.next_mode is not self.mode:
                self.log.debug("[exec] result mode", extra={"mode": self.next_mode.value})
            self.mode = self.next_mode
            self.clear()
            self.reset_pending = False
        if self.mode is Mode.TABLE:
            self.rows.append(dict(zip(self.columns, event.values)))
            return
        value = event.values[0] if event.values else None
        if value is None:
            return
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        self.fragments.append(str(value))

    def _completed(self, more: bool) -> None:
        # more is set on nearly every completion; best effort only
        if more:
            self.reset_pending = True

    def on_done(self, event: Any) -> None:
        self.log.debug("[exec] done", extra={"row_count": event.row_count, "more": event.more})
        self._completed(event.more)

    def on_done_in_proc(self, event: Any) -> None:
        self.log.debug("[exec] done in proc", extra={"row_count": event.row_count, "more": event.more})
        self._completed(event.more)

    def on_done_proc(self, event: Any) -> None:
        self.log.debug("[exec] done proc", extra={"return_value": event.return_value})
        self.return_value = event.return_value
        self._completed(event.more)

    def on_return_value(self, event: Any) -> None:
        self.log.debug("[exec] return value", extra={"param": event.name})
        self.outputs[event.name] = event.value

    def result(self) -> Any:
        """Final accumulated value for the request."""
        if self.mode is Mode.JSON:
            text = "".join(self.fragments)
            if not text:
                return []
            try:
                return json.loads(text)
            except json.JSONDecodeError as err:
                raise ResultParseError(f"Invalid JSON result: {err}") from err
        if self.mode is Mode.XML:
            return "".join(self.fragments)
        return self.rows


def attach_params(request: Request, params: ParamMap, logger: Optional[logging.Logger] = None) -> None:
    """Add every definition with a value, or flagged output, to ``request``.

    Raises:
        MissingRequiredParameterError: For a required definition that has
            neither a value nor the output flag.
    """
    log = logger or _logger
    for name, param in params.items():
        log.debug("[exec] parameter", extra={"param": name, "type": param.type.name})
        if param.has_value or param.output:
            if param.output:
                request.add_output_parameter(name, param)
            else:
                request.add_parameter(name, param)
        elif param.required:
            raise MissingRequiredParameterError(name)


def _write_back(params: ParamMap, collector: ResultCollector, kind: RequestKind) -> ParamMap:
    updated = dict(params)
    by_name = {name.lstrip('@').lower(): name for name in params}
    for name, value in collector.outputs.items():
        key = by_name.get(name.lower(), name)
        if key in updated:
            updated[key] = updated[key].with_value(value)
    if kind is RequestKind.PROCEDURE:
        updated[RETURN_VALUE_KEY] = ParamDef(type=SqlType.Int, value=collector.return_value)
    return updated


class Execution:
    """A single request/response cycle over one connection."""

    def __init__(
        self,
        kind: RequestKind,
        source: ConnectionSource,
        query: str,
        params: Optional[Mapping[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        connector: Optional[Callable[[ConnectionSource], Any]] = None,
    ) -> None:
        self.kind = kind
        self.source = source
        self.query = query
        # batches ignore parameters
        self.params = {} if kind is RequestKind.BATCH else coerce_params(params)
        self.log = logger or _logger
        self.connector = connector or get_connection
        self.state = State.UNCONNECTED

    def _transition(self, state: State) -> None:
        self.log.debug("[exec] state", extra={"from": self.state.value, "to": state.value})
        self.state = state

    def run(self) -> Result:
        self.log.debug("[exec] connecting", extra={"kind": self.kind.value})
        try:
            conn = self.connector(self.source)
        except Exception:
            self.log.debug("[exec] connection failed", exc_info=True)
            self._transition(State.REJECTED)
            raise
        self._transition(State.CONNECTED)
        try:
            request = Request(self.kind, self.query)
            self._transition(State.BOUND)
            attach_params(request, self.params, self.log)
            sql, args = request.render()
            self._transition(State.PARAMETERIZED)

            cursor = conn.cursor()
            self.log.debug("[exec] request", extra={"query": self.query})
            if args:
                cursor.execute(sql, args)
            else:
                cursor.execute(sql)
            self._transition(State.SUBMITTED)

            collector = ResultCollector(self.log)
            for event in read_events(cursor, self.kind):
                collector.feed(event)
            data = collector.result()
            result = Result(
                data=data,
                params=_write_back(self.params, collector, self.kind),
                return_value=collector.return_value,
            )
            self._transition(State.RESOLVED)
            return result
        except Exception:
            self.log.debug("[exec] request failed", exc_info=True)
            self._transition(State.REJECTED)
            raise
        finally:
            conn.close()
            self._transition(State.CLOSED)


def execute(
    kind: RequestKind,
    source: ConnectionSource,
    query: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    logger: Optional[logging.Logger] = None,
    connector: Optional[Callable[[ConnectionSource], Any]] = None,
) -> Result:
    """Run one request on a fresh connection.

    Args:
        kind: Statement, procedure call or batch.
        source: Connection configuration (see ``resolve_config``).
        query: SQL text, or the procedure name for procedure calls.
        params: Parameter map, usually the output of ``merge``.
        logger: Logger to report progress to; defaults to this module's.
        connector: Callable opening a connection from ``source``.

    Returns:
        The accumulated ``Result``.

    Raises:
        MissingRequiredParameterError: A required parameter has no value.
        ResultParseError: JSON output could not be decoded.
        Exception: Driver errors propagate unchanged.
    """
    return Execution(kind, source, query, params, logger, connector).run()


def exec_sql(source: ConnectionSource, query: str, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Result:
    """Execute a parameterised SQL statement."""
    _logger.debug("[exec] execSql", extra={"query": query})
    return execute(RequestKind.SQL, source, query, params, **kwargs)


def exec_sp(source: ConnectionSource, query: str, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Result:
    """Call a stored procedure by name."""
    _logger.debug("[exec] execSP", extra={"query": query})
    return execute(RequestKind.PROCEDURE, source, query, params, **kwargs)


def exec_sql_batch(source: ConnectionSource, query: str, **kwargs: Any) -> Result:
    """Execute a SQL batch without parameters."""
    _logger.debug("[exec] execSqlBatch", extra={"query": query})
    return execute(RequestKind.BATCH, source, query, None, **kwargs)


async def exec_sql_async(source: ConnectionSource, query: str, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Result:
    return await asyncio.to_thread(exec_sql, source, query, params, **kwargs)


async def exec_sp_async(source: ConnectionSource, query: str, params: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Result:
    return await asyncio.to_thread(exec_sp, source, query, params, **kwargs)


async def exec_sql_batch_async(source: ConnectionSource, query: str, **kwargs: Any) -> Result:
    return await asyncio.to_thread(exec_sql_batch, source, query, **kwargs)
