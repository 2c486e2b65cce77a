"""
Database access for SQL Server through ``pymssql``.

``get_connection`` opens a connection from any accepted connection
source; ``Request`` renders a statement, procedure call or batch with
its parameters, and ``read_events`` turns the cursor's result sets into
the typed events of ``tds_helper.infra.db.events``.
"""

from .mssql import connect, parse_connection_string, ConnectionConfig  # noqa: F401
from .connection_factory import get_connection, resolve_config  # noqa: F401
from .request import Request, RequestKind, read_events  # noqa: F401
