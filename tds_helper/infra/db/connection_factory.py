"""
Database connection factory.

Turns whatever the caller handed in as connection configuration into a
``ConnectionConfig`` and opens the connection.  Accepted shapes are a
``ConnectionConfig``, a dict of its fields, a connection string, or
``None`` for the ``MSSQL_URL`` environment variable (see
``tds_helper.config.env.Config``).
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from ...config import config
from ...errors import ConfigurationError
from .mssql import ConnectionConfig, connect, parse_connection_string

ConnectionSource = Union[ConnectionConfig, Mapping[str, Any], str, None]


def resolve_config(source: ConnectionSource) -> ConnectionConfig:
    """Normalise a connection source into a ``ConnectionConfig``.

    Raises:
        ConfigurationError: If ``source`` is ``None`` and ``MSSQL_URL`` is
            not set, or the source cannot be parsed.
        TypeError: For unsupported source types.
    """
    if isinstance(source, ConnectionConfig):
        return source
    if source is None:
        if not config.MSSQL_URL:
            raise ConfigurationError("No connection configuration given and MSSQL_URL is not set")
        return parse_connection_string(config.MSSQL_URL, config.LOGIN_TIMEOUT)
    if isinstance(source, str):
        return parse_connection_string(source, config.LOGIN_TIMEOUT)
    if isinstance(source, Mapping):
        return ConnectionConfig.from_mapping(source)
    raise TypeError(f"Unsupported connection configuration: {type(source).__name__}")


def get_connection(source: ConnectionSource) -> Any:
    """Open a new connection for the given source."""
    return connect(resolve_config(source))
