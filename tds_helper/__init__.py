"""
Helpers for running SQL Server statements, procedures and batches.

Parameters are declared once as a map of ``ParamDef`` (or plain dicts),
merged with caller supplied values and handed to one of the ``exec_*``
functions, which open a connection, run the request, collect the rows
and close the connection again::

    from tds_helper import TYPES, exec_sql, merge

    params = {
        'AccountID': {'type': TYPES.Int, 'required': True},
        'UserName': {'type': TYPES.VarChar, 'required': True},
    }
    query = 'delete from users where accountid = @AccountID and username = @UserName'
    exec_sql(cs, query, merge(params, values))
"""

from .errors import (  # noqa: F401
    ConfigurationError,
    MissingRequiredParameterError,
    ResultParseError,
    TdsHelperError,
)
from .infra.db import ConnectionConfig, RequestKind, parse_connection_string  # noqa: F401
from .params import RETURN_VALUE_KEY, UNSET, ParamDef, merge  # noqa: F401
from .pipeline import (  # noqa: F401
    Result,
    ResultCollector,
    exec_sp,
    exec_sp_async,
    exec_sql,
    exec_sql_async,
    exec_sql_batch,
    exec_sql_batch_async,
    execute,
)
from .types import TYPES, SqlType  # noqa: F401
