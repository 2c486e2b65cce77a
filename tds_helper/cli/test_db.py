"""
Test database connectivity.

Runs ``SELECT 1 AS ok`` (or the query given with ``--query``) against
the database named by ``--url`` or the ``MSSQL_URL`` environment
variable and logs the rows returned.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from ..pipeline import exec_sql


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Check SQL Server connectivity')
    parser.add_argument('--url', type=str, help='Connection string; defaults to MSSQL_URL')
    parser.add_argument('--query', type=str, default='SELECT 1 AS ok', help='Query to run')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    try:
        result = exec_sql(args.url, args.query)
    except Exception as e:
        logging.error('DB FAIL:', exc_info=e)
        return 2
    logging.info('DB OK: %s', result.data)
    return 0


if __name__ == '__main__':
    sys.exit(main())
