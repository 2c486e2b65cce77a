"""
Environment configuration loader.

Variables are read once at import time (after ``load_dotenv()``, so a
``.env`` file in the working directory is honoured) and exposed through
the ``config`` instance.  None of them is mandatory:

* ``MSSQL_URL`` – connection string used when a call passes no
  connection configuration.
* ``TDS_HELPER_THROW_ON_MISSING`` – whether ``merge`` raises for missing
  required parameters by default (``true``).
* ``TDS_HELPER_LOGIN_TIMEOUT`` – login timeout in seconds applied to
  connections built from a connection string (``60``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv
load_dotenv()

_TRUE = ('true', 'yes', '1', 'on')


@dataclass
class Config:
    """Holds environment configuration for the helper."""

    MSSQL_URL: Optional[str] = None
    THROW_ON_MISSING: bool = True
    LOGIN_TIMEOUT: int = 60


def _load_env() -> Config:
    """Load configuration from environment variables.

    Raises:
        ValueError: If ``TDS_HELPER_LOGIN_TIMEOUT`` is not an integer.

    Returns:
        Config: A populated configuration dataclass.
    """
    mssql_url = os.environ.get("MSSQL_URL") or None
    throw_on_missing = os.environ.get("TDS_HELPER_THROW_ON_MISSING", "true").strip().lower() in _TRUE
    raw_timeout = os.environ.get("TDS_HELPER_LOGIN_TIMEOUT", "60")
    try:
        login_timeout = int(raw_timeout)
    except ValueError:
        raise ValueError(f"TDS_HELPER_LOGIN_TIMEOUT must be an integer, got {raw_timeout!r}") from None

    return Config(
        MSSQL_URL=mssql_url,
        THROW_ON_MISSING=throw_on_missing,
        LOGIN_TIMEOUT=login_timeout,
    )


# Create a single configuration instance when this module is imported.
config: Config = _load_env()
