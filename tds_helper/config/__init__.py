"""
Expose the loaded configuration as ``config``.

Importing from this module will load environment variables and
populate a singleton ``Config`` instance. Example:

    from tds_helper.config import config
    print(config.THROW_ON_MISSING)
"""

from .env import config, Config  # noqa: F401
