"""
Logging setup for imagecache.

Modules log through ``logging.getLogger(__name__)``; this only installs the
root handler and level for CLI and server entry points.
"""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", *, sql_echo: bool = False) -> None:
    """Configure the root logger once.

    Parameters
    ----------
    level : str
        Root log level name (``"DEBUG"``, ``"INFO"``, ...).
    sql_echo : bool
        If ``True``, raise ``sqlalchemy.engine`` to INFO so statements are
        logged.
    """
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    if sql_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
