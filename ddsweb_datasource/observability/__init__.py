"""Logging setup shared by the CLI, the HTTP host and scripts.

Package modules log through stdlib loggers with dotted event names and
``extra`` fields; ``structlog`` is configured at the same level for any bound
loggers.
"""

from __future__ import annotations

import logging

import structlog

_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging and structlog at ``level``.

    Unknown level names fall back to INFO. The httpx/httpcore request logs
    stay at WARNING unless DEBUG is requested, since the adapter already logs
    every gateway call.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
        )
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
