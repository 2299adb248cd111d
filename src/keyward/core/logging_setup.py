"""
Diagnostic logging.

stdout belongs to sshd (authorized_keys lines only), so every diagnostic
goes to stderr. Modules log through the standard ``logging`` API; structlog
renders the records.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog

_HANDLER_NAME = "keyward.stderr"


def configure_logging(debug: bool = False, stream: Optional[TextIO] = None) -> logging.Handler:
    """Install the stderr handler on the ``keyward`` logger (idempotent)."""
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger("keyward")
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    root.propagate = False
    return handler
