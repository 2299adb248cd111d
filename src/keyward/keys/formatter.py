"""Output Formatter: authorized_keys lines for sshd."""

import logging
import os
import sys
from typing import Iterable, Optional, TextIO

from .models import Key

logger = logging.getLogger(__name__)


def authorized_keys_line(key: Key) -> str:
    """``[<options> ]<public_key>\\n``"""
    if key.ssh_options:
        return f"{key.ssh_options} {key.public_key}\n"
    return f"{key.public_key}\n"


def _silence_stdout() -> None:
    # Buffered lines would otherwise fail again when the interpreter flushes at exit.
    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, sys.stdout.fileno())
    os.close(devnull)


def write_authorized_keys(keys: Iterable[Key], stream: Optional[TextIO] = None) -> int:
    """Write one line per key; returns the number of lines written.

    A closed pipe on the reading side (sshd gave up) stops the output
    quietly; it is not an error of ours.
    """
    to_stdout = stream is None or stream is sys.stdout
    stream = sys.stdout if stream is None else stream
    written = 0
    try:
        for key in keys:
            stream.write(authorized_keys_line(key))
            written += 1
        stream.flush()
    except BrokenPipeError:
        logger.debug("Output pipe closed after %d lines", written)
        if to_stdout:
            _silence_stdout()
    return written
