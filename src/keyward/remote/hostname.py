"""Local hostname, as the key authority knows this host."""

import logging
import socket
from typing import Callable

from ..exceptions import HostnameError

logger = logging.getLogger(__name__)


def resolve_hostname(
    prefix: str = "",
    suffix: str = "",
    gethostname: Callable[[], str] = socket.gethostname,
) -> str:
    """``<prefix><hostname><suffix>``.

    Raises:
        HostnameError: the local hostname is unavailable.
    """
    try:
        name = gethostname()
    except OSError as e:
        raise HostnameError(f"Unable to get hostname: {e}") from e
    if not name:
        raise HostnameError("Unable to get hostname: empty hostname")
    hostname = f"{prefix}{name}{suffix}"
    logger.debug("Using hostname %s", hostname)
    return hostname
