# Core Module - Login Audit
#
# When a login is narrowed to one key by fingerprint, we know which
# account the key belongs to. That attribution is written as a single
# syslog record on the AUTH facility, next to sshd's own records.
#
# Best effort only: a host without a syslog socket still lets people log in.

import logging
import logging.handlers
import os
from typing import Optional

import structlog

logger = logging.getLogger(__name__)

SYSLOG_IDENT = "keyward"


def _default_syslog_address() -> str:
    for candidate in ("/dev/log", "/var/run/syslog"):
        if os.path.exists(candidate):
            return candidate
    return "/dev/log"


def _render_message(logger, method_name, event_dict) -> str:
    # The record is the message alone; account and user stay as context only.
    return event_dict["event"]


class _QuietSysLogHandler(logging.handlers.SysLogHandler):
    """SysLogHandler that reports delivery failures at debug level only."""

    def handleError(self, record: logging.LogRecord) -> None:
        logger.debug("Audit record not delivered to syslog (%s)", self.address)


class AuditLogger:
    """Emits login attribution records to syslog (AUTH facility)."""

    def __init__(
        self,
        address: Optional[str] = None,
        facility: int = logging.handlers.SysLogHandler.LOG_AUTH,
        handler: Optional[logging.Handler] = None,
    ):
        """
        Args:
            address: syslog socket path (default: /dev/log)
            facility: syslog facility
            handler: explicit handler, replaces the syslog handler
        """
        self._sink = logging.getLogger(f"keyward.audit.{id(self)}")
        self._sink.setLevel(logging.INFO)
        self._sink.propagate = False
        self._sink.handlers.clear()
        self.enabled = True

        if handler is None:
            try:
                handler = _QuietSysLogHandler(
                    address=address or _default_syslog_address(), facility=facility
                )
                handler.ident = f"{SYSLOG_IDENT}: "
            except OSError as e:
                logger.debug("Syslog unavailable, login audit disabled: %s", e)
                self.enabled = False
        if handler is not None:
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._sink.addHandler(handler)

        self.logger = structlog.wrap_logger(
            self._sink,
            processors=[_render_message],
        )

    def log_login(self, account: str, user: str) -> bool:
        """Record that ``account`` logged in as local ``user``; never raises."""
        if not self.enabled:
            return False
        try:
            self.logger.info(f"Account {account} logged in as {user}", account=account, user=user)
            return True
        except Exception:
            logger.debug("Audit record dropped", exc_info=True)
            return False

    __call__ = log_login


# Global audit logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger
