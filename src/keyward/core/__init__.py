# Core Module - Shared Utilities
#
# Core module provides functionality shared by the query and install paths:
# - Configuration (YAML file + command-line overrides)
# - Diagnostic logging (structlog-rendered, stderr only)
# - Login audit records (syslog, AUTH facility)

from .audit_log import (
    AuditLogger,
    get_audit_logger,
)
from .config import (
    DEFAULT_CACHE_DIR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_TIMEOUT_MS,
    AgentConfig,
    ConfigOverrides,
    load_config,
    resolve_config,
)
from .logging_setup import configure_logging

__all__ = [
    # Configuration
    "AgentConfig",
    "ConfigOverrides",
    "DEFAULT_CACHE_DIR",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_TIMEOUT_MS",
    "load_config",
    "resolve_config",
    # Logging
    "configure_logging",
    # Audit
    "AuditLogger",
    "get_audit_logger",
]
