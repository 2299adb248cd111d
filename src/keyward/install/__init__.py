# Install Module - Host Enrollment
#
# Prepares a host for the agent: config file, cache directory and the
# sshd_config directives that route key lookup through it.

from .installer import InstallOptions, InstallResult, Installer, ask_once
from .sshd import (
    SshdVersion,
    apply_directives,
    detect_sshd_version,
    parse_sshd_version,
    sshd_directives,
)

__all__ = [
    "Installer",
    "InstallOptions",
    "InstallResult",
    "ask_once",
    "SshdVersion",
    "apply_directives",
    "detect_sshd_version",
    "parse_sshd_version",
    "sshd_directives",
]
