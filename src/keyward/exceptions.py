"""
Keyward exception classes.

Every fatal failure class carries the process exit code the CLI reports
for it. Components raise; only ``keyward.__main__`` turns an exception
into an exit status.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    USAGE = 1
    INSTALL_ABORTED = 2
    CONFIG_READ = 5
    HOSTNAME = 6
    CONFIG_PARSE = 7
    REQUEST_BUILD = 8
    TRANSPORT = 9
    MISSING_PUBLIC_KEY = 10
    VERIFICATION = 11
    AUTHORITY = 20
    WRITE_FAILED = 21


class KeywardError(Exception):
    """Base exception for agent operations"""
    exit_code: ExitCode = ExitCode.USAGE


# ── Configuration ────────────────────────────────────────────────────


class ConfigReadError(KeywardError):
    """Raised when the config file is missing or unreadable"""
    exit_code = ExitCode.CONFIG_READ


class ConfigParseError(KeywardError):
    """Raised when the config file is not a valid configuration"""
    exit_code = ExitCode.CONFIG_PARSE


class MissingPublicKeyError(KeywardError):
    """Raised when verification is requested but no trust key is configured"""
    exit_code = ExitCode.MISSING_PUBLIC_KEY


# ── Environment ──────────────────────────────────────────────────────


class HostnameError(KeywardError):
    """Raised when the local hostname cannot be obtained"""
    exit_code = ExitCode.HOSTNAME


# ── Authority fetch (recoverable through the cache) ──────────────────


class FetchError(KeywardError):
    """Base class for failures talking to the key authority"""
    exit_code = ExitCode.TRANSPORT


class RequestBuildError(FetchError):
    """Raised when the authority request cannot be constructed"""
    exit_code = ExitCode.REQUEST_BUILD


class TransportError(FetchError):
    """Raised on connect, DNS, TLS or timeout failures"""
    exit_code = ExitCode.TRANSPORT


class AuthorityError(FetchError):
    """Raised when the authority answers with an HTTP error status"""
    exit_code = ExitCode.AUTHORITY

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class ResponseParseError(FetchError):
    """Raised when a successful response body is not a key list"""
    exit_code = ExitCode.AUTHORITY


# ── Keys ─────────────────────────────────────────────────────────────


class KeyFormatError(KeywardError):
    """Raised when a key record or cache document is malformed"""


class TrustKeyError(KeywardError):
    """Raised when a trust key specifier cannot be loaded"""


class UnsupportedKeyType(TrustKeyError):
    """Raised when a trust key uses an algorithm with no verifier"""


class VerificationError(KeywardError):
    """Raised when verification leaves no key to authorize"""
    exit_code = ExitCode.VERIFICATION


# ── Cache / installation ─────────────────────────────────────────────


class CacheWriteError(KeywardError):
    """Raised when the key cache cannot be written"""
    exit_code = ExitCode.WRITE_FAILED


class InstallError(KeywardError):
    """Raised when installation cannot proceed"""
    exit_code = ExitCode.INSTALL_ABORTED


class InstallWriteError(InstallError):
    """Raised when the installer cannot write a file"""
    exit_code = ExitCode.WRITE_FAILED
