# Install Module - Host Enrollment
#
# `keyward --install` prepares a host to use this agent:
#   1. check that the local sshd supports AuthorizedKeysCommand
#   2. collect URL, token and trust key (prompting once each)
#   3. check the key authority with a test lookup
#   4. create the config and cache directories
#   5. write the config file (0600, it holds the token)
#   6. update sshd_config, or print what to put there
#
# Every step is a method so it can be exercised on its own.

import logging
import os
import pwd
import shutil
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO

import yaml

from ..core.config import DEFAULT_CONFIG_PATH, AgentConfig
from ..exceptions import FetchError, InstallError, InstallWriteError
from ..keys.trust_store import TrustStore
from ..remote.fetcher import KeyFetcher, KeyRequest
from ..remote.hostname import resolve_hostname
from ..version import NAME
from .sshd import (
    MIN_SSHD_VERSION,
    SSHD_CONFIG_PATH,
    SshdVersion,
    apply_directives,
    backup_sshd_config,
    detect_sshd_version,
    render_directives,
    sshd_directives,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_MODE = 0o600
DIR_MODE = 0o755
CHECK_ACCOUNT = "test"
DEFAULT_SERVICE_USER = "nobody"


def ask_once(question: str, current: str = "", input_fn: Callable[[str], str] = input,
             secret: bool = False) -> str:
    """Ask one question; an empty answer keeps ``current``."""
    shown = ("********" if secret else current) if current else ""
    prompt = f"{question} [{shown}]: " if shown else f"{question}: "
    try:
        answer = input_fn(prompt)
    except EOFError:
        return current
    return answer.strip() or current


def _chown_to_user(path: Path, user: str) -> None:
    try:
        entry = pwd.getpwnam(user)
    except KeyError as e:
        raise InstallError(f"Unknown user {user!r}") from e
    os.chown(path, entry.pw_uid, entry.pw_gid)


def default_binary() -> str:
    """Absolute path sshd should run."""
    found = shutil.which(NAME)
    if found:
        return os.path.abspath(found)
    return os.path.abspath(sys.argv[0])


@dataclass
class InstallOptions:
    config: AgentConfig
    config_path: Path = DEFAULT_CONFIG_PATH
    user: str = DEFAULT_SERVICE_USER
    sshd_config: str = SSHD_CONFIG_PATH
    edit_sshd_config: bool = False
    interactive: bool = True
    binary: str = ""


@dataclass
class InstallResult:
    sshd_version: SshdVersion
    config: AgentConfig
    directives: Dict[str, str]
    steps: List[str] = field(default_factory=list)


class Installer:
    """Runs the enrollment steps in order; any failure aborts the rest."""

    def __init__(
        self,
        options: InstallOptions,
        input_fn: Callable[[str], str] = input,
        detect_version: Callable[[], SshdVersion] = detect_sshd_version,
        fetcher_factory: Callable[[AgentConfig], KeyFetcher] = KeyFetcher,
        chown: Callable[[Path, str], None] = _chown_to_user,
        out: Optional[TextIO] = None,
    ):
        self.options = options
        self._input = input_fn
        self._detect_version = detect_version
        self._fetcher_factory = fetcher_factory
        self._chown = chown
        self._out = out

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stderr

    def run(self) -> InstallResult:
        version = self.check_sshd()
        config = self.collect_settings(self.options.config)
        self.check_authority(config)
        self.create_directories(config)
        self.write_config(config)

        directives = sshd_directives(
            self.options.binary or default_binary(), self.options.user, version
        )
        result = InstallResult(sshd_version=version, config=config, directives=directives)
        result.steps = ["sshd", "settings", "authority", "directories", "config"]
        if self.options.edit_sshd_config:
            self.edit_sshd_config(directives)
            result.steps.append("sshd_config")
        else:
            self.print_directives(directives)
        return result

    # ── Steps ────────────────────────────────────────────────────────

    def check_sshd(self) -> SshdVersion:
        version = self._detect_version()
        if not version.supports_keys_command:
            wanted = ".".join(str(p) for p in MIN_SSHD_VERSION)
            raise InstallError(
                f"sshd {version} does not support AuthorizedKeysCommand (need {wanted} or newer)"
            )
        return version

    def collect_settings(self, config: AgentConfig) -> AgentConfig:
        if self.options.interactive:
            config = replace(
                config,
                url=ask_once("Key authority URL", config.url, self._input),
                token=ask_once("Authority token", config.token, self._input, secret=True),
            )
            if config.verify:
                current = config.public_keys[0] if config.public_keys else ""
                public_key = ask_once("Trust public key (path or PEM)", current, self._input)
                if public_key and public_key != current:
                    config = replace(config, public_keys=(public_key,))

        if not config.url:
            raise InstallError("A key authority URL is required")
        if not config.token:
            raise InstallError("An authority token is required")
        if config.verify:
            if not config.public_keys:
                raise InstallError("Verification requires a public key")
            if not TrustStore(config.public_keys).verifiers():
                raise InstallError("None of the configured public keys could be loaded")
        return config

    def check_authority(self, config: AgentConfig) -> None:
        hostname = resolve_hostname(config.hostname_prefix, config.hostname_suffix)
        fetcher = self._fetcher_factory(config)
        try:
            keys = fetcher.fetch(KeyRequest(hostname=hostname, account=CHECK_ACCOUNT))
        except FetchError as e:
            raise InstallError(f"Key authority check failed: {e}") from e
        logger.info("Key authority answered with %d keys for %r", len(keys), CHECK_ACCOUNT)

    def create_directories(self, config: AgentConfig) -> None:
        config_dir = Path(self.options.config_path).parent
        cache_dir = Path(config.cache_dir)
        try:
            config_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            cache_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            self._chown(cache_dir, self.options.user)
        except OSError as e:
            raise InstallWriteError(f"Unable to create directories: {e}") from e

    def write_config(self, config: AgentConfig) -> Path:
        path = Path(self.options.config_path)
        body = yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CONFIG_FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(body)
            os.chmod(path, CONFIG_FILE_MODE)
        except OSError as e:
            raise InstallWriteError(f"Unable to write config file ({path}): {e}") from e
        logger.info("Wrote %s", path)
        return path

    def edit_sshd_config(self, directives: Dict[str, str]) -> None:
        path = self.options.sshd_config
        try:
            text = Path(path).read_text(encoding="utf-8")
            backup = backup_sshd_config(path)
            Path(path).write_text(apply_directives(text, directives), encoding="utf-8")
        except OSError as e:
            raise InstallWriteError(f"Unable to update {path}: {e}") from e
        logger.info("Updated %s (previous version in %s)", path, backup)
        self.out.write(f"Updated {path}; reload sshd to apply.\n")

    def print_directives(self, directives: Dict[str, str]) -> None:
        self.out.write(f"Add the following to {self.options.sshd_config} and reload sshd:\n\n")
        self.out.write(render_directives(directives))
