"""
sshd integration for the installer.

Detects the local OpenSSH version, renders the directives that hand key
lookup to this agent, and rewrites sshd_config text so those directives
are set exactly once.
"""

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

SSHD_CONFIG_PATH = "/etc/ssh/sshd_config"
SSHD_BACKUP_SUFFIX = ".keyward.bak"

_OPENSSH_VERSION = re.compile(r"OpenSSH_(\d+)\.(\d+)")

# AuthorizedKeysCommand appeared in 6.2, the %f/%u tokens in 6.9.
MIN_SSHD_VERSION = (6, 2)
FINGERPRINT_SSHD_VERSION = (6, 9)

# Directive order in rendered output and appended config lines.
MANAGED_DIRECTIVES = (
    "PasswordAuthentication",
    "AuthorizedKeysFile",
    "AuthorizedKeysCommand",
    "AuthorizedKeysCommandUser",
)


@dataclass(frozen=True)
class SshdVersion:
    major: int = 0
    minor: int = 0

    def as_tuple(self) -> Tuple[int, int]:
        return (self.major, self.minor)

    def at_least(self, version: Tuple[int, int]) -> bool:
        return self.as_tuple() >= version

    @property
    def supports_keys_command(self) -> bool:
        return self.at_least(MIN_SSHD_VERSION)

    @property
    def supports_fingerprint(self) -> bool:
        return self.at_least(FINGERPRINT_SSHD_VERSION)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


def parse_sshd_version(output: str) -> SshdVersion:
    """Version from ``sshd -V`` output; 0.0 when there is none."""
    m = _OPENSSH_VERSION.search(output or "")
    if not m:
        return SshdVersion()
    return SshdVersion(int(m.group(1)), int(m.group(2)))


def detect_sshd_version(
    sshd_binary: str = "sshd",
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> SshdVersion:
    # sshd has no real version flag; -V is rejected with a usage text that
    # still carries the version banner, on stderr.
    try:
        r = run([sshd_binary, "-V"], capture_output=True, text=True, timeout=10)
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("Unable to run %s: %s", sshd_binary, e)
        return SshdVersion()
    version = parse_sshd_version(f"{r.stdout or ''}\n{r.stderr or ''}")
    logger.debug("Detected sshd version %s", version)
    return version


def sshd_directives(binary: str, user: str, version: SshdVersion) -> Dict[str, str]:
    """Directives that delegate key lookup to ``binary`` run as ``user``."""
    command = binary
    if version.supports_fingerprint:
        command = f"{binary} --fingerprint %f %u"
    return {
        "PasswordAuthentication": "no",
        "AuthorizedKeysFile": "none",
        "AuthorizedKeysCommand": command,
        "AuthorizedKeysCommandUser": user,
    }


def render_directives(directives: Dict[str, str]) -> str:
    return "".join(f"{name} {directives[name]}\n" for name in MANAGED_DIRECTIVES if name in directives)


_KEYWORD = re.compile(r"[A-Za-z][A-Za-z0-9]*")


def _directive_of(line: str) -> Optional[str]:
    """Keyword of a config line, or of a commented-out directive.

    ``#PasswordAuthentication yes`` counts; ``# PasswordAuthentication is
    ...`` is prose and does not.
    """
    stripped = line.strip()
    if stripped.startswith("#"):
        stripped = stripped[1:]
        if not stripped or stripped[0].isspace():
            return None
    m = _KEYWORD.match(stripped)
    if not m:
        return None
    rest = stripped[m.end():]
    if rest and not (rest[0].isspace() or rest[0] == "="):
        return None
    return m.group(0)


def _is_match_line(line: str) -> bool:
    word = _directive_of(line)
    return word is not None and word.lower() == "match" and not line.strip().startswith("#")


def apply_directives(config_text: str, directives: Dict[str, str]) -> str:
    """Set each directive in sshd_config text.

    Only the global section is touched: everything from the first
    ``Match`` line on is kept verbatim. There, every line naming a
    managed directive, active or commented out, is replaced in place.
    Directives not found are inserted before the first ``Match`` line,
    or appended when there is none.
    """
    by_lower = {name.lower(): name for name in directives}
    seen = set()
    out: List[str] = []
    lines = config_text.splitlines()

    match_at = next((i for i, line in enumerate(lines) if _is_match_line(line)), len(lines))
    for line in lines[:match_at]:
        word = _directive_of(line)
        name = by_lower.get(word.lower()) if word else None
        if name is None:
            out.append(line)
            continue
        seen.add(name)
        out.append(f"{name} {directives[name]}")

    for name in MANAGED_DIRECTIVES:
        if name in directives and name not in seen:
            out.append(f"{name} {directives[name]}")

    out.extend(lines[match_at:])
    return "\n".join(out) + "\n"


def backup_sshd_config(path: str) -> str:
    backup = f"{path}{SSHD_BACKUP_SUFFIX}"
    shutil.copy2(path, backup)
    return backup
