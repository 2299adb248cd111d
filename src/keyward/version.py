"""Application identity: name, build metadata, User-Agent."""

import platform
import sys
from dataclasses import dataclass

from . import __version__

NAME = "keyward"
REVISION = "HEAD"
BRANCH = "HEAD"
BUILT = "unknown"


@dataclass(frozen=True)
class AppVersionInfo:
    name: str
    version: str
    revision: str
    branch: str
    python_version: str
    built_at: str
    os: str
    architecture: str

    def line(self) -> str:
        return f"{self.name} {self.version} ({self.revision})"

    def user_agent(self) -> str:
        """User-Agent sent to the key authority."""
        return (
            f"{self.name} {self.version} "
            f"({self.branch}; python {self.python_version}; {self.os}/{self.architecture})"
        )

    def extended(self) -> str:
        return (
            f"Version:        {self.version}\n"
            f"Git revision:   {self.revision}\n"
            f"Git branch:     {self.branch}\n"
            f"Python version: {self.python_version}\n"
            f"Built:          {self.built_at}\n"
            f"OS/Arch:        {self.os}/{self.architecture}\n"
        )


def _current() -> AppVersionInfo:
    return AppVersionInfo(
        name=NAME,
        version=__version__,
        revision=REVISION,
        branch=BRANCH,
        python_version=platform.python_version(),
        built_at=BUILT,
        os=sys.platform,
        architecture=platform.machine() or "unknown",
    )


APP_VERSION = _current()
