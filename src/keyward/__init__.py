# Keyward: SSH AuthorizedKeysCommand agent
#
# Invoked by sshd for every login attempt. Asks the key authority which
# public keys may log in as the requested account, falls back to the
# last-known-good cache when the authority is unreachable, verifies the
# authority's signature on every key and prints authorized_keys lines.
#
# Fail closed: when in doubt, print nothing.

__version__ = "0.4.0"
__author__ = "Keyward Team"
__description__ = "SSH AuthorizedKeysCommand agent with signed-key verification"

from .exceptions import ExitCode, KeywardError
from .keys import Key

__all__ = [
    "__version__",
    "ExitCode",
    "KeywardError",
    "Key",
]
