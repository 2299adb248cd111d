# Remote Module - Key Authority Client
#
# Everything that talks to the outside of this host: the local hostname
# the authority indexes keys by, and the HTTPS fetch of an account's keys.

from .fetcher import KeyFetcher, KeyRequest, connection_token
from .hostname import resolve_hostname

__all__ = [
    "KeyFetcher",
    "KeyRequest",
    "connection_token",
    "resolve_hostname",
]
