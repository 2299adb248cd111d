# Remote Module - Key Authority Fetcher
#
# One GET per invocation:
#   <url>/authorized_keys/<hostname>/<account>?f=<fingerprint>&c=<token>
#
# The body is a JSON array of key records. Every failure is raised as a
# FetchError subclass; the orchestrator decides whether the cache can
# stand in for the authority.

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import quote

import httpx

from ..core.config import AgentConfig
from ..exceptions import (
    AuthorityError,
    KeyFormatError,
    RequestBuildError,
    ResponseParseError,
    TransportError,
)
from ..keys.models import Key, keys_from_json
from ..version import APP_VERSION

logger = logging.getLogger(__name__)

AUTHORIZED_KEYS_PATH = "authorized_keys"


def connection_token(ssh_connection: Optional[str]) -> str:
    """Third field of ``SSH_CONNECTION`` when it has exactly four fields.

    sshd sets it to ``<client ip> <client port> <server ip> <server port>``;
    the value is passed on opaquely.
    """
    if not ssh_connection:
        return ""
    parts = ssh_connection.split()
    if len(parts) != 4:
        return ""
    return parts[2]


@dataclass(frozen=True)
class KeyRequest:
    """What the authority is asked for."""
    hostname: str
    account: str
    fingerprint: str = ""
    connection: str = ""

    def path(self) -> str:
        return (
            f"{AUTHORIZED_KEYS_PATH}/{quote(self.hostname, safe='')}"
            f"/{quote(self.account, safe='')}"
        )

    def params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.fingerprint:
            params["f"] = self.fingerprint
        if self.connection:
            params["c"] = self.connection
        return params


class KeyFetcher:
    """Fetches an account's authorized keys from the key authority.

    Usage::

        fetcher = KeyFetcher(config)
        keys = fetcher.fetch(KeyRequest(hostname="web-1", account="alice"))
    """

    def __init__(self, config: AgentConfig):
        self.config = config

    def build_url(self, request: KeyRequest) -> str:
        base = self.config.url.strip()
        try:
            parsed = httpx.URL(base)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise RequestBuildError(f"Unable to create request: invalid url {base!r}: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise RequestBuildError(f"Unable to create request: invalid url {base!r}")
        return f"{base.rstrip('/')}/{request.path()}"

    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": APP_VERSION.user_agent(),
            "Authorization": f"Bearer {self.config.token}",
            "Accept": "application/json",
        }

    def fetch(self, request: KeyRequest) -> List[Key]:
        """Keys for ``request.account``, in the order the authority sent them.

        The configured timeout bounds the whole exchange, not each read:
        an authority that keeps trickling bytes is cut off all the same.

        Raises:
            RequestBuildError: the URL is unusable.
            TransportError: connect, DNS, TLS or timeout failure.
            AuthorityError: HTTP status >= 400.
            ResponseParseError: 2xx body that is not a key list.
        """
        url = self.build_url(request)
        timeout = self.config.timeout_seconds
        deadline = time.monotonic() + timeout
        logger.debug("Requesting %s", url)

        try:
            with httpx.Client(timeout=httpx.Timeout(timeout), follow_redirects=True) as client:
                with client.stream(
                    "GET", url, params=request.params(), headers=self.headers()
                ) as resp:
                    if resp.status_code >= 400:
                        raise AuthorityError(
                            f"Authority returned HTTP {resp.status_code}",
                            status_code=resp.status_code,
                        )
                    body = _read_body(resp, deadline, timeout)
        except httpx.InvalidURL as e:
            raise RequestBuildError(f"Unable to create request: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Unable to perform request: {e}") from e

        try:
            keys = keys_from_json(body)
        except KeyFormatError as e:
            logger.debug("Unparsable authority body: %r", body[:512])
            raise ResponseParseError(f"Unable to parse response body: {e}") from e

        logger.debug("Authority returned %d keys", len(keys))
        return keys


def _read_body(resp: httpx.Response, deadline: float, timeout: float) -> bytes:
    # httpx timeouts restart on every read; the deadline does not.
    chunks = []
    for chunk in resp.iter_bytes():
        chunks.append(chunk)
        if time.monotonic() > deadline:
            raise TransportError(
                f"Unable to perform request: no complete response within {timeout:g}s"
            )
    return b"".join(chunks)
