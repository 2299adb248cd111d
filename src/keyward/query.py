# Query Orchestrator
#
# One invocation, one account:
#
#   FETCH ──ok──> VERIFY ──> STORE_CACHE ──> FILTER ──> keys
#     │
#     └─failed──> LOAD_CACHE ──(empty)──> re-raise the fetch failure
#                     │
#                     └──> VERIFY ──> FILTER ──> keys
#
# The cache holds what survived verification, so the fallback path
# reproduces the fresh path. Cached keys are verified again all the same.

import logging
import socket
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .cache.store import CacheStore
from .core.audit_log import get_audit_logger
from .core.config import AgentConfig, trust_specifiers
from .exceptions import (
    CacheWriteError,
    FetchError,
    MissingPublicKeyError,
    VerificationError,
)
from .keys.fingerprint import AuditHook, filter_keys_by_fingerprint
from .keys.models import Key
from .keys.verification import distinct_in_order, verify_keys
from .remote.fetcher import KeyFetcher, KeyRequest, connection_token
from .remote.hostname import resolve_hostname

logger = logging.getLogger(__name__)

SOURCE_AUTHORITY = "authority"
SOURCE_CACHE = "cache"


@dataclass(frozen=True)
class QueryRequest:
    account: str
    fingerprint: str = ""
    ssh_connection: str = ""


@dataclass
class QueryResult:
    keys: List[Key] = field(default_factory=list)
    source: str = SOURCE_AUTHORITY


def _audit_login(account: str, user: str) -> bool:
    return get_audit_logger().log_login(account, user)


class KeyQuery:
    """Resolves the authorized keys for one account.

    Collaborators default to the real ones and can be replaced for tests.
    """

    def __init__(
        self,
        config: AgentConfig,
        fetcher: Optional[KeyFetcher] = None,
        cache: Optional[CacheStore] = None,
        audit: Optional[AuditHook] = None,
        gethostname: Optional[Callable[[], str]] = None,
    ):
        self.config = config
        self.fetcher = fetcher or KeyFetcher(config)
        self.cache = cache or CacheStore(config.cache_dir)
        self.audit = audit or _audit_login
        self.gethostname = gethostname or socket.gethostname

    def run(self, request: QueryRequest) -> QueryResult:
        """
        Raises:
            MissingPublicKeyError: verification requested without trust keys.
            HostnameError: local hostname unavailable.
            FetchError: authority unavailable and nothing usable in the cache.
            VerificationError: candidates existed but none was accepted.
        """
        if self.config.verify and not self.config.public_keys:
            raise MissingPublicKeyError("Verification requested but no public key configured")
        specifiers = trust_specifiers(self.config)

        hostname = resolve_hostname(
            self.config.hostname_prefix, self.config.hostname_suffix, self.gethostname
        )
        key_request = KeyRequest(
            hostname=hostname,
            account=request.account,
            fingerprint=request.fingerprint,
            connection=connection_token(request.ssh_connection),
        )

        try:
            candidates = self.fetcher.fetch(key_request)
            source = SOURCE_AUTHORITY
        except FetchError as e:
            logger.warning("Key authority unavailable (%s), falling back to cache", e)
            candidates = self.cache.read(request.account)
            if not candidates:
                logger.error("Unable to obtain keys for %s", request.account)
                raise
            source = SOURCE_CACHE

        verified = verify_keys(specifiers, candidates)

        if source == SOURCE_AUTHORITY:
            snapshot = distinct_in_order(candidates, verified) if specifiers else candidates
            self._store(request.account, snapshot)

        if specifiers and candidates and not verified:
            raise VerificationError(
                f"None of {len(candidates)} keys for {request.account} passed verification"
            )

        keys = verified
        if request.fingerprint:
            keys = filter_keys_by_fingerprint(
                request.fingerprint, request.account, verified, self.audit
            )
        logger.debug("Authorizing %d keys for %s from %s", len(keys), request.account, source)
        return QueryResult(keys=keys, source=source)

    def _store(self, account: str, keys: List[Key]) -> None:
        try:
            self.cache.write(account, keys)
        except CacheWriteError as e:
            logger.warning("%s", e)


def run_query(config: AgentConfig, request: QueryRequest, **collaborators) -> QueryResult:
    """Convenience wrapper around ``KeyQuery(config, ...).run(request)``."""
    return KeyQuery(config, **collaborators).run(request)
