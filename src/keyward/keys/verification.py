"""Verification Engine: keep the keys a trusted signer vouches for."""

import logging
from typing import List, Sequence

from .models import Key
from .trust_store import TrustStore

logger = logging.getLogger(__name__)


def verify_keys(specifiers: Sequence[str], keys: Sequence[Key]) -> List[Key]:
    """Return the keys whose signature is accepted by a trust key.

    Trust keys are the outer loop, candidates the inner one, so a key
    accepted by N trust keys appears N times in the result. With no
    specifiers at all, verification is disabled and every key passes.
    """
    if not specifiers:
        return list(keys)

    accepted: List[Key] = []
    for verifier in TrustStore(specifiers).iter_verifiers():
        for key in keys:
            if verifier.verify(key.public_key.encode("utf-8"), key.signature_bytes()):
                accepted.append(key)
            else:
                logger.debug(
                    "Signature rejected by %s for %s", verifier.algorithm, key.public_key
                )
    return accepted


def distinct_in_order(candidates: Sequence[Key], accepted: Sequence[Key]) -> List[Key]:
    """Candidates accepted at least once, in candidate order, without trust-key duplicates."""
    survivors = set(accepted)
    return [k for k in candidates if k in survivors]
