# Keys Module - Fingerprint Filter & Login Audit
#
# sshd hands us the SHA256 fingerprint of the key the client offered
# (%f). When it does, only the first attributed key with that fingerprint
# is printed, and the login is attributed to that key's account.
# Unattributed (legacy) records never take part in this matching.

import base64
import binascii
import hashlib
import logging
import struct
from typing import Callable, List, Optional, Sequence, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from ..exceptions import KeyFormatError
from .models import Key

logger = logging.getLogger(__name__)

# Called as audit(account, user) on a fingerprint match.
AuditHook = Callable[[str, str], object]


def _split_key_line(line: str) -> Tuple[str, str]:
    """Find the ``<type> <base64>`` pair in an authorized_keys line.

    Tolerates a leading options field and a trailing comment. Every SSH
    key blob starts with a length-prefixed type name, i.e. ``AAAA`` in base64.
    """
    tokens = line.split()
    for i in range(len(tokens) - 1):
        if tokens[i + 1].startswith("AAAA"):
            return tokens[i], tokens[i + 1]
    raise KeyFormatError(f"no SSH public key found in {line!r}")


def _blob_key_type(blob: bytes) -> str:
    if len(blob) < 4:
        raise KeyFormatError("truncated SSH key blob")
    (length,) = struct.unpack(">I", blob[:4])
    if length > len(blob) - 4:
        raise KeyFormatError("truncated SSH key blob")
    return blob[4:4 + length].decode("ascii", errors="replace")


def fingerprint_sha256(public_key_line: str) -> str:
    """OpenSSH ``SHA256:<base64>`` fingerprint of a public key line.

    Raises:
        KeyFormatError: the line does not hold a well-formed SSH public key.
    """
    key_type, encoded = _split_key_line(public_key_line)
    try:
        blob = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise KeyFormatError(f"invalid key blob: {e}") from e

    embedded = _blob_key_type(blob)
    if embedded != key_type:
        raise KeyFormatError(f"key type {key_type!r} does not match blob type {embedded!r}")
    try:
        serialization.load_ssh_public_key(f"{key_type} {encoded}".encode("ascii"))
    except UnsupportedAlgorithm:
        # Security-key and certificate types: the blob type check above stands.
        logger.debug("Fingerprinting %s without full key parsing", key_type)
    except ValueError as e:
        raise KeyFormatError(f"invalid {key_type} key: {e}") from e

    digest = hashlib.sha256(blob).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


def filter_keys_by_fingerprint(
    fingerprint: str,
    user: str,
    keys: Sequence[Key],
    audit: Optional[AuditHook] = None,
) -> List[Key]:
    """Narrow ``keys`` to the first attributed key matching ``fingerprint``.

    Returns a list of at most one key. On a match ``audit(account, user)``
    is called once; a failing audit hook does not affect the result.
    """
    for key in keys:
        if not key.account:
            continue
        try:
            candidate = fingerprint_sha256(key.public_key)
        except KeyFormatError as e:
            logger.debug("Skipping unparsable key for %s: %s", key.account, e)
            continue
        if candidate != fingerprint:
            continue

        if audit is not None:
            try:
                audit(key.account, user)
            except Exception:
                logger.debug("Login audit failed", exc_info=True)
        return [key]
    return []
