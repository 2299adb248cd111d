"""
Trust Store: turns trust key specifiers into Verifiers.

A specifier is either a filesystem path to a PEM file or the PEM block
itself (recognised by a leading ``-----BEGIN PUBLIC KEY-----``). Each
specifier loads independently; a broken one is skipped with a warning
and never stops the others.
"""

import logging
import re
from pathlib import Path
from typing import Iterator, List, Sequence, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from ..exceptions import TrustKeyError
from .verifier import Verifier, verifier_for_key

logger = logging.getLogger(__name__)

PEM_PUBLIC_KEY_HEADER = "-----BEGIN PUBLIC KEY-----"
PEM_PUBLIC_KEY_LABEL = "PUBLIC KEY"

_PEM_BLOCK = re.compile(
    r"-----BEGIN (?P<label>[A-Z0-9 ]+)-----\s*(?P<body>.*?)\s*-----END (?P=label)-----",
    re.DOTALL,
)


def is_inline_pem(specifier: str) -> bool:
    return specifier.lstrip().startswith(PEM_PUBLIC_KEY_HEADER)


def _first_pem_block(data: bytes) -> bytes:
    """Return the first PEM block in ``data`` after checking its label."""
    text = data.decode("ascii", errors="replace")
    m = _PEM_BLOCK.search(text)
    if m is None:
        raise TrustKeyError("public key does not contain any PEM block")
    if m.group("label") != PEM_PUBLIC_KEY_LABEL:
        raise TrustKeyError(f"unsupported PEM block type {m.group('label')!r}")
    return m.group(0).encode("ascii")


def parse_public_key(pem: bytes) -> Verifier:
    """Parse a SubjectPublicKeyInfo PEM block into a Verifier."""
    block = _first_pem_block(pem)
    try:
        public_key = serialization.load_pem_public_key(block)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise TrustKeyError(f"could not parse public key: {e}") from e
    return verifier_for_key(public_key)


def load_verifier(specifier: str) -> Verifier:
    """Build a Verifier from a path or an inline PEM block.

    Raises:
        TrustKeyError: the file is missing, holds no usable PEM block,
            or the key type is not supported.
    """
    specifier = specifier.strip()
    if is_inline_pem(specifier):
        return parse_public_key(specifier.encode("ascii", errors="replace"))
    try:
        data = Path(specifier).read_bytes()
    except OSError as e:
        raise TrustKeyError(f"could not read public key {specifier}: {e}") from e
    return parse_public_key(data)


def _describe(specifier: str) -> str:
    return "<inline PEM>" if is_inline_pem(specifier) else specifier.strip()


class TrustStore:
    """The ordered list of trust key specifiers configured for this host."""

    def __init__(self, specifiers: Sequence[str]):
        self.specifiers: Tuple[str, ...] = tuple(specifiers)

    def __len__(self) -> int:
        return len(self.specifiers)

    def iter_verifiers(self) -> Iterator[Verifier]:
        """Yield one Verifier per loadable specifier, in configured order."""
        for specifier in self.specifiers:
            if not specifier.strip():
                continue
            try:
                verifier = load_verifier(specifier)
            except TrustKeyError as e:
                logger.warning("Skipping trust key %s: %s", _describe(specifier), e)
                continue
            logger.debug("Loaded trust key %s (%s)", _describe(specifier), verifier.algorithm)
            yield verifier

    def verifiers(self) -> List[Verifier]:
        return list(self.iter_verifiers())
