# Keys Module - Signature Verifiers
#
# One Verifier per trusted signer key. The authority signs the UTF-8 bytes
# of each public_key line; a Verifier answers accepted/rejected for a
# (message, signature) pair and never raises on a bad signature.
#
# Adding an algorithm: one Verifier subclass plus one branch in
# verifier_for_key().

from abc import ABC, abstractmethod

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ed25519, padding, rsa

from ..exceptions import UnsupportedKeyType


class Verifier(ABC):
    """Checks signatures against exactly one trusted public key."""

    algorithm: str = ""

    @abstractmethod
    def verify(self, message: bytes, signature: bytes) -> bool:
        """Return True when ``signature`` over ``message`` is valid."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.algorithm}>"


class RSAVerifier(Verifier):
    """RSA PKCS#1 v1.5 over a SHA-256 digest."""

    algorithm = "rsa-sha256"

    def __init__(self, public_key: rsa.RSAPublicKey):
        self._public_key = public_key

    def verify(self, message: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, message, padding.PKCS1v15(), hashes.SHA256())
            return True
        except (InvalidSignature, ValueError):
            return False


class Ed25519Verifier(Verifier):
    """Ed25519 over the message itself (no pre-hash)."""

    algorithm = "ed25519"

    def __init__(self, public_key: ed25519.Ed25519PublicKey):
        self._public_key = public_key

    def verify(self, message: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, message)
            return True
        except (InvalidSignature, ValueError):
            return False


def verifier_for_key(public_key) -> Verifier:
    """Pick the Verifier for a loaded public key object.

    Raises:
        UnsupportedKeyType: for any key type other than RSA or Ed25519.
    """
    if isinstance(public_key, rsa.RSAPublicKey):
        return RSAVerifier(public_key)
    if isinstance(public_key, ed25519.Ed25519PublicKey):
        return Ed25519Verifier(public_key)
    raise UnsupportedKeyType(f"unsupported key type {type(public_key).__name__}")
