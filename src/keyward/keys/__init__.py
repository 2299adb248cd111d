# Keys Module - candidate key records and the verify/filter/format pipeline
#
# Key records come from the authority or the local cache. Before they reach
# sshd they are verified against the trust keys, optionally narrowed to the
# fingerprint the client presented, and rendered as authorized_keys lines.

from .models import Key, keys_from_json, keys_to_json
from .verifier import Ed25519Verifier, RSAVerifier, Verifier, verifier_for_key
from .trust_store import TrustStore, load_verifier
from .verification import verify_keys
from .fingerprint import filter_keys_by_fingerprint, fingerprint_sha256
from .formatter import authorized_keys_line, write_authorized_keys

__all__ = [
    # Records
    "Key",
    "keys_from_json",
    "keys_to_json",
    # Verification
    "Verifier",
    "RSAVerifier",
    "Ed25519Verifier",
    "verifier_for_key",
    "TrustStore",
    "load_verifier",
    "verify_keys",
    # Fingerprint filter
    "fingerprint_sha256",
    "filter_keys_by_fingerprint",
    # Output
    "authorized_keys_line",
    "write_authorized_keys",
]
