"""
Tests for SSH fingerprints and the Fingerprint Filter.

Expected fingerprints were computed with ``ssh-keygen -lf``.
"""

import pytest

from keyward.exceptions import KeyFormatError
from keyward.keys.fingerprint import filter_keys_by_fingerprint, fingerprint_sha256
from keyward.keys.models import Key

FP_ALICE = "SHA256:gf5AmbijLjiDg/x3beUe8fsstWuj9CLDqCJGr79+E9o"
FP_BOB = "SHA256:4zfZAKF55CVjn3+TE4rRWmjJYxIbgC7398f8/BOdXng"
FP_CAROL = "SHA256:mQZFPlFCNvS9HCn4zEG/ZtAgqmgOZ5N4steNrHbbrbs"
FP_DAVE = "SHA256:ulSXKEdTUv1HJaZqUEUgB1xTRnRd3RydkZ2mKgqO5eg"


class TestFingerprint:

    def test_matches_ssh_keygen(self, key_fixture):
        keys = key_fixture("keys_rsa_signed.json")
        assert [fingerprint_sha256(k.public_key) for k in keys] == [
            FP_ALICE, FP_BOB, FP_CAROL, FP_DAVE,
        ]

    def test_no_padding(self, key_fixture):
        fp = fingerprint_sha256(key_fixture("keys_rsa_signed.json")[0].public_key)
        assert not fp.endswith("=")

    def test_comment_does_not_matter(self, key_fixture):
        line = key_fixture("keys_rsa_signed.json")[0].public_key
        bare = " ".join(line.split()[:2])
        assert fingerprint_sha256(bare) == fingerprint_sha256(bare + " someone@else")

    def test_options_prefix_tolerated(self, key_fixture):
        line = key_fixture("keys_rsa_signed.json")[1].public_key
        assert fingerprint_sha256(f'from="10.0.0.0/8" {line}') == FP_BOB

    @pytest.mark.parametrize("line", [
        "",
        "not a key",
        "ssh-ed25519",
        "ssh-ed25519 AAAA!!!notbase64",
        "ssh-ed25519 AAAAB3NzaC1yc2EAAAADAQABAAABAQ==",
    ])
    def test_unparsable(self, line):
        with pytest.raises(KeyFormatError):
            fingerprint_sha256(line)

    def test_type_mismatch(self, key_fixture):
        blob = key_fixture("keys_rsa_signed.json")[0].public_key.split()[1]
        with pytest.raises(KeyFormatError, match="does not match"):
            fingerprint_sha256(f"ssh-rsa {blob}")


class TestFilterKeysByFingerprint:

    def test_second_of_three(self, key_fixture):
        keys = key_fixture("keys_rsa_signed.json")[:3]
        calls = []
        result = filter_keys_by_fingerprint(
            FP_BOB, "deploy", keys, audit=lambda a, u: calls.append((a, u))
        )
        assert result == [keys[1]]
        assert calls == [("bob@example.com", "deploy")]

    def test_no_match(self, key_fixture):
        calls = []
        result = filter_keys_by_fingerprint(
            "SHA256:doesnotexist", "deploy", key_fixture("keys_rsa_signed.json"),
            audit=lambda a, u: calls.append((a, u)),
        )
        assert result == []
        assert calls == []

    def test_unattributed_key_never_matches(self, key_fixture):
        keys = key_fixture("keys_rsa_signed.json")
        assert keys[3].account == ""
        assert filter_keys_by_fingerprint(FP_DAVE, "root", keys) == []

    def test_first_match_wins(self, key_fixture):
        alice = key_fixture("keys_rsa_signed.json")[0]
        again = Key(alice.public_key, "", "other@example.com", "no-pty")
        result = filter_keys_by_fingerprint(FP_ALICE, "root", [alice, again, alice])
        assert result == [alice]

    def test_duplicates_yield_one(self, key_fixture):
        alice = key_fixture("keys_rsa_signed.json")[0]
        assert len(filter_keys_by_fingerprint(FP_ALICE, "root", [alice] * 3)) == 1

    def test_unparsable_key_skipped(self, key_fixture):
        bob = key_fixture("keys_rsa_signed.json")[1]
        broken = Key("garbage", "", "mallory@example.com", "")
        assert filter_keys_by_fingerprint(FP_BOB, "root", [broken, bob]) == [bob]

    def test_failing_audit_does_not_change_result(self, key_fixture):
        keys = key_fixture("keys_rsa_signed.json")

        def broken_audit(account, user):
            raise RuntimeError("syslog is gone")

        assert filter_keys_by_fingerprint(FP_CAROL, "root", keys, audit=broken_audit) == [keys[2]]

    def test_empty_input(self):
        assert filter_keys_by_fingerprint(FP_ALICE, "root", []) == []
