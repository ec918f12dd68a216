# tests/test_redact.py
"""Tests for identity redaction."""

import re

import pytest

from gitshape.dag import Identity
from gitshape.redact import (
    DEFAULT_SECRET,
    RedactionKey,
    Redactor,
    keyed_digest,
    normalize_email,
    pseudonym_email,
    pseudonym_name,
)

from memstore import ident

HEX_NAME = re.compile(rb"^[0-9a-f]{24}$")
HEX_EMAIL = re.compile(rb"^[0-9a-f]{24}@redacted\.invalid$")


@pytest.fixture
def key():
    return RedactionKey.derive("k")


class TestRedactionKey:
    """Test key derivation."""

    def test_derivation_is_deterministic(self):
        assert RedactionKey.derive("k") == RedactionKey.derive("k")

    def test_key_size(self, key):
        assert len(key.key) == 32

    def test_different_secrets_differ(self):
        assert RedactionKey.derive("k") != RedactionKey.derive("k2")

    def test_default_secret(self):
        """Missing and empty secrets both fall back to the default."""
        default = RedactionKey.derive(DEFAULT_SECRET)
        assert RedactionKey.derive(None) == default
        assert RedactionKey.derive("") == default

    def test_subkey_is_not_the_secret(self):
        """The secret is never used directly as the hash key."""
        secret = "x" * 32
        assert RedactionKey.derive(secret).key != secret.encode()

    def test_repr_hides_key(self, key):
        assert key.key.hex() not in repr(key)

    def test_wrong_length_rejected(self):
        with pytest.raises(ValueError, match="32 bytes"):
            RedactionKey(b"short")


class TestKeyedDigest:
    """Test the keyed extendable-output hash."""

    def test_size(self, key):
        assert len(keyed_digest(key, b"data")) == 12
        assert len(keyed_digest(key, b"data", size=32)) == 32

    def test_prefix_of_longer_output(self, key):
        """Extendable output: shorter digests are prefixes of longer ones."""
        assert keyed_digest(key, b"data", size=32).startswith(keyed_digest(key, b"data"))

    def test_keyed(self, key):
        other = RedactionKey.derive("other")
        assert keyed_digest(key, b"data") != keyed_digest(other, b"data")


class TestNormalizeEmail:
    """Test email normalization."""

    def test_trim_and_lower(self):
        assert normalize_email(b"  Alice@Example.COM\t") == b"alice@example.com"

    def test_unicode(self):
        assert normalize_email("ÉMILE@example.com".encode()) == "émile@example.com".encode()

    def test_malformed(self):
        assert normalize_email(b"\xff\xfealice@example.com") is None


class TestPseudonyms:
    """Test pseudonym formats and guarantees."""

    def test_name_format(self, key):
        assert HEX_NAME.match(pseudonym_name(key, b"Alice"))

    def test_email_format(self, key):
        assert HEX_EMAIL.match(pseudonym_email(key, b"alice@example.com"))

    def test_name_deterministic(self, key):
        assert pseudonym_name(key, b"Alice") == pseudonym_name(key, b"Alice")

    def test_deterministic_across_key_instances(self):
        """Same secret in a later run gives the same pseudonym."""
        first = pseudonym_name(RedactionKey.derive("k"), b"Alice")
        second = pseudonym_name(RedactionKey.derive("k"), b"Alice")
        assert first == second

    def test_name_is_not_normalized(self, key):
        """Names hash their raw bytes."""
        assert pseudonym_name(key, b"Alice") != pseudonym_name(key, b"alice")

    def test_email_case_and_whitespace_collapse(self, key):
        expected = pseudonym_email(key, b"alice@example.com")
        assert pseudonym_email(key, b"Alice@Example.com") == expected
        assert pseudonym_email(key, b"  alice@example.com \n") == expected

    def test_distinct_names(self, key):
        assert pseudonym_name(key, b"Alice") != pseudonym_name(key, b"Bob")

    def test_distinct_emails(self, key):
        assert pseudonym_email(key, b"alice@example.com") != pseudonym_email(key, b"bob@example.com")

    def test_key_changes_pseudonym(self):
        assert (pseudonym_name(RedactionKey.derive("k"), b"Alice")
                != pseudonym_name(RedactionKey.derive("other"), b"Alice"))

    def test_pseudonym_hides_input(self, key):
        assert b"alice" not in pseudonym_email(key, b"alice@example.com")
        assert b"Alice" not in pseudonym_name(key, b"Alice")

    def test_malformed_email_falls_back_to_raw_bytes(self, key):
        """Invalid UTF-8 is hashed as-is instead of failing."""
        raw = b"\xff\xfealice@example.com"
        result = pseudonym_email(key, raw)

        assert HEX_EMAIL.match(result)
        assert result == pseudonym_email(key, raw)
        local = keyed_digest(key, raw).hex().encode()
        assert result == local + b"@redacted.invalid"

    def test_empty_values(self, key):
        assert HEX_NAME.match(pseudonym_name(key, b""))
        assert HEX_EMAIL.match(pseudonym_email(key, b""))


class TestRedactor:
    """Test Redactor class."""

    def test_disabled_is_pass_through(self):
        identity = Identity(b"Alice \xff", b"ALICE@example.com ", 1_600_000_000, -420)
        redactor = Redactor(enabled=False)

        assert redactor.redact(identity) is identity

    def test_enabled_replaces_name_and_email(self, key):
        identity = ident("Alice", "alice@example.com", 1_600_000_000, 330)
        redacted = Redactor(enabled=True, key=key).redact(identity)

        assert redacted.name == pseudonym_name(key, b"Alice")
        assert redacted.email == pseudonym_email(key, b"alice@example.com")

    def test_enabled_keeps_timestamp(self, key):
        identity = ident(time=1_234_567_890, offset=-480)
        redacted = Redactor(enabled=True, key=key).redact(identity)

        assert redacted.time == 1_234_567_890
        assert redacted.offset == -480

    def test_enabled_without_key_uses_default(self):
        identity = ident()
        redacted = Redactor(enabled=True).redact(identity)

        default = RedactionKey.derive(None)
        assert redacted.name == pseudonym_name(default, identity.name)

    def test_malformed_email_does_not_raise(self, key):
        identity = Identity(b"Bob", b"\xc3\x28bob@example.com", 0)
        redacted = Redactor(enabled=True, key=key).redact(identity)

        assert HEX_EMAIL.match(redacted.email)

    def test_repr(self):
        assert repr(Redactor(enabled=True)) == "Redactor(enabled=True)"
