# gitshape/redact.py
"""
Keyed, deterministic pseudonyms for commit identities.

The redaction key is derived once per run from a secret:

    subkey = HKDF-SHA256(secret, info=DOMAIN_LABEL)

Names and emails are then hashed with SHAKE256 keyed by prefixing the
32-byte subkey, truncated to 12 bytes and hex-encoded. The same secret
always yields the same pseudonyms, so one contributor keeps one
pseudonym across the whole history and across runs.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .dag import Identity

logger = logging.getLogger(__name__)

DOMAIN_LABEL = b"gitshape identity redaction v1"
DEFAULT_SECRET = "gitshape-default-redaction-secret"
KEY_SIZE = 32
PSEUDONYM_SIZE = 12
REDACTED_DOMAIN = "redacted.invalid"


@dataclass(frozen=True)
class RedactionKey:
    """Derived 256-bit subkey. Never printed."""
    key: bytes = field(repr=False)

    def __post_init__(self):
        if len(self.key) != KEY_SIZE:
            raise ValueError(f"Redaction key must be {KEY_SIZE} bytes, got {len(self.key)}")

    @classmethod
    def derive(cls, secret: Optional[str] = None) -> "RedactionKey":
        """
        Derive the redaction subkey from a secret.

        A missing or empty secret falls back to DEFAULT_SECRET.
        """
        if not secret:
            logger.info("No redaction secret given, using the default secret")
            secret = DEFAULT_SECRET
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=None,
            info=DOMAIN_LABEL,
        )
        return cls(hkdf.derive(secret.encode("utf-8")))


def keyed_digest(key: RedactionKey, data: bytes, size: int = PSEUDONYM_SIZE) -> bytes:
    """Keyed SHAKE256 of data, truncated to size bytes."""
    digest = hashes.Hash(hashes.SHAKE256(digest_size=size))
    digest.update(key.key)
    digest.update(data)
    return digest.finalize()


def normalize_email(raw: bytes) -> Optional[bytes]:
    """
    Trim and lower-case an email.

    Returns None if the bytes are not valid UTF-8.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return None
    return text.strip().lower().encode("utf-8")


def pseudonym_name(key: RedactionKey, raw_name: bytes) -> bytes:
    """Pseudonymous display name for the raw name bytes."""
    return keyed_digest(key, raw_name).hex().encode("ascii")


def pseudonym_email(key: RedactionKey, raw_email: bytes) -> bytes:
    """Pseudonymous address for an email, normalized when possible."""
    normalized = normalize_email(raw_email)
    if normalized is None:
        logger.debug("Email is not valid UTF-8, hashing raw bytes")
        normalized = raw_email
    local = keyed_digest(key, normalized).hex()
    return f"{local}@{REDACTED_DOMAIN}".encode("ascii")


class Redactor:
    """
    Maps identities to themselves or to their pseudonyms.

    Usage:
        redactor = Redactor(enabled=True, key=RedactionKey.derive("secret"))
        author = redactor.redact(commit.author)
    """

    def __init__(self, enabled: bool = False, key: Optional[RedactionKey] = None):
        self.enabled = enabled
        if enabled and key is None:
            key = RedactionKey.derive(None)
        self.key = key

    def redact(self, identity: Identity) -> Identity:
        """Return the identity to write for the given source identity."""
        if not self.enabled:
            return identity
        return replace(
            identity,
            name=pseudonym_name(self.key, identity.name),
            email=pseudonym_email(self.key, identity.email),
        )

    def __repr__(self) -> str:
        return f"Redactor(enabled={self.enabled})"
