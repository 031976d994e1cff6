"""
Credential hashing.

Secrets are never sent or stored in plaintext: the backend keeps a SHA-256
digest per account and login compares digests.
"""

import hashlib
import re

_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")


def hash_secret(secret: str) -> str:
    """Return the lowercase hex SHA-256 digest of the UTF-8 encoded secret."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def is_digest(value: str) -> bool:
    """Check whether a value has the shape of a digest from hash_secret."""
    return bool(_DIGEST_RE.match(value))
