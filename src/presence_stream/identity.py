"""
Identity Hashing
================

Keyed, salted, time-windowed digests of user identifiers.

Callers never send a raw identifier. They send

    digest = HMAC-SHA256(
        key=group_key,
        msg=f"{value}:{base64(salt)}:{YYYYMMDDHH (UTC)}:{build_id}",
    )

together with the salt. A peer that knows the raw value, the group key and
the build id can recompute the digest for the current hour and recognise
the user; nobody else can, and two requests for the same user are unlinkable
because every request uses a fresh salt.

Example:
    hasher = IdentityHasher(group_key="friends-only", build_id="1.4.2")
    identifier = hasher.hash_identifier(1234567890)

    # on the receiving side
    friend = find_by_hash(friends, identifier.digest, identifier.salt, hasher,
                          key=lambda f: f.content_id)
"""

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, TypeVar

from presence_stream.models.identity import SALT_LENGTH, HashedIdentifier


logger = logging.getLogger(__name__)

C = TypeVar("C")


def generate_salt() -> bytes:
    """Return SALT_LENGTH cryptographically random bytes."""
    return secrets.token_bytes(SALT_LENGTH)


def hour_window(now: Optional[datetime] = None) -> str:
    """
    Truncate a time to its UTC hour.

    Args:
        now: Time to truncate (defaults to the current time). Naive
            datetimes are taken as UTC.

    Returns:
        The hour as "YYYYMMDDHH"
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y%m%d%H")


class IdentityHasher:
    """
    Computes and verifies hashed identifiers.

    Attributes:
        build_id: Build-specific value mixed into every digest. Only
            clients on the same build can verify each other.
    """

    def __init__(self, group_key: str, build_id: str) -> None:
        """
        Initialize identity hasher.

        Args:
            group_key: Shared secret used as the HMAC key. An empty key is
                allowed and scopes digests to the build only.
            build_id: Build-specific value
        """
        self._key = group_key.encode("utf-8")
        self.build_id = build_id

    @classmethod
    def from_settings(cls, settings) -> "IdentityHasher":
        """Build a hasher from Settings.identity."""
        return cls(group_key=settings.identity.group_key, build_id=settings.identity.build_id)

    def hash(self, value: object, salt: bytes, now: Optional[datetime] = None) -> bytes:
        """
        Compute the digest of a value.

        Args:
            value: Raw identifier (formatted with str())
            salt: Salt bytes, normally from generate_salt()
            now: Time whose hour window is used (defaults to now)

        Returns:
            32-byte HMAC-SHA256 digest
        """
        message = ":".join((
            str(value),
            base64.b64encode(salt).decode("ascii"),
            hour_window(now),
            self.build_id,
        ))
        return hmac.new(self._key, message.encode("utf-8"), hashlib.sha256).digest()

    def hash_identifier(self, value: object, now: Optional[datetime] = None) -> HashedIdentifier:
        """Hash a value with a fresh salt."""
        salt = generate_salt()
        return HashedIdentifier(digest=self.hash(value, salt, now), salt=salt)

    def matches(
        self,
        value: object,
        digest: bytes,
        salt: bytes,
        now: Optional[datetime] = None,
    ) -> bool:
        """Whether `digest` was computed from `value` with `salt` in this hour."""
        return hmac.compare_digest(self.hash(value, salt, now), digest)


def find_by_hash(
    candidates: Iterable[C],
    digest: bytes,
    salt: bytes,
    hasher: IdentityHasher,
    key: Callable[[C], object] = lambda candidate: candidate,
    now: Optional[datetime] = None,
) -> Optional[C]:
    """
    Find the candidate whose identifier hashes to `digest`.

    Used to map a stream event back to a local record (e.g. a friend list
    entry) without ever receiving the raw identifier.

    Args:
        candidates: Local records to check
        digest: Digest received from the stream
        salt: Salt received alongside the digest
        hasher: Hasher configured with the same group key and build id
        key: Extracts the raw identifier from a candidate
        now: Time whose hour window is used (defaults to now)

    Returns:
        The first matching candidate, or None
    """
    for candidate in candidates:
        if hasher.matches(key(candidate), digest, salt, now):
            return candidate
    return None
