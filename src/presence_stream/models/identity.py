"""
Hashed Identifier
=================

Outbound identifier pair sent in place of a raw user identifier.

The digest is NOT stable over time: it depends on the salt and on the
current UTC hour, so two requests for the same user cannot be linked by
anyone who does not already hold the raw value and the group key.

Validation:
    - digest must be exactly DIGEST_LENGTH bytes
    - salt must be exactly SALT_LENGTH bytes
    Violations raise ValidationError before any request is built.
"""

from dataclasses import dataclass

from presence_stream.errors import ValidationError


DIGEST_LENGTH = 32
SALT_LENGTH = 16


@dataclass(frozen=True, slots=True)
class HashedIdentifier:
    """
    Keyed digest of an identifier plus the salt used to compute it.

    Attributes:
        digest: HMAC-SHA256 output (32 bytes)
        salt: Random per-request salt (16 bytes)
    """

    digest: bytes
    salt: bytes

    def __post_init__(self) -> None:
        if len(self.digest) != DIGEST_LENGTH:
            raise ValidationError(
                f"Identifier digest must be exactly {DIGEST_LENGTH} bytes, "
                f"got {len(self.digest)}"
            )
        if len(self.salt) != SALT_LENGTH:
            raise ValidationError(
                f"Identifier salt must be exactly {SALT_LENGTH} bytes, "
                f"got {len(self.salt)}"
            )

    def __repr__(self) -> str:
        return f"HashedIdentifier(digest={self.digest.hex()[:12]}..., salt={self.salt.hex()})"
