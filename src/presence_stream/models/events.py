"""
Stream Event Schemas
====================

Pydantic models for records received from the presence service streams.

Player event stream (binary, msgpack):
    A flat array, identical to the login state POST body:

    [identifier_hash, identifier_salt, logged_in, territory_id, world_id]

    The same fields keyed by name in a map are also accepted.

Announcement stream (text, server-sent events):
    data: {"message": "Servers restart at 10:00", "kind": "Maintenance", "channel": null}

Example:
    import msgpack
    from presence_stream.models.events import LoginStateUpdate

    update = LoginStateUpdate.from_msgpack(msgpack.unpackb(raw))
    print(update.logged_in, update.world_id)
"""

from enum import Enum
from typing import Any, Optional

import msgpack
from pydantic import BaseModel, ConfigDict, Field

from presence_stream.models.identity import DIGEST_LENGTH, SALT_LENGTH, HashedIdentifier


class StreamRecord(BaseModel):
    """
    Base class for records carried by a stream.

    Provides the msgpack mapping shared by the binary stream and
    the one-shot request bodies. Array form follows field declaration order.
    """

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_msgpack(cls, obj: Any) -> "StreamRecord":
        """
        Build a record from an unpacked msgpack object.

        Args:
            obj: Array (positional fields) or map (named fields)

        Returns:
            Validated record

        Raises:
            TypeError: obj is neither an array nor a map
            ValueError: Wrong arity or field validation failed
        """
        if isinstance(obj, dict):
            return cls.model_validate(obj)
        if isinstance(obj, (list, tuple)):
            names = list(cls.model_fields)
            if len(obj) != len(names):
                raise ValueError(
                    f"{cls.__name__} expects {len(names)} fields, got {len(obj)}"
                )
            return cls.model_validate(dict(zip(names, obj)))
        raise TypeError(f"Cannot build {cls.__name__} from {type(obj).__name__}")

    def to_msgpack(self) -> bytes:
        """Serialize as a positional msgpack array."""
        values = [getattr(self, name) for name in type(self).model_fields]
        return msgpack.packb(
            [v.value if isinstance(v, Enum) else v for v in values],
            use_bin_type=True,
        )


class LoginStateUpdate(StreamRecord):
    """
    A player logged in or out.

    Attributes:
        identifier_hash: Keyed digest of the player's identifier
        identifier_salt: Salt used to compute the digest
        logged_in: True for a login, False for a logout
        territory_id: Territory the event happened in (16-bit)
        world_id: World the event happened in (32-bit)
    """

    identifier_hash: bytes = Field(
        ...,
        min_length=DIGEST_LENGTH,
        max_length=DIGEST_LENGTH,
        description="HMAC-SHA256 digest of the player identifier",
    )
    identifier_salt: bytes = Field(
        ...,
        min_length=SALT_LENGTH,
        max_length=SALT_LENGTH,
        description="Per-request random salt",
    )
    logged_in: bool = Field(..., description="Login (True) or logout (False)")
    territory_id: int = Field(..., ge=0, le=0xFFFF, description="Territory ID")
    world_id: int = Field(..., ge=0, le=0xFFFFFFFF, description="World ID")

    @classmethod
    def from_identifier(
        cls,
        identifier: HashedIdentifier,
        logged_in: bool,
        territory_id: int,
        world_id: int,
    ) -> "LoginStateUpdate":
        """Build an update from a freshly hashed identifier."""
        return cls(
            identifier_hash=identifier.digest,
            identifier_salt=identifier.salt,
            logged_in=logged_in,
            territory_id=territory_id,
            world_id=world_id,
        )

    @property
    def identifier(self) -> HashedIdentifier:
        """The digest/salt pair carried by this update."""
        return HashedIdentifier(digest=self.identifier_hash, salt=self.identifier_salt)

    def __repr__(self) -> str:
        return (
            f"LoginStateUpdate(hash={self.identifier_hash.hex()[:12]}..., "
            f"logged_in={self.logged_in}, "
            f"territory_id={self.territory_id}, world_id={self.world_id})"
        )


class AnnouncementKind(str, Enum):
    """Kind of announcement broadcast by the service operators."""

    INFORMATIONAL = "Informational"
    MAINTENANCE = "Maintenance"
    CRITICAL = "Critical"
    MISCELLANEOUS = "Miscellaneous"


class AnnouncementUpdate(StreamRecord):
    """
    An operator announcement.

    Attributes:
        message: Announcement text
        kind: Announcement category
        channel: Optional channel the announcement is scoped to
    """

    message: str = Field(..., description="Announcement text")
    kind: AnnouncementKind = Field(..., description="Announcement category")
    channel: Optional[str] = Field(default=None, description="Optional channel")
