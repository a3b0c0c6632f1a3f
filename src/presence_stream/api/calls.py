"""
One-Shot Requests
=================

Single HTTP calls to the presence service. No retry, no backoff: a
failure is reported once to the caller.

Endpoints:
    POST api/event     - publish a login/logout (msgpack body)
    GET  api/metadata  - service metadata (JSON)

Validation happens before any network activity. A HashedIdentifier with
a digest or salt of the wrong length raises ValidationError. A
LoginStateUpdate with a wrong-length hash or salt, or an out-of-range
territory or world id, raises pydantic.ValidationError when it is built.
Both are ValueError subclasses.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from presence_stream.errors import TransportError
from presence_stream.identity import IdentityHasher
from presence_stream.models.events import LoginStateUpdate
from presence_stream.ratelimit import RateLimitClock


logger = logging.getLogger(__name__)


EVENT_ENDPOINT = "api/event"
METADATA_ENDPOINT = "api/metadata"

MSGPACK_CONTENT_TYPE = "application/msgpack"


async def post_login_state(
    client: httpx.AsyncClient,
    update: LoginStateUpdate,
    rate_limit: Optional[RateLimitClock] = None,
) -> httpx.Response:
    """
    Publish a login state change.

    Args:
        client: HTTP client from build_http_client()
        update: Validated update carrying a hashed identifier
        rate_limit: Shared rate limit clock

    Returns:
        The (successful) response

    Raises:
        RateLimitedError: Still paused by an earlier 429
        TransportError: The request failed or returned a non-2xx status
    """
    return await _send(
        client,
        "POST",
        EVENT_ENDPOINT,
        rate_limit,
        content=update.to_msgpack(),
        headers={"Content-Type": MSGPACK_CONTENT_TYPE},
    )


async def send_login_state(
    client: httpx.AsyncClient,
    hasher: IdentityHasher,
    identifier: object,
    logged_in: bool,
    territory_id: int,
    world_id: int,
    rate_limit: Optional[RateLimitClock] = None,
) -> httpx.Response:
    """
    Hash a raw identifier with a fresh salt and publish the change.

    The raw identifier never leaves this function.
    """
    update = LoginStateUpdate.from_identifier(
        hasher.hash_identifier(identifier),
        logged_in=logged_in,
        territory_id=territory_id,
        world_id=world_id,
    )
    return await post_login_state(client, update, rate_limit)


async def get_metadata(
    client: httpx.AsyncClient,
    rate_limit: Optional[RateLimitClock] = None,
) -> Dict[str, Any]:
    """
    Fetch service metadata.

    Raises:
        RateLimitedError: Still paused by an earlier 429
        TransportError: The request failed, returned a non-2xx status,
            or the body was not JSON
    """
    response = await _send(client, "GET", METADATA_ENDPOINT, rate_limit)
    try:
        return response.json()
    except ValueError as e:
        raise TransportError(f"Metadata response is not valid JSON: {e}") from e


async def _send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    rate_limit: Optional[RateLimitClock],
    **kwargs: Any,
) -> httpx.Response:
    """Send one request, honouring and updating the rate limit clock."""
    if rate_limit is not None:
        rate_limit.check()

    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.error(f"{method} {url} failed: {e}")
        raise TransportError(f"{method} {url} failed: {e}") from e

    if rate_limit is not None:
        rate_limit.update(response)

    if not response.is_success:
        logger.error(f"{method} {url} returned status {response.status_code}")
        raise TransportError(
            f"{method} {url} returned status {response.status_code}",
            status_code=response.status_code,
        )

    logger.debug(f"{method} {url} -> {response.status_code}")
    return response
