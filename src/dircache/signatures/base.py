"""Common pieces of the request signers."""

from datetime import datetime
from typing import Protocol

from dircache.models import KeyPair, Location, SignedRequest


class SigningError(ValueError):
    """A request cannot be signed with the given inputs."""


class Signer(Protocol):
    """Turns a request description into a signed, time-limited request."""

    version: str

    def sign(
        self,
        key_pair: KeyPair,
        verb: str,
        location: Location,
        expires: int,
        now: datetime,
    ) -> SignedRequest: ...


def check_inputs(key_pair: KeyPair, location: Location, expires: int, now: datetime) -> None:
    """Reject inputs that cannot produce a usable signature.

    Raises:
        SigningError: If credentials or bucket are missing, the expiry is not
            positive, or *now* carries no timezone
    """
    if not key_pair.id:
        raise SigningError("Cannot sign request: access key id is missing")
    if not key_pair.secret:
        raise SigningError("Cannot sign request: secret access key is missing")
    if not location.bucket:
        raise SigningError("Cannot sign request: bucket name is missing")
    if int(expires) <= 0:
        raise SigningError(f"Cannot sign request: expiry must be positive, got {expires}")
    if now.tzinfo is None:
        raise SigningError("Cannot sign request: signing time must be timezone-aware")
