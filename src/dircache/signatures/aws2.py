"""AWS signature version 2 (query-string authentication).

The legacy scheme: one HMAC-SHA1 pass over the verb, expiry timestamp and
resource path. Still the only HMAC scheme some S3-compatible stores accept
(e.g. GCS interoperability mode).
"""

from datetime import datetime
from urllib.parse import quote, urlunsplit

from botocore.auth import HmacV1QueryAuth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from dircache.models import KeyPair, Location, SignedRequest
from dircache.signatures.base import check_inputs


class _FixedClockQueryAuth(HmacV1QueryAuth):
    """``HmacV1QueryAuth`` with an absolute expiry instead of ``time.time()``."""

    def __init__(self, credentials: Credentials, expires_at: int):
        super().__init__(credentials)
        self._expires_at = expires_at

    def _get_date(self) -> str:
        return str(self._expires_at)


class Aws2Signer:
    """Signs requests with AWS signature version 2."""

    version = "2"

    def sign(
        self,
        key_pair: KeyPair,
        verb: str,
        location: Location,
        expires: int,
        now: datetime,
    ) -> SignedRequest:
        """Build a presigned URI valid until ``now + expires`` seconds.

        Args:
            key_pair: Access credentials
            verb: HTTP verb (GET, PUT, ...)
            location: Target object
            expires: Lifetime of the signature in seconds
            now: Signing clock

        Returns:
            SignedRequest with the signature in the query string

        Raises:
            SigningError: If the inputs cannot be signed
        """
        check_inputs(key_pair, location, expires, now)

        expires_at = int(now.timestamp()) + int(expires)
        path = quote(location.path, safe="/~")
        request = AWSRequest(
            method=verb.upper(),
            url=urlunsplit((location.scheme, location.hostname(), path, "", "")),
            # The signed resource names the bucket even for virtual-hosted URLs
            auth_path=f"/{location.bucket}{path}",
        )
        credentials = Credentials(key_pair.id, key_pair.secret)
        _FixedClockQueryAuth(credentials, expires_at).add_auth(request)
        return SignedRequest(uri=request.url)
