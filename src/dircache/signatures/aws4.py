"""AWS signature version 4.

Signs a canonical request under a credential scope of
``<date>/<region>/s3/aws4_request``. The signing key is derived through a
chain of HMAC-SHA256 rounds, so a leaked signature is only valid for one
day, one region and one service.

Two output modes are supported:

- query string (default): the signature and its parameters travel in the
  URI, which any anonymous HTTP client can use as-is.
- request headers: the URI stays bare and the signature is carried by an
  ``Authorization`` header plus the ``x-amz-*`` headers it covers.

botocore computes the signatures; the subclasses below only pin its clock
to the caller's ``now``.
"""

from datetime import datetime, timezone
from urllib.parse import quote, urlunsplit

from botocore.auth import SIGV4_TIMESTAMP, UNSIGNED_PAYLOAD, S3SigV4Auth, S3SigV4QueryAuth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

from dircache.models import KeyPair, Location, SignedRequest
from dircache.signatures.base import check_inputs

SERVICE = "s3"


class _FixedClock:
    """Replaces botocore's wall-clock timestamp with a fixed one."""

    timestamp: str

    def _modify_request_before_signing(self, request):
        request.context["timestamp"] = self.timestamp
        super()._modify_request_before_signing(request)


class _QueryAuth(_FixedClock, S3SigV4QueryAuth):
    def __init__(self, credentials: Credentials, region: str, expires: int, timestamp: str):
        super().__init__(credentials, SERVICE, region, expires=expires)
        self.timestamp = timestamp


class _HeaderAuth(_FixedClock, S3SigV4Auth):
    def __init__(self, credentials: Credentials, region: str, timestamp: str):
        super().__init__(credentials, SERVICE, region)
        self.timestamp = timestamp

    def payload(self, request) -> str:
        # The client streams the archive, so the body is never hashed
        return UNSIGNED_PAYLOAD


class Aws4Signer:
    """Signs requests with AWS signature version 4.

    Attributes:
        headers: Emit the signature as request headers instead of query
            parameters
    """

    version = "4"

    def __init__(self, headers: bool = False):
        self.headers = headers

    def sign(
        self,
        key_pair: KeyPair,
        verb: str,
        location: Location,
        expires: int,
        now: datetime,
    ) -> SignedRequest:
        """Sign a request for *location*.

        Args:
            key_pair: Access credentials
            verb: HTTP verb (GET, PUT, ...)
            location: Target object
            expires: Lifetime of the signature in seconds
            now: Signing clock

        Returns:
            SignedRequest; in header mode its headers carry the signature

        Raises:
            SigningError: If the inputs cannot be signed
        """
        check_inputs(key_pair, location, expires, now)

        timestamp = now.astimezone(timezone.utc).strftime(SIGV4_TIMESTAMP)
        credentials = Credentials(key_pair.id, key_pair.secret)
        url = urlunsplit(
            (location.scheme, location.hostname(), quote(location.path, safe="/~"), "", "")
        )
        request = AWSRequest(method=verb.upper(), url=url)

        if not self.headers:
            _QueryAuth(credentials, location.region, int(expires), timestamp).add_auth(request)
            return SignedRequest(uri=request.url)

        _HeaderAuth(credentials, location.region, timestamp).add_auth(request)
        return SignedRequest(
            uri=request.url,
            headers=(
                ("Authorization", request.headers["Authorization"]),
                ("x-amz-content-sha256", request.headers["X-Amz-Content-SHA256"]),
                ("x-amz-date", request.headers["X-Amz-Date"]),
            ),
        )
