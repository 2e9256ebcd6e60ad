"""Request signers for object-storage URLs.

Two interchangeable algorithms share the ``sign`` capability:

- ``Aws2Signer``: legacy AWS signature version 2
- ``Aws4Signer``: AWS signature version 4 (query string or request headers)

``get_signer`` picks one from a configured signature version.
"""

from typing import Optional

from dircache.signatures.aws2 import Aws2Signer
from dircache.signatures.aws4 import Aws4Signer
from dircache.signatures.base import Signer, SigningError


def get_signer(version: Optional[str], headers: bool = False) -> Signer:
    """Select the signer for a signature version.

    Args:
        version: "2" for the legacy signer; anything else selects version 4
        headers: Carry the signature in request headers (version 4 only)

    Returns:
        Signer instance

    Raises:
        SigningError: If header mode is requested with version 2
    """
    if str(version).strip() == "2":
        if headers:
            raise SigningError("Request-header signing requires signature version 4")
        return Aws2Signer()
    return Aws4Signer(headers=headers)


__all__ = ["Aws2Signer", "Aws4Signer", "Signer", "SigningError", "get_signer"]
