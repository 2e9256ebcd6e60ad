"""Object store hostname strategies.

Each supported store maps a region to the base hostname that buckets are
addressed under (virtual-hosted style).
"""

from typing import Callable, Dict


class UnknownStoreError(ValueError):
    """Raised when a configuration names a store we cannot address."""


def s3_host(region: str) -> str:
    """Amazon S3 endpoint for *region*."""
    if region == "us-east-1":
        return "s3.amazonaws.com"
    return f"s3-{region}.amazonaws.com"


def gcs_host(region: str) -> str:
    """Google Cloud Storage interoperability endpoint (region independent)."""
    return "storage.googleapis.com"


HOST_STRATEGIES: Dict[str, Callable[[str], str]] = {
    "s3": s3_host,
    "gcs": gcs_host,
}


def get_host_strategy(store: str) -> Callable[[str], str]:
    """Look up the hostname strategy for a store.

    Args:
        store: Store name ("s3" or "gcs")

    Returns:
        Function mapping a region to a hostname

    Raises:
        UnknownStoreError: If the store is not supported
    """
    try:
        return HOST_STRATEGIES[store]
    except KeyError:
        raise UnknownStoreError(
            f"Unknown cache store: {store!r}. "
            f"Supported stores: {', '.join(sorted(HOST_STRATEGIES))}"
        ) from None
