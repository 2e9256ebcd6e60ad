"""Value objects shared by the signers and the cache orchestrator.

Provides dataclasses for credentials, storage locations, job identity and
signed requests.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple


@dataclass(frozen=True)
class KeyPair:
    """Access credentials for the object store.

    Attributes:
        id: Access key id
        secret: Secret access key
    """

    id: Optional[str]
    secret: Optional[str]

    def __repr__(self) -> str:
        return f"KeyPair(id={self.id!r}, secret={'***' if self.secret else None!r})"


@dataclass(frozen=True)
class Location:
    """A single addressable object in a bucket.

    Attributes:
        scheme: "http" or "https"
        region: Store region (e.g., "us-east-1")
        bucket: Bucket name
        path: Object path, starting with "/"
        host_strategy: Maps a region to the store's base hostname
    """

    scheme: str
    region: str
    bucket: str
    path: str
    host_strategy: Callable[[str], str]

    def hostname(self) -> str:
        """Virtual-hosted style hostname, e.g. ``bucket.s3.amazonaws.com``."""
        return f"{self.bucket}.{self.host_strategy(self.region)}"


@dataclass(frozen=True)
class JobIdentity:
    """Identity of the job whose directories are cached.

    Attributes:
        repository_id: Repository identifier used as the top path segment
        branch: Branch being built (the target branch for pull requests)
        pull_request: Pull request number, None for push builds
        default_branch: Repository default branch, the last fallback
    """

    repository_id: str
    branch: str
    pull_request: Optional[str] = None
    default_branch: str = "master"

    @property
    def is_pull_request(self) -> bool:
        return bool(self.pull_request)

    @property
    def is_default_branch(self) -> bool:
        return self.branch == self.default_branch

    @property
    def group(self) -> str:
        """Cache group: ``PR.<id>`` for pull requests, otherwise the branch."""
        if self.is_pull_request:
            return f"PR.{self.pull_request}"
        return self.branch


@dataclass(frozen=True)
class SignedRequest:
    """A signed, time-limited request.

    Attributes:
        uri: Full URI, carrying the signature in query-string mode
        headers: (name, value) pairs to send, empty in query-string mode
    """

    uri: str
    headers: Tuple[Tuple[str, str], ...] = ()

    def __str__(self) -> str:
        return self.uri
