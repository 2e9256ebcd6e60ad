"""Build directory cache orchestration.

``DirectoryCache`` plans everything a CI job needs for directory caching:
installing the cache client, fetching the closest matching archive,
adding directories and pushing the archive back. It never runs anything
itself; each step is recorded on the shell collaborator it is given.

Archives are stored per repository, per group and per slug::

    /<repository>/<group>/<slug>.tgz

where the group is ``PR.<number>`` for pull requests and the branch name
otherwise. Fetching walks a fallback cascade from the most specific group
to the default branch so a job can start from a close-enough cache.
"""

import re
import shlex
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Union

from dircache.config import CacheConfig
from dircache.logging_config import get_logger
from dircache.models import JobIdentity, KeyPair, Location, SignedRequest
from dircache.signatures import Signer, get_signer
from dircache.stores import get_host_strategy

logger = get_logger(__name__)

MSGS = {
    "config_missing": "Worker {store} config missing: {fields}",
    "install_failed": "Failed to fetch casher from GitHub, disabling cache.",
}

# Human-readable labels for required store options, in report order
VALIDATE = {
    "bucket": "bucket name",
    "access_key_id": "access key id",
    "secret_access_key": "secret access key",
}

CURL_FORMAT = """\
             time_namelookup:  %{time_namelookup} s
                time_connect:  %{time_connect} s
             time_appconnect:  %{time_appconnect} s
            time_pretransfer:  %{time_pretransfer} s
               time_redirect:  %{time_redirect} s
          time_starttransfer:  %{time_starttransfer} s
              speed_download:  %{speed_download} bytes/s
               url_effective:  %{url_effective}
                             ----------
                  time_total:  %{time_total} s
"""

# Maximum number of directories passed to one client "add" invocation
ADD_DIR_MAX = 100

CASHER_URL = "https://raw.githubusercontent.com/travis-ci/casher/{branch}/bin/casher"
CASHER_DIR = "$HOME/.casher"
BIN_PATH = "$CASHER_DIR/bin/casher"
USE_RUBY = "1.9.3"
HEADER_FILE = "$HOME/curl_headers"

ARCHIVE_GZ = ".tgz"
ARCHIVE_BZ2 = ".tbz"

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _flatten(items: Iterable[Any]) -> Iterator[str]:
    for item in items:
        if isinstance(item, (list, tuple)):
            yield from _flatten(item)
        elif item is not None:
            yield str(item)


class DirectoryCache:
    """Plans directory cache steps for one job.

    One instance serves one job. The signer is chosen once from the
    configured signature version, and every URL is signed against the same
    ``start`` instant.

    Attributes:
        sh: Shell collaborator receiving the instructions
        config: Cache configuration
        job: Identity of the job being built
        slug: Cache slug distinguishing caches within a branch
        start: Signing clock shared by every URL of this instance
        msgs: Validation diagnostics from the last ``validate`` pass
        signer: Signer bound to this instance
        header_signer: Request-header variant of the signer, for push
        cache_available: False once the plan has disabled caching
    """

    def __init__(
        self,
        sh,
        config: CacheConfig,
        job: JobIdentity,
        slug: Optional[str] = None,
        start: Optional[datetime] = None,
    ):
        """Initialize the cache planner.

        Args:
            sh: Shell collaborator (e.g. ``ShellScript``)
            config: Cache configuration
            job: Job identity
            slug: Optional cache slug
            start: Signing clock, defaults to the current UTC time

        Raises:
            UnknownStoreError: If the configured store is not supported
            SigningError: If request-header signing is combined with version 2
        """
        self.sh = sh
        self.config = config
        self.job = job
        self.slug = slug
        self.start = start or datetime.now(timezone.utc)
        self.msgs: List[str] = []
        self.host_strategy = get_host_strategy(config.store)
        self.signer: Signer = get_signer(config.signature_version)
        # Header-mode variant of the same algorithm, used for push only
        self.header_signer: Optional[Signer] = None
        if config.request_headers:
            self.header_signer = get_signer(config.signature_version, headers=True)
        self.key_pair = KeyPair(config.access_key_id or None, config.secret_access_key or None)
        self.cache_available = True
        self._fold_count = 0

    # Validation

    def valid(self) -> bool:
        self.validate()
        return not self.msgs

    def validate(self) -> List[str]:
        """Check that the required store options are present.

        Resets ``msgs`` and fills it with the label of every missing option.
        A non-empty result is reported as a single red warning line in the
        plan; nothing is raised.

        Returns:
            The diagnostics list
        """
        options = self.config.store_options()
        logger.debug(
            "Store %s options: %s",
            self.config.store,
            {k: ("***" if k == "secret_access_key" else v) for k, v in options.items()},
        )

        self.msgs = [VALIDATE[key] for key in self.config.missing_store_keys()]
        if self.msgs:
            message = MSGS["config_missing"].format(
                store=self.config.store.upper(), fields=", ".join(self.msgs)
            )
            logger.warning(message)
            self.sh.echo(message, ansi="red")
        return self.msgs

    # Plan steps

    def setup(self) -> None:
        """Install the client, fetch the cache and add configured directories."""
        with self.fold("Setting up build cache"):
            self.install()
            self.fetch()
            if self.directories:
                self.add(self.directories)

    def install(self) -> None:
        """Install the cache client.

        A failed download never fails the job: the client is replaced by an
        empty placeholder file and every later client call becomes a no-op.
        With an invalid configuration the download is skipped and caching is
        disabled for the rest of the plan.
        """
        sh = self.sh
        sh.export("CASHER_DIR", CASHER_DIR)
        sh.mkdir(f"{CASHER_DIR}/bin", echo=False, recursive=True)

        if not self.valid():
            sh.raw(f"echo > {BIN_PATH}")
            self.cache_available = False
            logger.info("Build cache disabled: store configuration incomplete")
            return

        curl = ["curl", self.casher_url()]
        debug_flags = self.debug_flags()
        if debug_flags:
            curl.append(debug_flags)
        curl.extend(["-L", "-o", BIN_PATH, "-s", "--fail"])
        sh.cmd(" ".join(curl), retry=True, echo="Installing caching utilities", assert_=False)
        sh.raw(f"[ $? -ne 0 ] && echo '{MSGS['install_failed']}' && echo > {BIN_PATH}")

        with sh.if_(f"-f {BIN_PATH}"):
            sh.chmod("+x", BIN_PATH, assert_=False, echo=False)

    def fetch(self) -> None:
        """Fetch the first archive of the fallback cascade that exists."""
        if not self.cache_available:
            return
        self.run("fetch", self.fetch_urls(), timing=True)

    def fetch_urls(self) -> List[str]:
        """Signed, shell-quoted fetch candidates, most specific first.

        1. the job's group (``PR.<n>`` or the branch)
        2. for pull requests, the target branch
        3. unless building it, the default branch

        Each candidate appears as a gzip archive followed by a bzip2 one.
        """
        groups = [self.job.group]
        if self.job.is_pull_request:
            groups.append(self.job.branch)
        if not self.job.is_default_branch:
            groups.append(self.job.default_branch)

        urls = []
        for group in groups:
            for ext in (ARCHIVE_GZ, ARCHIVE_BZ2):
                urls.append(shlex.quote(str(self.fetch_url(group, ext))))
        return urls

    def push(self) -> None:
        """Upload the job's group archive. Failures never fail the job."""
        if not self.cache_available:
            return
        request = self.push_url()
        self.run(
            "push",
            shlex.quote(request.uri),
            headers=request.headers,
            assert_=False,
            timing=True,
        )

    def add(self, *paths: Union[str, Sequence[str]]) -> None:
        """Add directories to the cache in batches of ``ADD_DIR_MAX``."""
        if not self.cache_available:
            return
        dirs = list(_flatten(paths))
        for i in range(0, len(dirs), ADD_DIR_MAX):
            self.run("add", dirs[i : i + ADD_DIR_MAX])

    @contextmanager
    def fold(self, message: Optional[str] = None) -> Iterator[str]:
        """Group the enclosed instructions under ``cache.<n>``.

        Numbering starts at 1 and increases with every fold of this instance.
        """
        self._fold_count += 1
        label = f"cache.{self._fold_count}"
        with self.sh.fold(label):
            if message:
                self.sh.echo(message)
            yield label

    # URLs

    def fetch_url(self, branch: Optional[str] = None, ext: str = ARCHIVE_BZ2) -> SignedRequest:
        return self.sign("GET", self.prefixed(branch or self.job.group, ext), self.config.fetch_timeout)

    def push_url(self, branch: Optional[str] = None) -> SignedRequest:
        return self.sign(
            "PUT",
            self.prefixed(branch or self.job.group, ARCHIVE_GZ),
            self.config.push_timeout,
            headers=self.header_signer is not None,
        )

    def sign(self, verb: str, path: str, expires: int, headers: bool = False) -> SignedRequest:
        """Sign a request for *path* with this instance's signer and clock.

        Raises:
            SigningError: If the credentials or bucket are missing
        """
        signer = self.header_signer if headers and self.header_signer else self.signer
        return signer.sign(self.key_pair, verb, self.location(path), expires, self.start)

    def location(self, path: str) -> Location:
        return Location(
            scheme=self.config.scheme or "https",
            region=self.config.region or "us-east-1",
            bucket=self.config.bucket,
            path=path,
            host_strategy=self.host_strategy,
        )

    def prefixed(self, branch: Optional[str], ext: str = ARCHIVE_GZ) -> str:
        """Archive path for *branch* under this job's repository and slug.

        Unsafe characters are stripped from every segment and absent
        segments are left out, e.g. ``/42/featurex/cache-linux.tgz``.
        """
        segments = [self.job.repository_id, branch, self.slug]
        cleaned = [_UNSAFE_PATH_CHARS.sub("", str(s)) for s in segments if s is not None]
        return "/" + "/".join(s for s in cleaned if s) + ext

    # Cache client

    @property
    def directories(self) -> List[str]:
        return list(self.config.directories)

    def casher_branch(self) -> str:
        if self.config.branch:
            return self.config.branch
        return "master" if self.config.edge else "production"

    def casher_url(self) -> str:
        return CASHER_URL.format(branch=self.casher_branch())

    def debug_flags(self) -> Optional[str]:
        if self.config.debug:
            return f"-v -w '{CURL_FORMAT}'"
        return None

    def run(
        self,
        command: str,
        args: Union[str, Sequence[str]],
        headers: Sequence = (),
        **options: Any,
    ) -> None:
        """Invoke the cache client, guarded on the client file existing."""
        args = [args] if isinstance(args, str) else list(args)
        sh = self.sh
        with sh.if_(f"-f {BIN_PATH}"):
            if headers:
                sh.cmd(f"cat /dev/null > {HEADER_FILE}", echo=False, timing=False)
                for name, value in headers:
                    line = f'header = "{name}: {value}"'
                    sh.cmd(f"echo {shlex.quote(line)} >> {HEADER_FILE}", echo=False, timing=False)
            sh.cmd("type rvm &>/dev/null || source ~/.rvm/scripts/rvm", echo=False, assert_=False)
            sh.cmd(
                f"rvm {USE_RUBY} --fuzzy do {BIN_PATH} {command} {' '.join(args)}",
                **{**options, "echo": False, "assert_": False},
            )
