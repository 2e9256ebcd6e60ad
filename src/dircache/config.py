"""Configuration management for dircache.

Handles loading, saving, and validating TOML configuration stored in:
- macOS: ~/.config/dircache/config.toml
- Linux: ~/.config/dircache/config.toml (XDG_CONFIG_HOME)
- Windows: %APPDATA%\\dircache\\config.toml

Store credentials may also come from environment variables, which take
precedence over the file so that CI secrets never need to be written to disk.
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomllib
import tomli_w

# Store option keys, in the order validation reports them
REQUIRED_STORE_KEYS = ("bucket", "access_key_id", "secret_access_key")

# Keys owned by the [cache] section and by the active store's section
CACHE_KEYS = (
    "store",
    "signature_version",
    "fetch_timeout",
    "push_timeout",
    "debug",
    "branch",
    "edge",
    "request_headers",
    "directories",
)
STORE_KEYS = ("bucket", "region", "scheme", "access_key_id", "secret_access_key")

ENV_OVERRIDES = {
    "store": "DIRCACHE_STORE",
    "signature_version": "DIRCACHE_SIGNATURE_VERSION",
    "bucket": "DIRCACHE_BUCKET",
    "region": "DIRCACHE_REGION",
    "scheme": "DIRCACHE_SCHEME",
    "access_key_id": "DIRCACHE_ACCESS_KEY_ID",
    "secret_access_key": "DIRCACHE_SECRET_ACCESS_KEY",
}


@dataclass
class CacheConfig:
    """Configuration for the build directory cache.

    Attributes:
        store: Object store name ("s3" or "gcs")
        signature_version: "2" or "4"; anything else means "4"
        bucket: Bucket holding the cache archives
        access_key_id: Store access key id
        secret_access_key: Store secret access key
        scheme: URL scheme for signed URLs
        region: Store region
        fetch_timeout: Lifetime of fetch URL signatures, in seconds
        push_timeout: Lifetime of push URL signatures, in seconds
        debug: Enable verbose transfer diagnostics when installing the client
        branch: Cache client distribution branch override
        edge: Install the cache client from its edge channel
        request_headers: Send push signatures as request headers (v4 only)
        directories: Directories to add to the cache
    """

    # Store
    store: str = "s3"
    signature_version: str = "4"
    bucket: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    scheme: str = "https"
    region: str = "us-east-1"

    # Timeouts
    fetch_timeout: int = 1200
    push_timeout: int = 3600

    # Cache client
    debug: bool = False
    branch: str = ""
    edge: bool = False
    request_headers: bool = False

    directories: List[str] = field(default_factory=list)

    # Parsed TOML the config was loaded from, by section
    _sections: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "CacheConfig":
        """Load configuration from TOML file.

        Args:
            path: Path to config file (defaults to standard location)

        Returns:
            CacheConfig instance with loaded values

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        if path is None:
            path = get_config_path()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "rb") as f:
            data = tomllib.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        """Build a config from parsed TOML data plus environment overrides."""
        config = cls()
        config._sections = data

        cache = data.get("cache", {})
        config.store = cache.get("store", config.store)
        config.signature_version = str(cache.get("signature_version", config.signature_version))
        config.fetch_timeout = int(cache.get("fetch_timeout", config.fetch_timeout))
        config.push_timeout = int(cache.get("push_timeout", config.push_timeout))
        config.debug = bool(cache.get("debug", config.debug))
        config.branch = cache.get("branch", config.branch) or ""
        config.edge = bool(cache.get("edge", config.edge))
        config.request_headers = bool(cache.get("request_headers", config.request_headers))
        directories = cache.get("directories", config.directories)
        if isinstance(directories, str):
            directories = [directories]
        config.directories = list(directories)

        # Store section may be picked by the environment, so resolve it first
        env_store = os.environ.get(ENV_OVERRIDES["store"])
        if env_store:
            config.store = env_store

        store = data.get(config.store, {})
        for key in STORE_KEYS:
            setattr(config, key, store.get(key, getattr(config, key)) or "")

        # Environment variables take precedence over file values
        for key, env_var in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                setattr(config, key, value)

        return config

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to TOML file.

        Values are merged into the existing file, so other store sections
        and keys this class does not manage are kept. The secret access key
        is never written.

        Args:
            path: Path to save config (defaults to standard location)
        """
        if path is None:
            path = get_config_path()

        # Ensure directory exists
        path.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {}
        if path.exists():
            with open(path, "rb") as f:
                data = tomllib.load(f)

        data.setdefault("cache", {}).update(
            {key: getattr(self, key) for key in CACHE_KEYS}
        )
        data.setdefault(self.store, {}).update(
            {key: getattr(self, key) for key in STORE_KEYS if key != "secret_access_key"}
        )

        with open(path, "wb") as f:
            tomli_w.dump(data, f)

        self._sections = data

    def store_options(self) -> Dict[str, str]:
        """Options of the configured store, with empty values dropped."""
        options = {
            "bucket": self.bucket,
            "access_key_id": self.access_key_id,
            "secret_access_key": self.secret_access_key,
            "scheme": self.scheme,
            "region": self.region,
        }
        return {key: value for key, value in options.items() if value}

    def missing_store_keys(self) -> List[str]:
        """Required store keys that are unset, in declaration order."""
        options = self.store_options()
        return [key for key in REQUIRED_STORE_KEYS if not options.get(key)]

    def _resolve_key(self, key: str) -> Optional[str]:
        """Map "key", "cache.key" or "<store>.key" to a field name."""
        section, _, name = key.rpartition(".")
        if not section:
            keys = CACHE_KEYS + STORE_KEYS
        elif section == "cache":
            keys = CACHE_KEYS
        elif section == self.store:
            keys = STORE_KEYS
        else:
            return None
        return name if name in keys else None

    def get(self, key: str, default: Optional[str] = None) -> Optional[Any]:
        """Get a configuration value by key.

        Accepts the same "section.key" form as ``set``.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        name = self._resolve_key(key)
        if name is None:
            return default
        return getattr(self, name)

    def set(self, key: str, value: str) -> None:
        """Set a configuration value by key, preserving its type.

        Supports the "section.key" form used in the TOML file
        (e.g., "cache.fetch_timeout" or "s3.bucket"). Store keys can only
        be set on the active store. Changing ``store`` reloads the store
        options from the new store's section.

        Args:
            key: Configuration key
            value: Configuration value

        Raises:
            ValueError: If the key is unknown, names an inactive store or
                the secret, or the value has the wrong type
        """
        name = self._resolve_key(key)
        if name is None:
            section = key.rpartition(".")[0]
            if section and section not in ("cache", self.store):
                raise ValueError(f"Invalid config key: {key} (inactive store '{section}')")
            raise ValueError(f"Invalid config key: {key}")
        if name == "secret_access_key":
            raise ValueError(
                f"The secret access key is not stored; set {ENV_OVERRIDES[name]} instead"
            )

        current = getattr(self, name)
        if isinstance(current, bool):
            new_value: Any = value.lower() in ("true", "1", "yes")
        elif isinstance(current, int):
            try:
                new_value = int(value)
            except ValueError:
                raise ValueError(f"Invalid integer for {key}: {value}") from None
        elif isinstance(current, list):
            new_value = [item.strip() for item in value.split(",") if item.strip()]
        else:
            new_value = value

        setattr(self, name, new_value)

        if name == "store":
            defaults = CacheConfig()
            section = self._sections.get(new_value, {})
            for store_key in STORE_KEYS:
                setattr(self, store_key, section.get(store_key, getattr(defaults, store_key)) or "")


def get_config_dir() -> Path:
    """Get the platform-specific config directory.

    Returns:
        Path to the config directory for dircache.
    """
    if sys.platform == "darwin" or sys.platform == "linux":
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "dircache"
        return Path.home() / ".config" / "dircache"
    elif sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "dircache"
        return Path.home() / "AppData" / "Roaming" / "dircache"
    else:
        return Path.home() / ".config" / "dircache"


def get_config_path() -> Path:
    """Get the path to the config.toml file."""
    return get_config_dir() / "config.toml"


def ensure_config_exists(path: Optional[Path] = None) -> CacheConfig:
    """Load the config, creating a default one if needed.

    Args:
        path: Config file path (defaults to standard location)

    Returns:
        CacheConfig instance
    """
    config_path = path or get_config_path()

    if config_path.exists():
        return CacheConfig.load(config_path)

    config = CacheConfig()
    config.save(config_path)
    return config
