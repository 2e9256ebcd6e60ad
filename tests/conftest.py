"""Shared fixtures for dircache tests."""

from datetime import datetime, timezone

import pytest

from dircache.config import ENV_OVERRIDES, CacheConfig
from dircache.models import JobIdentity
from dircache.shell import ShellScript


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's DIRCACHE_* variables out of every test."""
    for env_var in ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)
    for env_var in ("DIRCACHE_REPOSITORY_ID", "DIRCACHE_BRANCH", "DIRCACHE_PULL_REQUEST"):
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def start():
    """Fixed signing clock."""
    return datetime(2024, 3, 1, 12, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def config():
    """Complete S3 configuration."""
    return CacheConfig(
        store="s3",
        signature_version="4",
        bucket="cache-bucket",
        access_key_id="AKIDEXAMPLE",
        secret_access_key="secret-key",
        region="us-east-1",
        fetch_timeout=600,
        push_timeout=1800,
    )


@pytest.fixture
def job():
    """Push build on a feature branch."""
    return JobIdentity(repository_id="42", branch="feature")


@pytest.fixture
def pr_job():
    """Pull request build targeting a feature branch."""
    return JobIdentity(repository_id="42", branch="feature", pull_request="7")


@pytest.fixture
def sh():
    """Recording shell."""
    return ShellScript()


@pytest.fixture
def config_file(tmp_path):
    """Config file with a complete S3 section."""
    path = tmp_path / "config.toml"
    path.write_text(
        """
[cache]
store = "s3"
signature_version = "4"
fetch_timeout = 600
push_timeout = 1800
directories = ["vendor/bundle", "node_modules"]

[s3]
bucket = "cache-bucket"
region = "us-east-1"
access_key_id = "AKIDEXAMPLE"
secret_access_key = "secret-key"
"""
    )
    return path
