"""Tests for dircache value objects."""

import dataclasses

import pytest

from dircache.models import JobIdentity, KeyPair, Location, SignedRequest
from dircache.stores import gcs_host, s3_host


class TestKeyPair:
    """Tests for KeyPair."""

    def test_is_immutable(self):
        """Fields cannot be reassigned."""
        pair = KeyPair("id", "secret")
        with pytest.raises(dataclasses.FrozenInstanceError):
            pair.secret = "other"

    def test_repr_hides_secret(self):
        """The secret never shows up in reprs (and therefore logs)."""
        pair = KeyPair("AKID", "very-secret")
        assert "very-secret" not in repr(pair)
        assert "AKID" in repr(pair)


class TestLocation:
    """Tests for Location."""

    def test_hostname_uses_strategy(self):
        """Hostname is the bucket prefixed to the strategy's host."""
        location = Location("https", "us-east-1", "bucket", "/a.tgz", s3_host)
        assert location.hostname() == "bucket.s3.amazonaws.com"

    def test_hostname_with_region(self):
        """The region is passed to the strategy."""
        location = Location("https", "eu-west-1", "bucket", "/a.tgz", s3_host)
        assert location.hostname() == "bucket.s3-eu-west-1.amazonaws.com"

    def test_hostname_gcs(self):
        location = Location("https", "us-east-1", "bucket", "/a.tgz", gcs_host)
        assert location.hostname() == "bucket.storage.googleapis.com"


class TestJobIdentity:
    """Tests for JobIdentity."""

    def test_group_is_branch_for_push_builds(self):
        job = JobIdentity(repository_id="1", branch="feature")
        assert job.group == "feature"
        assert job.is_pull_request is False

    def test_group_for_pull_requests(self):
        job = JobIdentity(repository_id="1", branch="feature", pull_request="12")
        assert job.group == "PR.12"
        assert job.is_pull_request is True

    def test_empty_pull_request_is_not_a_pull_request(self):
        job = JobIdentity(repository_id="1", branch="feature", pull_request="")
        assert job.group == "feature"

    def test_default_branch(self):
        assert JobIdentity(repository_id="1", branch="master").is_default_branch
        assert not JobIdentity(repository_id="1", branch="dev").is_default_branch
        assert JobIdentity(repository_id="1", branch="main", default_branch="main").is_default_branch


class TestSignedRequest:
    """Tests for SignedRequest."""

    def test_str_is_uri(self):
        request = SignedRequest(uri="https://example.com/a")
        assert str(request) == "https://example.com/a"
        assert request.headers == ()
