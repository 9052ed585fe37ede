"""Tests for local signed URLs."""

from datetime import datetime, timedelta, timezone

import pytest

from packages.filesystem import signer as signer_module
from packages.filesystem.signer import LocalUrlSigner

SECRET = "signer-secret-for-tests-with-32-bytes"
BASE_URL = "http://localhost:8000"


@pytest.fixture
def signer() -> LocalUrlSigner:
    return LocalUrlSigner(secret=SECRET, app_base_url=BASE_URL)


class TestBuildUrl:
    """Tests for build_url_to_be_signed."""

    def test_encodes_filepath(self, signer):
        """Should encode the whole filepath into one path segment."""
        assert (
            signer.build_url_to_be_signed("private/docs/a b.pdf")
            == f"{BASE_URL}/private-file/view/private%2Fdocs%2Fa%20b.pdf"
        )

    def test_strips_trailing_slash_of_base_url(self):
        """Should not produce a double slash."""
        signer = LocalUrlSigner(secret=SECRET, app_base_url=f"{BASE_URL}/")
        assert signer.build_url_to_be_signed("a.txt") == f"{BASE_URL}/private-file/view/a.txt"


class TestTtl:
    """Tests for TTL resolution."""

    def test_explicit_ttl(self, signer):
        """Should prefer the explicit TTL."""
        assert signer.get_ttl(60) == 60

    def test_configured_default(self):
        """Should fall back to the configured default."""
        assert LocalUrlSigner(SECRET, BASE_URL, default_ttl_seconds=120).get_ttl() == 120

    def test_builtin_default(self, signer):
        """Should fall back to one hour."""
        assert signer.get_ttl() == 3600


class TestSignAndVerify:
    """Tests for sign and verify."""

    def test_sign_then_verify(self, signer):
        """Should verify a freshly signed URL."""
        signed_url = signer.sign(signer.build_url_to_be_signed("private/a.txt"))

        assert "?hash=" in signed_url
        assert signer.verify(signed_url) is True

    def test_expired(self, signer, monkeypatch):
        """Should reject a URL whose TTL has elapsed."""
        two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
        monkeypatch.setattr(signer_module, "_utcnow", lambda: two_hours_ago)

        signed_url = signer.sign(signer.build_url_to_be_signed("private/a.txt"), ttl_seconds=60)

        assert signer.verify(signed_url) is False

    def test_tampered_hash(self, signer):
        """Should reject a URL whose hash was modified."""
        url = signer.build_url_to_be_signed("private/a.txt")
        token = signer.sign(url).split("?hash=", 1)[1]
        header, payload, signature = token.split(".")
        signature = ("B" if signature[0] == "A" else "A") + signature[1:]

        assert signer.verify(f"{url}?hash={header}.{payload}.{signature}") is False

    def test_other_file(self, signer):
        """Should reject a hash issued for another file."""
        signed_url = signer.sign(signer.build_url_to_be_signed("private/a.txt"))
        token = signed_url.split("?hash=", 1)[1]
        forged = f"{signer.build_url_to_be_signed('private/b.txt')}?hash={token}"

        assert signer.verify(forged) is False

    def test_other_secret(self, signer):
        """Should reject a hash signed with another secret."""
        other = LocalUrlSigner(secret="another-secret-for-tests-with-32-bytes", app_base_url=BASE_URL)
        signed_url = other.sign(other.build_url_to_be_signed("private/a.txt"))

        assert signer.verify(signed_url) is False

    def test_missing_hash(self, signer):
        """Should reject a URL without a hash."""
        assert signer.verify(signer.build_url_to_be_signed("private/a.txt")) is False
        assert signer.verify(signer.build_url_to_be_signed("private/a.txt") + "?x=1") is False

    def test_keeps_existing_query(self, signer):
        """Should sign URLs that already carry a query string."""
        signed_url = signer.sign(f"{BASE_URL}/private-file/view/a.txt?download=1")

        assert "&hash=" in signed_url
        assert signer.verify(signed_url) is True

    def test_sign_without_secret(self):
        """Should refuse to sign without a secret."""
        with pytest.raises(ValueError):
            LocalUrlSigner(secret="", app_base_url=BASE_URL).sign(f"{BASE_URL}/x")

    def test_verify_without_secret(self):
        """Should never verify without a secret."""
        assert LocalUrlSigner(secret="", app_base_url=BASE_URL).verify(f"{BASE_URL}/x?hash=a") is False
