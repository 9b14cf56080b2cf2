"""Tests for storage keys, presigning and watermark links."""

import hashlib
import hmac
import uuid
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

from dealgate.core.config import settings
from dealgate.services.storage import (
    S3Storage,
    build_watermark_url,
    dataroom_key,
    readiness_key,
)

ROOM = uuid.UUID("00000000-0000-0000-0000-0000000000aa")
DOC = uuid.UUID("00000000-0000-0000-0000-0000000000bb")


def test_keys_are_scoped_and_sanitised() -> None:
    assert dataroom_key(ROOM, DOC, "q3/report.pdf") == f"dataroom/{ROOM}/{DOC}/q3_report.pdf"
    assert readiness_key(ROOM, DOC, "  ") == f"readiness/{ROOM}/{DOC}/file"


def test_presign_download_sets_disposition() -> None:
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://s3.test/signed"
    storage = S3Storage(bucket="rooms", ttl_seconds=120, client=client)

    assert storage.presign_download("k", "report.pdf", inline=True) == "https://s3.test/signed"
    client.generate_presigned_url.assert_called_once_with(
        "get_object",
        Params={
            "Bucket": "rooms",
            "Key": "k",
            "ResponseContentDisposition": 'inline; filename="report.pdf"',
        },
        ExpiresIn=120,
    )


def test_presign_upload() -> None:
    client = MagicMock()
    storage = S3Storage(bucket="rooms", ttl_seconds=60, client=client)
    storage.presign_upload("k", "application/pdf")
    client.generate_presigned_url.assert_called_once_with(
        "put_object",
        Params={"Bucket": "rooms", "Key": "k", "ContentType": "application/pdf"},
        ExpiresIn=60,
    )


def test_watermark_url_is_signed() -> None:
    url = build_watermark_url(
        "https://wm.test/render?v=2", "s3cret", "rooms", "dataroom/a/b.pdf", "buyer@example.com", ts="1700000000000"
    )
    parts = urlsplit(url)
    query = parse_qs(parts.query)
    expected = hmac.new(
        b"s3cret", b"dataroom/a/b.pdf|buyer@example.com|1700000000000", hashlib.sha256
    ).hexdigest()

    assert parts.netloc == "wm.test"
    assert query["v"] == ["2"]
    assert query["key"] == ["dataroom/a/b.pdf"]
    assert query["sig"] == [expected]


def test_watermark_url_without_secret() -> None:
    url = build_watermark_url("https://wm.test/render", None, "rooms", "k", "viewer", ts="1")
    assert parse_qs(urlsplit(url).query)["sig"] == ["unsigned"]


def test_watermark_disabled_without_base_url() -> None:
    storage = S3Storage(bucket="rooms", client=MagicMock())
    with patch.object(settings, "WATERMARK_BASE_URL", None):
        assert storage.watermark_url("k", "buyer@example.com") is None


def test_watermark_enabled_with_base_url() -> None:
    storage = S3Storage(bucket="rooms", client=MagicMock())
    with patch.object(settings, "WATERMARK_BASE_URL", "https://wm.test/render"):
        url = storage.watermark_url("k", None)
    assert parse_qs(urlsplit(url).query)["subject"] == ["viewer"]
