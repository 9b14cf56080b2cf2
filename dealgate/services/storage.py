"""S3 storage collaborator: presigned upload/download URLs and watermark links."""

import hashlib
import hmac
import time
import uuid
from urllib.parse import urlencode, urlsplit, urlunsplit

import boto3
import structlog
from botocore.config import Config as BotoConfig

from dealgate.core.config import settings

logger = structlog.get_logger()


def dataroom_key(data_room_id: uuid.UUID, document_id: uuid.UUID, file_name: str) -> str:
    return f"dataroom/{data_room_id}/{document_id}/{_safe_name(file_name)}"


def readiness_key(listing_id: uuid.UUID, document_id: uuid.UUID, file_name: str) -> str:
    return f"readiness/{listing_id}/{document_id}/{_safe_name(file_name)}"


def _safe_name(file_name: str) -> str:
    return file_name.replace("/", "_").replace("\\", "_").strip() or "file"


class S3Storage:
    """Thin wrapper over boto3 presigning, configured for MinIO / AWS."""

    def __init__(
        self,
        bucket: str | None = None,
        ttl_seconds: int | None = None,
        client=None,
    ) -> None:
        self.bucket = bucket or settings.AWS_S3_BUCKET
        self.ttl_seconds = ttl_seconds or settings.PRESIGNED_URL_TTL_SECONDS
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=settings.AWS_S3_ENDPOINT_URL,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=settings.AWS_S3_REGION,
                config=BotoConfig(signature_version="s3v4"),
            )
        return self._client

    def presign_upload(self, key: str, content_type: str) -> str:
        return self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=self.ttl_seconds,
        )

    def presign_download(self, key: str, filename: str, inline: bool = False) -> str:
        disposition = "inline" if inline else "attachment"
        return self.client.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "ResponseContentDisposition": f'{disposition}; filename="{filename}"',
            },
            ExpiresIn=self.ttl_seconds,
        )

    def watermark_url(self, key: str, subject: str | None) -> str | None:
        """Signed link to the external watermark service, or None when not configured."""
        if not settings.WATERMARK_BASE_URL:
            return None
        return build_watermark_url(
            settings.WATERMARK_BASE_URL,
            settings.WATERMARK_SIGNING_SECRET,
            self.bucket,
            key,
            subject or "viewer",
            ts=str(int(time.time() * 1000)),
        )


def build_watermark_url(
    base_url: str,
    secret: str | None,
    bucket: str,
    key: str,
    subject: str,
    ts: str,
) -> str:
    payload = f"{key}|{subject}|{ts}"
    if secret:
        sig = hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()
    else:
        sig = "unsigned"
    parts = urlsplit(base_url)
    query = "&".join(
        q for q in (parts.query, urlencode({"bucket": bucket, "key": key, "subject": subject, "ts": ts, "sig": sig})) if q
    )
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def get_storage() -> S3Storage:
    return S3Storage()
