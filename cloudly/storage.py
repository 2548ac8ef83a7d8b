# Filename: cloudly/storage.py
import logging
import re
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import settings
from .models import FileType

logger = logging.getLogger(__name__)

OFFICE_MIME_TYPES = {
    "application/pdf": FileType.PDF,
    "application/msword": FileType.DOC,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FileType.DOCX,
    "application/vnd.ms-excel": FileType.XLS,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileType.XLSX,
    "application/vnd.ms-powerpoint": FileType.PPT,
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": FileType.PPTX,
    "text/plain": FileType.TXT,
}

ARCHIVE_MARKERS = ("zip", "rar", "tar")

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


class StorageError(Exception):
    """Raised when the object storage provider rejects or fails a call."""


def derive_file_type(mime_type: Optional[str]) -> FileType:
    mime_type = mime_type or ""
    if mime_type.startswith("image/"):
        return FileType.IMAGE
    if mime_type.startswith("video/"):
        return FileType.VIDEO
    if mime_type.startswith("audio/"):
        return FileType.AUDIO
    if any(marker in mime_type for marker in ARCHIVE_MARKERS):
        return FileType.ARCHIVE
    return OFFICE_MIME_TYPES.get(mime_type, FileType.OTHER)


def sanitize_file_name(file_name: str) -> str:
    return _UNSAFE_KEY_CHARS.sub("_", file_name)


def build_object_key(user_id: str, file_name: str, folder_id: Optional[str] = None, timestamp_ms: Optional[int] = None) -> str:
    """users/{userId}/{folderId/}{epochMillis}-{sanitized name}"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    folder_path = f"{folder_id}/" if folder_id else ""
    return f"users/{user_id}/{folder_path}{timestamp_ms}-{sanitize_file_name(file_name)}"


@dataclass
class BlobStream:
    body: object  # botocore StreamingBody
    content_type: str
    content_length: Optional[int]

    def iter_chunks(self, chunk_size: int) -> Iterator[bytes]:
        try:
            for chunk in self.body.iter_chunks(chunk_size):
                yield chunk
        finally:
            self.body.close()


class BlobGateway:
    """Thin wrapper around an S3 client scoped to one bucket."""

    def __init__(self, client, bucket: str, region: str):
        self.client = client
        self.bucket = bucket
        self.region = region

    def presign_upload(self, key: str, content_type: Optional[str], expires_in: int = 3600) -> str:
        try:
            return self.client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": key,
                    "ContentType": content_type or "application/octet-stream",
                },
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Error generating PUT signed URL for %s: %s", key, e)
            raise StorageError(f"Presigned upload URL generation failed: {e}") from e

    def presign_download(self, key: str, expires_in: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Error generating GET signed URL for %s: %s", key, e)
            raise StorageError(f"Presigned download URL generation failed: {e}") from e

    def delete_object(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error("Error deleting object %s: %s", key, e)
            raise StorageError(f"S3 delete failed: {e}") from e
        logger.info("Deleted object: %s", key)

    def open_stream(self, key: str) -> BlobStream:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error("Error getting object stream for %s: %s", key, e)
            raise StorageError(f"S3 get failed: {e}") from e
        return BlobStream(
            body=response["Body"],
            content_type=response.get("ContentType") or "application/octet-stream",
            content_length=response.get("ContentLength"),
        )

    def public_url(self, key: str) -> str:
        # only reachable when the bucket itself allows public reads
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def make_s3_client():
    if not settings.aws_access_key_id or not settings.aws_secret_access_key:
        logger.warning("AWS credentials not configured. S3 operations will fail.")
    return boto3.client(
        "s3",
        region_name=settings.aws_region,
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        config=Config(signature_version="s3v4"),
    )


@lru_cache
def get_storage() -> BlobGateway:
    """Process-wide gateway (dependency)."""
    return BlobGateway(make_s3_client(), settings.s3_bucket_name, settings.aws_region)
