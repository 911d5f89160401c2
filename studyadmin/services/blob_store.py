"""
Blob storage for uploaded images (partner logos).

Two backends behind one `upload(bucket, key, data, content_type)` call:
- LocalBlobStore: files under UPLOAD_FOLDER, served by the admin blueprint
- S3BlobStore:    any S3-compatible bucket through boto3; objects are public-read
"""
from __future__ import annotations

import abc
import logging
import os
from pathlib import Path
from typing import Optional

import boto3
import botocore.config
import botocore.exceptions
from werkzeug.utils import secure_filename

from .errors import StoreError

logger = logging.getLogger(__name__)


class BlobStore(abc.ABC):
    @abc.abstractmethod
    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Store `data` and return its public URL."""


class LocalBlobStore(BlobStore):
    def __init__(self, root: str, url_base: str = "/admin/uploads"):
        self.root = Path(root)
        self.url_base = url_base.rstrip("/")

    def path_for(self, bucket: str, key: str) -> Path:
        bucket, key = secure_filename(bucket), secure_filename(key)
        if not bucket or not key:
            raise StoreError("Invalid blob location")
        return self.root / bucket / key

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        path = self.path_for(bucket, key)
        if path.exists():
            # same semantics as upsert=False on the hosted bucket
            raise StoreError(f"Object {bucket}/{key} already exists")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StoreError(f"Upload failed: {e}") from e
        return f"{self.url_base}/{path.parent.name}/{path.name}"


class S3BlobStore(BlobStore):
    def __init__(
        self,
        *,
        access_key: Optional[str],
        secret_key: Optional[str],
        region: str,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        client=None,
    ):
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url
        self.client = client or boto3.client(
            "s3",
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            endpoint_url=endpoint_url,
            config=botocore.config.Config(signature_version="s3v4"),
        )
        self._known_buckets = set()

    def _ensure_bucket(self, bucket: str) -> None:
        if bucket in self._known_buckets:
            return
        try:
            self.client.head_bucket(Bucket=bucket)
        except botocore.exceptions.ClientError:
            logger.info("creating bucket %s", bucket)
            kwargs = {"Bucket": bucket}
            if self.region and self.region != "us-east-1":
                kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
            self.client.create_bucket(**kwargs)
        self._known_buckets.add(bucket)

    def public_url(self, bucket: str, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{bucket}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{bucket}/{key}"
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        try:
            self._ensure_bucket(bucket)
            self.client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="max-age=3600",
                ACL="public-read",
            )
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise StoreError(f"Upload failed: {e}") from e
        return self.public_url(bucket, key)


def blob_store_from_config(config) -> BlobStore:
    backend = (config.get("BLOB_BACKEND") or "local").lower()
    if backend == "s3":
        return S3BlobStore(
            access_key=config.get("S3_ACCESS_KEY"),
            secret_key=config.get("S3_SECRET_KEY"),
            region=config.get("S3_REGION") or "eu-central-1",
            endpoint_url=config.get("S3_ENDPOINT_URL"),
            public_base_url=config.get("S3_PUBLIC_BASE_URL"),
        )
    root = config.get("UPLOAD_FOLDER") or os.path.join(os.getcwd(), "uploads")
    return LocalBlobStore(root)
