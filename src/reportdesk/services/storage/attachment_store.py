"""
Durable storage for occurrence attachment images.

Two backends share one interface: a local directory (default) and an S3
bucket. Both return an opaque path string that only the same backend can
resolve again.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from ...config import Settings, get_settings

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "attachments"


def build_object_name(namespace: str, extension: str) -> str:
    """Random object name inside a namespace, e.g. attachments/3f2a...c1.jpg"""
    namespace = namespace.strip("/") or DEFAULT_NAMESPACE
    return f"{namespace}/{uuid.uuid4().hex}.{extension.lstrip('.')}"


class AttachmentStore:
    """Interface implemented by attachment storage backends"""

    backend = "abstract"

    def save(self, data: bytes, extension: str, content_type: Optional[str] = None) -> str:
        raise NotImplementedError

    def load(self, path: str) -> bytes:
        raise NotImplementedError

    def delete(self, path: str) -> None:
        raise NotImplementedError

    def check(self) -> Dict[str, Any]:
        """Readiness information for health checks"""
        raise NotImplementedError


class LocalAttachmentStore(AttachmentStore):
    """Store attachments below a root directory on the local filesystem."""

    backend = "local"

    def __init__(self, root_dir: str, namespace: str = DEFAULT_NAMESPACE):
        self.root_dir = Path(root_dir).resolve()
        self.namespace = namespace

    def _resolve(self, path: str) -> Path:
        target = (self.root_dir / path).resolve()
        if target != self.root_dir and self.root_dir not in target.parents:
            raise ValueError(f"Attachment path escapes storage root: {path}")
        return target

    def save(self, data: bytes, extension: str, content_type: Optional[str] = None) -> str:
        object_name = build_object_name(self.namespace, extension)
        target = self._resolve(object_name)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as handle:
            handle.write(data)
        logger.info(f"Stored attachment {object_name} ({len(data)} bytes) in {self.root_dir}")
        return object_name

    def load(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"Attachment not found: {path}")
        with open(target, "rb") as handle:
            return handle.read()

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink()
            logger.info(f"Deleted attachment {path}")
        except FileNotFoundError:
            logger.warning(f"Attachment already absent: {path}")

    def check(self) -> Dict[str, Any]:
        self.root_dir.mkdir(parents=True, exist_ok=True)
        writable = os.access(self.root_dir, os.W_OK)
        return {"backend": self.backend, "root_dir": str(self.root_dir), "available": writable}


class S3AttachmentStore(AttachmentStore):
    """Store attachments as objects in an S3 bucket."""

    backend = "s3"

    def __init__(self, bucket_name: str, region: str = "us-east-1",
                 prefix: str = DEFAULT_NAMESPACE):
        """
        Initialize the S3 store.

        Args:
            bucket_name: Bucket receiving attachment objects
            region: AWS region for S3 operations
            prefix: Key prefix for attachment objects
        """
        self.bucket_name = bucket_name
        self.region = region
        self.prefix = prefix

        try:
            self.s3_client = boto3.client('s3', region_name=region)
            logger.info(f"Initialized attachment store for bucket: {bucket_name}")
        except NoCredentialsError:
            logger.error("AWS credentials not found")
            raise

    def _key_from_path(self, path: str) -> str:
        expected = f"s3://{self.bucket_name}/"
        if not path.startswith(expected):
            raise ValueError(f"Attachment path does not belong to bucket {self.bucket_name}: {path}")
        return path[len(expected):]

    def save(self, data: bytes, extension: str, content_type: Optional[str] = None) -> str:
        s3_key = build_object_name(self.prefix, extension)
        upload_params = {
            'Bucket': self.bucket_name,
            'Key': s3_key,
            'Body': data,
            'ServerSideEncryption': 'AES256'
        }
        if content_type:
            upload_params['ContentType'] = content_type

        try:
            self.s3_client.put_object(**upload_params)
        except ClientError as e:
            error_code = e.response['Error']['Code']
            logger.error(f"S3 upload failed for {s3_key}: {error_code} - {e}")
            raise

        s3_uri = f"s3://{self.bucket_name}/{s3_key}"
        logger.info(f"Stored attachment {s3_uri} ({len(data)} bytes)")
        return s3_uri

    def load(self, path: str) -> bytes:
        s3_key = self._key_from_path(path)
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=s3_key)
        except ClientError as e:
            if e.response['Error']['Code'] in ('NoSuchKey', '404'):
                raise FileNotFoundError(f"Attachment not found: {path}") from e
            logger.error(f"S3 download failed for {s3_key}: {e}")
            raise
        return response['Body'].read()

    def delete(self, path: str) -> None:
        s3_key = self._key_from_path(path)
        self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
        logger.info(f"Deleted attachment {path}")

    def check(self) -> Dict[str, Any]:
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            available = True
        except ClientError as e:
            logger.warning(f"Attachment bucket {self.bucket_name} not reachable: {e}")
            available = False
        return {"backend": self.backend, "bucket": self.bucket_name, "available": available}


def build_attachment_store(settings: Settings) -> AttachmentStore:
    if settings.attachment_backend == "s3":
        return S3AttachmentStore(
            bucket_name=settings.attachment_s3_bucket,
            region=settings.attachment_s3_region,
            prefix=settings.attachment_s3_prefix,
        )
    return LocalAttachmentStore(settings.attachment_dir)


_store: Optional[AttachmentStore] = None


def get_attachment_store() -> AttachmentStore:
    """FastAPI dependency returning the configured attachment store"""
    global _store
    if _store is None:
        _store = build_attachment_store(get_settings())
    return _store
