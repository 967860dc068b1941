"""S3-compatible storage backend (AWS, Wasabi, MinIO)."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING, Any

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError

from mongodb_s3_backup.exceptions import UploadError

if TYPE_CHECKING:
    from mongodb_s3_backup.config import S3Settings

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/gzip"

# put_object caps a single request at 5 GB
MULTIPART_THRESHOLD = 256 * 1024 * 1024


def object_key(destination: str, target_name: str) -> str:
    """Join the destination prefix and file name into an S3 key.

    S3 keys are relative to the bucket, so a leading "/" (the root prefix)
    is dropped.
    """
    return posixpath.join(destination or "/", target_name).lstrip("/")


def _status_of(response: dict[str, Any]) -> int | None:
    return response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def _rejected(e: ClientError) -> UploadError:
    status = _status_of(e.response)
    error = e.response.get("Error", {})
    logger.error(f"{error.get('Code', 'Error')}: {error.get('Message', e)}")
    return UploadError(f"Expected a 200 response from S3, got {status}", status_code=status)


class S3Uploader:
    """Upload archives to a single bucket."""

    def __init__(
        self,
        settings: S3Settings,
        client: Any | None = None,
        multipart_threshold: int = MULTIPART_THRESHOLD,
    ) -> None:
        self.bucket = settings.bucket
        self.destination = settings.destination
        self.multipart_threshold = multipart_threshold
        self.client = client or boto3.client(
            "s3",
            aws_access_key_id=settings.key,
            aws_secret_access_key=settings.secret,
            region_name=settings.region,
            endpoint_url=settings.endpoint_url,
        )

    def upload(self, local_dir: str | Path, target_name: str) -> str:
        """Upload ``local_dir/target_name`` and return the object key.

        Small archives go up in one put_object call, where anything other
        than a 200 response raises UploadError. Archives at or above the
        multipart threshold use a managed multipart upload.
        """
        source = Path(local_dir) / target_name
        key = object_key(self.destination, target_name)

        logger.info(f"Attempting to upload {target_name} to the {self.bucket} s3 bucket")

        try:
            size = source.stat().st_size
        except OSError as e:
            raise UploadError(f"Upload of {target_name} failed: {e}") from e

        if size >= self.multipart_threshold:
            self._upload_multipart(source, key)
        else:
            self._put(source, key)

        logger.info(f"Successfully uploaded to s3://{self.bucket}/{key}")
        return key

    def _put(self, source: Path, key: str) -> None:
        try:
            with open(source, "rb") as body:
                response = self.client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=body,
                    ContentType=CONTENT_TYPE,
                )
        except ClientError as e:
            raise _rejected(e) from e
        except (BotoCoreError, OSError) as e:
            raise UploadError(f"Upload of {source.name} failed: {e}") from e

        status = _status_of(response)
        if status != 200:
            logger.error(f"Unexpected S3 response: {response.get('ResponseMetadata', {})}")
            raise UploadError(f"Expected a 200 response from S3, got {status}", status_code=status)

        if etag := response.get("ETag"):
            logger.info(f"ETag {etag}")

    def _upload_multipart(self, source: Path, key: str) -> None:
        logger.info(f"Using multipart upload for {source.name}")
        try:
            self.client.upload_file(
                str(source),
                self.bucket,
                key,
                ExtraArgs={"ContentType": CONTENT_TYPE},
                Config=TransferConfig(multipart_threshold=self.multipart_threshold),
            )
        except S3UploadFailedError as e:
            cause = e.__cause__ or e.__context__
            status = _status_of(cause.response) if isinstance(cause, ClientError) else None
            logger.error(str(e))
            raise UploadError(f"Multipart upload of {source.name} failed: {e}", status_code=status) from e
        except ClientError as e:
            raise _rejected(e) from e
        except (BotoCoreError, OSError) as e:
            raise UploadError(f"Upload of {source.name} failed: {e}") from e
