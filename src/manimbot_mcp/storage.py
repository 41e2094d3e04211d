"""Publishing rendered videos: S3 when a bucket is configured, a local directory otherwise."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import get_config
from .errors import StorageError

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"


def object_url(bucket: str, region: str, key: str) -> str:
    """Public virtual-hosted-style URL for an S3 object."""
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


def _upload_s3(path: Path, bucket: str, region: str, key: str) -> None:
    client = boto3.client("s3", region_name=region)
    with path.open("rb") as fh:
        client.put_object(Bucket=bucket, Key=key, Body=fh, ContentType=VIDEO_CONTENT_TYPE)


def _copy_local(path: Path, target_dir: Path) -> Path:
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / path.name
    shutil.copy2(path, target)
    return target


async def publish_video(path: str | Path) -> str:
    """Publish the video at *path* and return the URL it can be fetched from.

    The boto3 call is blocking, so it runs in a worker thread.

    Raises:
        StorageError: The file is missing or the upload/copy failed.
    """
    cfg = get_config()
    path = Path(path)
    if not path.is_file():
        raise StorageError(f"video file not found: {path}")

    if cfg.s3_bucket:
        key = f"{cfg.s3_prefix}{path.name}"
        try:
            await asyncio.to_thread(_upload_s3, path, cfg.s3_bucket, cfg.s3_region, key)
        except (BotoCoreError, ClientError, OSError) as exc:
            logger.error("S3 upload of %s failed: %s", key, exc)
            raise StorageError(f"failed to upload video: {exc}") from exc
        url = object_url(cfg.s3_bucket, cfg.s3_region, key)
        logger.info("Uploaded %s to s3://%s/%s", path.name, cfg.s3_bucket, key)
        return url

    try:
        target = await asyncio.to_thread(_copy_local, path, cfg.resolved_publish_dir)
    except OSError as exc:
        logger.error("Local publish of %s failed: %s", path, exc)
        raise StorageError(f"failed to store video: {exc}") from exc
    logger.info("Published %s to %s", path.name, target)
    return target.resolve().as_uri()
