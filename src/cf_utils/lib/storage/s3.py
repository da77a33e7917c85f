"""S3 storage operations.

Low-level helpers that work with S3 client.
Returns Result types for error handling.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from cf_utils.lib.errors import BucketEmptyError, S3WriteError, UploadError, UploadSourceError
from cf_utils.lib.result import Err, Ok, Result, collect

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

# S3 returns at most 1000 keys per listing and accepts at most 1000 per delete
PAGE_SIZE = 1000
DELETE_BATCH_SIZE = 1000
DEFAULT_MAX_WORKERS = 8


def write_object(s3: S3Client, bucket: str, key: str, data: bytes) -> Result[None, S3WriteError]:
    """Write data to S3."""
    try:
        s3.put_object(Bucket=bucket, Key=key, Body=data)
        logger.info(f"Successfully uploaded to s3://{bucket}/{key}")
        return Ok(None)
    except ClientError as e:
        return Err(S3WriteError(bucket, key, str(e)))


def list_objects(
    s3: S3Client, bucket: str, continuation_token: str | None = None
) -> dict[str, Any]:
    """One page (up to 1000 keys) of list_objects_v2."""
    kwargs: dict[str, Any] = {"Bucket": bucket, "MaxKeys": PAGE_SIZE}
    if continuation_token:
        kwargs["ContinuationToken"] = continuation_token
    return s3.list_objects_v2(**kwargs)


def list_object_versions(
    s3: S3Client,
    bucket: str,
    key: str,
    key_marker: str | None = None,
    version_marker: str | None = None,
) -> dict[str, Any]:
    """One page of version history for keys starting with `key`."""
    kwargs: dict[str, Any] = {"Bucket": bucket, "Prefix": key, "MaxKeys": PAGE_SIZE}
    if key_marker:
        kwargs["KeyMarker"] = key_marker
    if version_marker:
        kwargs["VersionIdMarker"] = version_marker
    return s3.list_object_versions(**kwargs)


def delete_objects(
    s3: S3Client, bucket: str, identifiers: list[dict[str, str]]
) -> Result[int, BucketEmptyError]:
    """Delete objects (optionally by version) in batches of 1000.

    Returns the number of deleted identifiers. Any per-object error reported
    by S3 fails the whole call.
    """
    deleted = 0
    for start in range(0, len(identifiers), DELETE_BATCH_SIZE):
        batch = identifiers[start : start + DELETE_BATCH_SIZE]
        try:
            response = s3.delete_objects(Bucket=bucket, Delete={"Objects": batch, "Quiet": True})
        except ClientError as e:
            return Err(BucketEmptyError(bucket, str(e)))

        errors = response.get("Errors", [])
        if errors:
            first = errors[0]
            return Err(
                BucketEmptyError(
                    bucket,
                    f"{len(errors)} object(s) not deleted, e.g. {first.get('Key')}: "
                    f"{first.get('Code')} {first.get('Message')}",
                )
            )
        deleted += len(batch)
    return Ok(deleted)


def _version_identifiers(page: dict[str, Any], key: str | None) -> list[dict[str, str]]:
    """Versions and delete markers in a listing page (only `key` if given)."""
    entries = page.get("Versions", []) + page.get("DeleteMarkers", [])
    return [
        {"Key": entry["Key"], "VersionId": entry["VersionId"]}
        for entry in entries
        if key is None or entry["Key"] == key
    ]


def delete_versions(
    s3: S3Client, bucket: str, key: str | None = None
) -> Result[int, BucketEmptyError]:
    """Delete every version and delete marker of `key` (or of the whole bucket).

    Version listing is scoped by prefix, so other keys sharing the prefix
    are skipped here; they are handled by their own call.
    """
    deleted = 0
    key_marker: str | None = None
    version_marker: str | None = None
    while True:
        try:
            page = list_object_versions(s3, bucket, key or "", key_marker, version_marker)
        except ClientError as e:
            return Err(BucketEmptyError(bucket, str(e)))

        identifiers = _version_identifiers(page, key)
        if identifiers:
            match delete_objects(s3, bucket, identifiers):
                case Err() as e:
                    return e
                case Ok(count):
                    deleted += count

        if not page.get("IsTruncated"):
            return Ok(deleted)
        key_marker = page.get("NextKeyMarker")
        version_marker = page.get("NextVersionIdMarker")


def _versioning_enabled(s3: S3Client, bucket: str) -> bool:
    response = s3.get_bucket_versioning(Bucket=bucket)
    return response.get("Status") in ("Enabled", "Suspended")


def empty_bucket(
    s3: S3Client, bucket: str, max_workers: int = DEFAULT_MAX_WORKERS
) -> Result[int, BucketEmptyError]:
    """Delete every object in a bucket, including all versions if versioned.

    A bucket that does not exist counts as empty. Returns the number of
    deleted keys/versions.
    """
    try:
        versioned = _versioning_enabled(s3, bucket)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "NoSuchBucket":
            logger.info(f"Bucket {bucket} does not exist, continuing...")
            return Ok(0)
        return Err(BucketEmptyError(bucket, str(e)))

    deleted = 0
    token: str | None = None
    while True:
        try:
            page = list_objects(s3, bucket, token)
        except ClientError as e:
            return Err(BucketEmptyError(bucket, str(e)))

        keys = [obj["Key"] for obj in page.get("Contents", [])]
        if keys:
            if versioned:
                with ThreadPoolExecutor(max_workers=max_workers) as executor:
                    result = collect(executor.map(lambda k: delete_versions(s3, bucket, k), keys))
                match result:
                    case Err() as e:
                        return e
                    case Ok(counts):
                        deleted += sum(counts)
            else:
                match delete_objects(s3, bucket, [{"Key": k} for k in keys]):
                    case Err() as e:
                        return e
                    case Ok(count):
                        deleted += count

        token = page.get("NextContinuationToken")
        if not token:
            break

    if versioned:
        # Keys whose latest version is a delete marker never show up in
        # list_objects_v2, but their history still blocks bucket deletion.
        match delete_versions(s3, bucket):
            case Err() as e:
                return e
            case Ok(count):
                deleted += count

    logger.info(f"Emptied bucket {bucket} ({deleted} deleted)")
    return Ok(deleted)


def iter_directory(source: Path, prefix: str | None = None) -> Iterator[tuple[str, Path]]:
    """Yield (key, path) for every file under source, walking iteratively."""
    base = f"{prefix.strip('/')}/" if prefix else ""
    pending = [source]
    while pending:
        directory = pending.pop()
        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                pending.append(entry)
            else:
                yield base + entry.relative_to(source).as_posix(), entry


def upload_directory(
    s3: S3Client, bucket: str, source: Path, prefix: str | None = None
) -> Result[int, UploadError]:
    """Upload a directory tree to S3. Returns the number of uploaded files."""
    if not source.is_dir() or not any(source.iterdir()):
        return Err(UploadSourceError(source))

    uploaded = 0
    for key, path in iter_directory(source, prefix):
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            with path.open("rb") as body:
                s3.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)
        except ClientError as e:
            return Err(S3WriteError(bucket, key, str(e)))
        logger.info(f"Successfully uploaded to s3://{bucket}/{key}")
        uploaded += 1
    return Ok(uploaded)
