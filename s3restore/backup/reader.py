# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Reader - Read access to a project backup stored in S3.

Backup layout, relative to the base path:

    buckets.json
    tables.json
    configurations.json
    configurations/<componentId>/<configurationId>.json
    <bucket/id/as/path>/<table>[.part_<N>.csv.gz]
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import aiofiles
import structlog

from s3restore.exceptions import DecodeFailure, TransferFailure

logger = structlog.get_logger()

BUCKETS_MANIFEST = "buckets.json"
TABLES_MANIFEST = "tables.json"
CONFIGURATIONS_MANIFEST = "configurations.json"

# Read slices in 8 MiB chunks
DOWNLOAD_CHUNK_SIZE = 8 * 1024 * 1024


def configuration_key(base_path: str, component_id: str, configuration_id: str) -> str:
    """Key of a single configuration document in the backup."""
    return f"{base_path}configurations/{component_id}/{configuration_id}.json"


async def read_object(s3_client: Any, bucket: str, key: str) -> bytes:
    """
    Read a whole S3 object into memory.

    Raises:
        TransferFailure: If the object cannot be read
    """
    try:
        response = await s3_client.get_object(Bucket=bucket, Key=key)
        async with response["Body"] as stream:
            return await stream.read()
    except Exception as e:
        raise TransferFailure(
            f"Failed to download backup object: {e}",
            details={"bucket": bucket, "key": key},
        ) from e


async def download_json(s3_client: Any, bucket: str, key: str) -> Any:
    """
    Download and decode a JSON document.

    Objects decode to plain dicts and lists, so an empty object and an empty
    array stay distinguishable.

    Raises:
        TransferFailure: If the object cannot be read
        DecodeFailure: If the object is not valid JSON
    """
    raw = await read_object(s3_client, bucket, key)
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeFailure(
            f"Invalid JSON in backup object: {e}",
            details={"bucket": bucket, "key": key},
        ) from e


async def load_manifest(
    s3_client: Any, bucket: str, base_path: str, name: str
) -> List[Dict[str, Any]]:
    """
    Download one of the backup manifests (buckets, tables, configurations).

    Raises:
        DecodeFailure: If the manifest is not a JSON list
    """
    key = f"{base_path}{name}"
    logger.info("manifest_downloading", bucket=bucket, key=key)

    manifest = await download_json(s3_client, bucket, key)
    if not isinstance(manifest, list):
        raise DecodeFailure(
            "Backup manifest must be a JSON list",
            details={"bucket": bucket, "key": key, "type": type(manifest).__name__},
        )
    return manifest


async def list_objects(s3_client: Any, bucket: str, prefix: str) -> List[Dict[str, Any]]:
    """
    List objects under a prefix, in the order S3 returns them.

    Returns:
        List of {"key": ..., "size": ...}

    Raises:
        TransferFailure: If listing fails
    """
    objects: List[Dict[str, Any]] = []
    try:
        paginator = s3_client.get_paginator("list_objects_v2")
        async for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                objects.append({"key": obj["Key"], "size": obj.get("Size", 0)})
    except Exception as e:
        raise TransferFailure(
            f"Failed to list backup objects: {e}",
            details={"bucket": bucket, "prefix": prefix},
        ) from e
    return objects


async def download_to_file(s3_client: Any, bucket: str, key: str, target: Path) -> int:
    """
    Stream an S3 object to a local file.

    Returns:
        Number of bytes written

    Raises:
        TransferFailure: If the download fails
    """
    written = 0
    try:
        response = await s3_client.get_object(Bucket=bucket, Key=key)
        async with response["Body"] as stream:
            async with aiofiles.open(target, "wb") as f:
                while True:
                    chunk = await stream.read(DOWNLOAD_CHUNK_SIZE)
                    if not chunk:
                        break
                    await f.write(chunk)
                    written += len(chunk)
    except Exception as e:
        raise TransferFailure(
            f"Failed to download backup object: {e}",
            details={"bucket": bucket, "key": key, "target": str(target)},
        ) from e

    logger.debug("object_downloaded", key=key, target=str(target), size=written)
    return written
