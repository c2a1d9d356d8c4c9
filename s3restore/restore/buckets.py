# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Bucket Restorer - Recreate storage buckets from buckets.json.

Linked buckets (shared from another project) are skipped. When backend
checking is enabled, every backend the backup needs is verified against
the project before the first bucket is created.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

import structlog

from s3restore.backup import BUCKETS_MANIFEST, load_manifest
from s3restore.config import BACKEND_CAPABILITY_FLAGS, BUCKET_NAME_PREFIX, Backend
from s3restore.core import RestoreState, RestoredBuckets
from s3restore.exceptions import MissingBackendCapability
from s3restore.restore.metadata import apply_bucket_attributes_and_metadata

logger = structlog.get_logger()


@dataclass
class BucketRestoreResult:
    """Result of the bucket phase."""

    restored_ids: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def restored(self) -> RestoredBuckets:
        """Ids gating the table and alias phases."""
        return frozenset(self.restored_ids)


def is_restorable_bucket(bucket_info: Dict[str, Any]) -> bool:
    """Linked buckets and buckets without the ``c-`` name prefix are not restored."""
    if bucket_info.get("sourceBucket") is not None:
        return False
    return bucket_info["name"].startswith(BUCKET_NAME_PREFIX)


def check_backends(token: Dict[str, Any], buckets: List[Dict[str, Any]]) -> None:
    """
    Verify the project owner has every backend the buckets use.

    Raises:
        MissingBackendCapability: On the first backend the project lacks
    """
    owner = token.get("owner") or {}
    for bucket_info in buckets:
        try:
            backend = Backend(bucket_info.get("backend"))
        except ValueError:
            continue

        flag = BACKEND_CAPABILITY_FLAGS[backend]
        if not owner.get(flag):
            raise MissingBackendCapability(
                backend.value,
                details={"bucket_id": bucket_info.get("id"), "capability": flag},
            )


async def restore_buckets(state: RestoreState, check_backend: bool = True) -> BucketRestoreResult:
    """
    Restore all buckets of the backup.

    Args:
        state: Runtime state
        check_backend: Verify and declare bucket backends

    Returns:
        BucketRestoreResult; ``restored`` gates the table and alias phases

    Raises:
        MissingBackendCapability: Before any bucket is created
    """
    api = state["api"]
    buckets = await load_manifest(
        state["s3_client"], state["source_bucket"], state["base_path"], BUCKETS_MANIFEST
    )

    if check_backend:
        check_backends(await api.verify_token(), buckets)

    result = BucketRestoreResult()

    for bucket_info in buckets:
        if not is_restorable_bucket(bucket_info):
            logger.warning("bucket_skipped_linked", bucket=bucket_info["name"])
            result.skipped.append(bucket_info["id"])
            continue

        logger.info("bucket_restoring", bucket=bucket_info["name"])

        bucket_id = bucket_info["id"]
        bucket_name = bucket_info["name"][len(BUCKET_NAME_PREFIX):]

        # Without the check the platform picks its default backend
        if check_backend:
            await api.create_bucket(
                bucket_name,
                bucket_info["stage"],
                bucket_info.get("description") or "",
                bucket_info.get("backend"),
            )
        else:
            await api.create_bucket(
                bucket_name,
                bucket_info["stage"],
                bucket_info.get("description") or "",
            )
        result.restored_ids.append(bucket_id)

        await apply_bucket_attributes_and_metadata(api, bucket_id, bucket_info)

    logger.info(
        "buckets_restored",
        restored=len(result.restored_ids),
        skipped=len(result.skipped),
    )
    return result
