# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Alias Restorer - Recreate alias tables from tables.json.

Runs after the table phase so that every source table exists.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

import structlog

from s3restore.backup import TABLES_MANIFEST, load_manifest
from s3restore.core import RestoreState, RestoredBuckets
from s3restore.restore.metadata import apply_table_attributes_and_metadata

logger = structlog.get_logger()


@dataclass
class AliasRestoreResult:
    """Result of the alias phase."""

    restored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def alias_options(table_info: Dict[str, Any]) -> Dict[str, Any]:
    """
    Optional create_alias_table arguments for an alias record.

    Columns are pinned only when auto-sync was explicitly turned off; a
    missing flag leaves auto-sync on.
    """
    options: Dict[str, Any] = {}
    if table_info.get("aliasFilter") is not None:
        options["alias_filter"] = table_info["aliasFilter"]
    if table_info.get("aliasColumnsAutoSync") is False:
        options["alias_columns"] = list(table_info["columns"])
    return options


async def restore_table_aliases(
    state: RestoreState, restored_buckets: RestoredBuckets
) -> AliasRestoreResult:
    """
    Restore all alias tables of the backup.

    Args:
        state: Runtime state
        restored_buckets: Bucket ids restored by the bucket phase

    Returns:
        AliasRestoreResult
    """
    api = state["api"]
    tables = await load_manifest(
        state["s3_client"], state["source_bucket"], state["base_path"], TABLES_MANIFEST
    )

    result = AliasRestoreResult()

    for table_info in tables:
        if table_info.get("isAlias") is not True:
            continue

        table_id = table_info["id"]
        bucket_id = table_info["bucket"]["id"]

        if bucket_id not in restored_buckets:
            logger.warning("alias_skipped", table_id=table_id, bucket_id=bucket_id)
            result.skipped.append(table_id)
            continue

        logger.info("alias_restoring", table_id=table_id)

        await api.create_alias_table(
            bucket_id,
            table_info["sourceTable"]["id"],
            table_info["name"],
            **alias_options(table_info),
        )

        await apply_table_attributes_and_metadata(api, table_id, table_info)
        result.restored.append(table_id)

    logger.info(
        "aliases_restored",
        restored=len(result.restored),
        skipped=len(result.skipped),
    )
    return result
