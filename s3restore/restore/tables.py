# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Table Restorer - Recreate tables from tables.json and reload their data.

Each table is created empty from a header-only CSV, gets its attributes and
metadata back, then its data is transferred by the transfer engine. Aliases
are restored separately, after all tables exist.
"""

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

import aiofiles
import structlog

from s3restore.backup import TABLES_MANIFEST, load_manifest
from s3restore.core import RestoreState, RestoredBuckets
from s3restore.restore.metadata import apply_table_attributes_and_metadata
from s3restore.restore.transfer import TransferMode, transfer_table_data

logger = structlog.get_logger()


@dataclass
class TableRestoreResult:
    """Result of the table phase."""

    restored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    transfer_modes: Dict[str, TransferMode] = field(default_factory=dict)


async def write_header_file(work_dir: Path, table_id: str, columns: List[str]) -> Path:
    """Write a CSV containing only the header row."""
    buffer = io.StringIO()
    csv.writer(buffer, quoting=csv.QUOTE_ALL).writerow(columns)

    path = work_dir / f"{table_id}.header.csv"
    async with aiofiles.open(path, "w", newline="", encoding="utf-8") as f:
        await f.write(buffer.getvalue())
    return path


async def restore_tables(state: RestoreState, restored_buckets: RestoredBuckets) -> TableRestoreResult:
    """
    Restore all non-alias tables of the backup.

    Args:
        state: Runtime state
        restored_buckets: Bucket ids restored by the bucket phase

    Returns:
        TableRestoreResult with the Storage API table ids
    """
    api = state["api"]
    tables = await load_manifest(
        state["s3_client"], state["source_bucket"], state["base_path"], TABLES_MANIFEST
    )

    result = TableRestoreResult()

    for table_info in tables:
        if table_info.get("isAlias") is True:
            continue

        backup_table_id = table_info["id"]
        bucket_id = table_info["bucket"]["id"]

        if bucket_id not in restored_buckets:
            logger.warning("table_skipped", table_id=backup_table_id, bucket_id=bucket_id)
            result.skipped.append(backup_table_id)
            continue

        logger.info("table_restoring", table_id=backup_table_id)

        columns = list(table_info["columns"])
        header_path = await write_header_file(state["work_dir"], backup_table_id, columns)
        try:
            table_id = await api.create_table(
                bucket_id,
                table_info["name"],
                header_path,
                primary_key=",".join(table_info.get("primaryKey") or []),
            )
        finally:
            header_path.unlink(missing_ok=True)

        await apply_table_attributes_and_metadata(api, table_id, table_info)

        mode = await transfer_table_data(state, table_id, table_info["name"], columns)

        result.restored.append(table_id)
        result.transfer_modes[table_id] = mode

    logger.info(
        "tables_restored",
        restored=len(result.restored),
        skipped=len(result.skipped),
    )
    return result
