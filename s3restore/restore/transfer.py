# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Table Data Transfer Engine - Move exported table data back into a table.

A table's backup data is either:

- one gzipped CSV with a header row (``<bucket/path>/<table>.csv.gz`` or
  similar), imported through the direct path, or
- a run of headerless slices ``<bucket/path>/<table>.part_<N>.csv.gz``,
  imported through the sliced path: each slice is re-uploaded with
  federated credentials, a transfer manifest listing the slices is
  uploaded last, and the import job maps the data onto the table columns.

Only one slice is on local disk at a time. A failure aborts the table
without cleaning up slices already uploaded to the federated target.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

import aiofiles
import structlog

from s3restore.backup import download_to_file, list_objects
from s3restore.core import RestoreState
from s3restore.exceptions import S3RestoreError, TransferFailure
from s3restore.storage_api import federated_s3_client, server_side_encryption_args

logger = structlog.get_logger()

# Key suffix of the first slice of a sliced export
SLICE_SUFFIX = ".part_0.csv.gz"


class TransferMode(str, Enum):
    """How a table's data was transferred."""

    EMPTY = "empty"  # No data objects in the backup
    DIRECT = "direct"  # One whole file with header
    SLICED = "sliced"  # Slices + transfer manifest


def table_data_prefix(base_path: str, table_id: str) -> str:
    """Key prefix shared by all data objects of a table."""
    return base_path + table_id.replace(".", "/") + "."


def is_single_file_export(slices: List[Dict[str, Any]]) -> bool:
    """
    Decide between the direct and the sliced path.

    Backups carry no explicit "sliced" flag. A table exported as a single
    file has exactly one object whose key does not end in ``.part_0.csv.gz``.
    A lone ``part_0`` object is a sliced export with one slice.
    """
    return len(slices) == 1 and not slices[0]["key"].endswith(SLICE_SUFFIX)


def slice_upload_key(upload_key: str, part: int) -> str:
    """Federated target key of slice ``part``."""
    return f"{upload_key}.part_{part}.csv.gz"


def manifest_upload_key(upload_key: str) -> str:
    """Federated target key of the transfer manifest."""
    return f"{upload_key}manifest"


def manifest_entry(upload_bucket: str, upload_key: str, part: int) -> Dict[str, Any]:
    """Transfer manifest entry for slice ``part``."""
    return {
        "url": f"s3://{upload_bucket}/{slice_upload_key(upload_key, part)}",
        "mandatory": True,
    }


async def transfer_table_data(
    state: RestoreState,
    table_id: str,
    table_name: str,
    columns: List[str],
) -> TransferMode:
    """
    Load a table's backup data into the (already created) table.

    Args:
        state: Runtime state
        table_id: Table id assigned by the Storage API
        table_name: Table name, used for the direct import
        columns: Declared table columns, in order, used for the sliced import

    Returns:
        The TransferMode that was used

    Raises:
        TransferFailure: If any download or upload fails
    """
    prefix = table_data_prefix(state["base_path"], table_id)
    slices = await list_objects(state["s3_client"], state["source_bucket"], prefix)

    if not slices:
        logger.info("table_data_empty", table_id=table_id, prefix=prefix)
        return TransferMode.EMPTY

    if is_single_file_export(slices):
        await _transfer_single_file(state, table_id, table_name, slices[0]["key"])
        return TransferMode.DIRECT

    await _transfer_slices(state, table_id, columns, slices)
    return TransferMode.SLICED


async def _transfer_single_file(
    state: RestoreState,
    table_id: str,
    table_name: str,
    key: str,
) -> None:
    """Direct path: download, upload to file storage, import."""
    api = state["api"]
    file_name = f"{table_id}.csv.gz"
    local_path = state["work_dir"] / file_name

    await download_to_file(state["s3_client"], state["source_bucket"], key, local_path)
    try:
        file_id = await api.upload_file(local_path, file_name)
    finally:
        local_path.unlink(missing_ok=True)

    await api.write_table_async_direct(table_id, name=table_name, data_file_id=file_id)

    logger.info("table_data_restored", table_id=table_id, mode=TransferMode.DIRECT.value, file_id=file_id)


async def _transfer_slices(
    state: RestoreState,
    table_id: str,
    columns: List[str],
    slices: List[Dict[str, Any]],
) -> None:
    """Sliced path: re-upload every slice, upload the manifest, import."""
    api = state["api"]
    upload_info = await api.prepare_file_upload(
        table_id,
        federation_token=True,
        is_sliced=True,
    )
    upload_params = upload_info["uploadParams"]
    upload_bucket = upload_params["bucket"]
    upload_key = upload_params["key"]
    encryption = server_side_encryption_args(upload_params)

    manifest: Dict[str, List[Dict[str, Any]]] = {"entries": []}
    part = 0

    try:
        async with federated_s3_client(state["s3_session"], upload_info) as target_client:
            for slice_info in slices:
                local_path = state["work_dir"] / f"{table_id}.part_{part}.csv.gz"
                await download_to_file(
                    state["s3_client"], state["source_bucket"], slice_info["key"], local_path
                )
                await _put_file(
                    target_client,
                    upload_bucket,
                    slice_upload_key(upload_key, part),
                    local_path,
                    encryption,
                )
                manifest["entries"].append(manifest_entry(upload_bucket, upload_key, part))
                local_path.unlink()

                logger.debug(
                    "slice_transferred",
                    table_id=table_id,
                    part=part,
                    source_key=slice_info["key"],
                )
                part += 1

            await _put_body(
                target_client,
                upload_bucket,
                manifest_upload_key(upload_key),
                json.dumps(manifest).encode(),
                encryption,
            )
    except S3RestoreError as e:
        _log_slice_failure(table_id, upload_info["id"], part, e)
        raise
    except Exception as e:
        failure = TransferFailure(
            f"File storage transfer failed: {e}",
            details={"file_id": upload_info["id"], "key": upload_key},
        )
        _log_slice_failure(table_id, upload_info["id"], part, failure)
        raise failure from e

    await api.write_table_async_direct(
        table_id,
        data_file_id=upload_info["id"],
        columns=list(columns),
    )

    logger.info(
        "table_data_restored",
        table_id=table_id,
        mode=TransferMode.SLICED.value,
        file_id=upload_info["id"],
        slices=part,
    )


async def _put_file(
    s3_client: Any,
    bucket: str,
    key: str,
    path: Path,
    encryption: Dict[str, str],
) -> None:
    try:
        async with aiofiles.open(path, "rb") as f:
            body = await f.read()
    except OSError as e:
        raise TransferFailure(
            f"Failed to read downloaded slice: {e}",
            details={"path": str(path)},
        ) from e
    await _put_body(s3_client, bucket, key, body, encryption)


async def _put_body(
    s3_client: Any,
    bucket: str,
    key: str,
    body: bytes,
    encryption: Dict[str, str],
) -> None:
    try:
        await s3_client.put_object(Bucket=bucket, Key=key, Body=body, **encryption)
    except S3RestoreError:
        raise
    except Exception as e:
        raise TransferFailure(
            f"Failed to upload to file storage: {e}",
            details={"bucket": bucket, "key": key},
        ) from e


def _log_slice_failure(table_id: str, file_id: Any, uploaded_parts: int, error: Exception) -> None:
    # Uploaded slices stay in the federated target; the file is never imported.
    logger.error(
        "slice_transfer_failed",
        table_id=table_id,
        file_id=file_id,
        uploaded_parts=uploaded_parts,
        error=str(error),
    )
