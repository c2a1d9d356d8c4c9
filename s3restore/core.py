# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
s3restore Core - Orchestrates a full project restore.

Phases run strictly in dependency order:

1. buckets         (tables live in buckets)
2. tables          (aliases point at tables)
3. table aliases
4. configurations

The set of bucket ids restored in phase 1 is returned as a value and passed
to phases 2 and 3, which only restore tables and aliases of those buckets.
"""

import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, FrozenSet, List, TypedDict

import structlog

from s3restore.config import RestoreConfig

logger = structlog.get_logger()

# Bucket ids restored in the current run
RestoredBuckets = FrozenSet[str]


class RestoreState(TypedDict):
    """Runtime state shared by the restore phases."""

    run_id: str  # ULID
    source_bucket: str
    base_path: str  # Normalized key prefix ("" or "path/")
    work_dir: Path  # Run-scoped temporary directory
    s3_client: Any  # aiobotocore client for the backup bucket
    s3_session: Any  # aiobotocore session, used for federated clients
    api: Any  # StorageApiClient


@dataclass
class RestoreResult:
    """Result of a completed restore run."""

    run_id: str
    restored_buckets: List[str]
    restored_tables: List[str]
    restored_aliases: List[str]
    restored_configurations: List[str]
    skipped: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0


async def run_restore(
    config: RestoreConfig,
    *,
    session: Any = None,
    api: Any = None,
) -> RestoreResult:
    """
    Restore a whole project backup into the project of the configured token.

    Any error stops the run; entities restored until then stay in place.
    Re-running is the recovery path.

    Args:
        config: Restore configuration
        session: aiobotocore session (created when omitted)
        api: Storage API client (created from config when omitted)

    Returns:
        RestoreResult summarizing the run
    """
    from ulid import ULID

    from s3restore.restore import (
        restore_buckets,
        restore_configs,
        restore_table_aliases,
        restore_tables,
    )
    from s3restore.storage_api import StorageApiClient

    if session is None:
        from aiobotocore.session import get_session

        session = get_session()

    run_id = str(ULID())
    start_time = datetime.now(UTC)
    log = logger.bind(run_id=run_id)

    if config.work_dir is not None:
        config.work_dir.mkdir(parents=True, exist_ok=True)
    work_dir = Path(tempfile.mkdtemp(prefix="s3restore-", dir=config.work_dir))

    log.info(
        "restore_started",
        source_bucket=config.source_bucket,
        base_path=config.base_path,
        check_backend=config.check_backend,
    )

    # Closed in the finally below
    owns_api = api is None
    if owns_api:
        api = StorageApiClient(
            config.storage_api_url,
            config.storage_api_token,
            s3_session=session,
            job_poll_interval=config.job_poll_interval,
            job_timeout=config.job_timeout,
        )

    try:
        async with session.create_client("s3", region_name=config.region) as s3_client:
            state = RestoreState(
                run_id=run_id,
                source_bucket=config.source_bucket,
                base_path=config.base_path,
                work_dir=work_dir,
                s3_client=s3_client,
                s3_session=session,
                api=api,
            )

            buckets = await restore_buckets(state, check_backend=config.check_backend)
            tables = await restore_tables(state, buckets.restored)
            aliases = await restore_table_aliases(state, buckets.restored)
            configurations = await restore_configs(state)

    except Exception as e:
        log.error("restore_failed", error=str(e))
        raise

    finally:
        shutil.rmtree(work_dir, ignore_errors=True)
        if owns_api:
            await api.aclose()

    duration = (datetime.now(UTC) - start_time).total_seconds()

    result = RestoreResult(
        run_id=run_id,
        restored_buckets=buckets.restored_ids,
        restored_tables=tables.restored,
        restored_aliases=aliases.restored,
        restored_configurations=configurations.restored,
        skipped=buckets.skipped + tables.skipped + aliases.skipped + configurations.skipped,
        duration_seconds=duration,
    )

    log.info(
        "restore_completed",
        buckets=len(result.restored_buckets),
        tables=len(result.restored_tables),
        aliases=len(result.restored_aliases),
        configurations=len(result.restored_configurations),
        skipped=len(result.skipped),
        duration=duration,
    )

    return result
