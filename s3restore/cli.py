# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
s3restore CLI - Restore a project backup from S3.

Run with:
    s3restore --bucket my-backups --path project-123/ --token <storage-token>

Environment variables (used when the matching option is not given):
    S3RESTORE_SOURCE_BUCKET, S3RESTORE_SOURCE_PATH, AWS_REGION,
    STORAGE_API_URL, STORAGE_API_TOKEN, S3RESTORE_CHECK_BACKEND,
    S3RESTORE_WORK_DIR
AWS credentials for the backup bucket come from the default AWS chain.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click
import structlog

from s3restore.core import run_restore
from s3restore.env import create_config_from_env
from s3restore.exceptions import ConfigurationError, S3RestoreError


def configure_logging(verbose: bool = False) -> None:
    """Route structlog output to stderr with a console renderer."""
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@click.command()
@click.option("--bucket", "source_bucket", type=str, help="S3 bucket holding the backup")
@click.option("--path", "source_base_path", type=str, help="Key prefix of the backup inside the bucket")
@click.option("--region", type=str, help="AWS region of the backup bucket")
@click.option("--url", "storage_api_url", type=str, help="Storage API URL of the target stack")
@click.option("--token", "storage_api_token", type=str, help="Storage API token of the target project")
@click.option(
    "--check-backend/--no-check-backend",
    default=None,
    help="Verify the project has the backends the buckets need (default: on)",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for temporary files",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(
    source_bucket: str | None,
    source_base_path: str | None,
    region: str | None,
    storage_api_url: str | None,
    storage_api_token: str | None,
    check_backend: bool | None,
    work_dir: Path | None,
    verbose: bool,
) -> None:
    """Restore buckets, tables, aliases and configurations from an S3 backup."""
    configure_logging(verbose)
    logger = structlog.get_logger()

    try:
        config = create_config_from_env(
            source_bucket=source_bucket,
            source_base_path=source_base_path,
            region=region,
            storage_api_url=storage_api_url,
            storage_api_token=storage_api_token,
            check_backend=check_backend,
            work_dir=work_dir,
        )
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e

    try:
        result = asyncio.run(run_restore(config))
    except S3RestoreError as e:
        logger.error("restore_aborted", error=str(e), error_type=type(e).__name__)
        sys.exit(1)

    click.echo(
        f"Restored {len(result.restored_buckets)} buckets, "
        f"{len(result.restored_tables)} tables, "
        f"{len(result.restored_aliases)} aliases, "
        f"{len(result.restored_configurations)} configurations "
        f"({len(result.skipped)} skipped) in {result.duration_seconds:.1f}s"
    )


if __name__ == "__main__":
    main()
