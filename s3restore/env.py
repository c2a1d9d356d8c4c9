# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

create_config_from_env() reads a small set of well-known environment
variables and builds a RestoreConfig from them. Keyword overrides win over
the environment, which lets the CLI mix flags and variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from s3restore.config import RestoreConfig
from s3restore.errors import (
    explain_invalid_check_backend_env,
    explain_invalid_poll_interval_env,
    explain_invalid_storage_api_url,
    explain_missing_bucket_env,
    explain_missing_storage_api_token,
)
from s3restore.exceptions import ConfigurationError

DEFAULT_STORAGE_API_URL = "https://connection.keboola.com"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    lower = value.strip().lower()
    if lower in _TRUE_VALUES:
        return True
    if lower in _FALSE_VALUES:
        return False
    raise ConfigurationError(explain_invalid_check_backend_env(value))


def _parse_poll_interval(value: str | None) -> float:
    if not value:
        return 1.0
    try:
        interval = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_poll_interval_env(value)) from exc
    if interval <= 0:
        raise ConfigurationError(explain_invalid_poll_interval_env(value))
    return interval


def create_config_from_env(**overrides: Any) -> RestoreConfig:
    """
    Create a RestoreConfig from environment variables plus explicit overrides.

    Overrides with a value of None are ignored so that unset CLI options fall
    back to the environment.

    Required:
        - S3RESTORE_SOURCE_BUCKET: S3 bucket holding the backup
        - STORAGE_API_TOKEN: token of the target project

    Optional environment variables:
        - S3RESTORE_SOURCE_PATH: key prefix of the backup (default: bucket root)
        - AWS_REGION: region of the backup bucket (default: us-east-1)
        - STORAGE_API_URL: Storage API endpoint
          (default: https://connection.keboola.com)
        - S3RESTORE_CHECK_BACKEND: verify backends before restoring buckets
          (default: true)
        - S3RESTORE_WORK_DIR: parent directory for temporary files
        - S3RESTORE_JOB_POLL_INTERVAL: seconds between job polls (default: 1)
    """
    values = {key: value for key, value in overrides.items() if value is not None}

    bucket = values.pop("source_bucket", None) or os.getenv("S3RESTORE_SOURCE_BUCKET")
    if not bucket:
        raise ConfigurationError(explain_missing_bucket_env())

    token = values.pop("storage_api_token", None) or os.getenv("STORAGE_API_TOKEN")
    if not token:
        raise ConfigurationError(explain_missing_storage_api_token())

    url = values.pop("storage_api_url", None) or os.getenv(
        "STORAGE_API_URL", DEFAULT_STORAGE_API_URL
    )
    if not url.lower().startswith(("http://", "https://")):
        raise ConfigurationError(explain_invalid_storage_api_url(url))

    work_dir_env = os.getenv("S3RESTORE_WORK_DIR")

    settings: dict[str, Any] = {
        "source_base_path": os.getenv("S3RESTORE_SOURCE_PATH"),
        "region": os.getenv("AWS_REGION", "us-east-1"),
        "check_backend": _parse_bool(os.getenv("S3RESTORE_CHECK_BACKEND"), True),
        "work_dir": Path(work_dir_env) if work_dir_env else None,
        "job_poll_interval": _parse_poll_interval(
            os.getenv("S3RESTORE_JOB_POLL_INTERVAL")
        ),
    }
    settings.update(values)

    return RestoreConfig(
        source_bucket=bucket,
        storage_api_url=url.rstrip("/"),
        storage_api_token=token,
        **settings,
    )
