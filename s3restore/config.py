# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
s3restore Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation so that a restore
run cannot change its source or target halfway through.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List
import re


# Prefix every regular (non-linked) bucket name carries in a backup.
BUCKET_NAME_PREFIX = "c-"


class Backend(str, Enum):
    """Storage backend a bucket lives on."""

    MYSQL = "mysql"
    REDSHIFT = "redshift"
    SNOWFLAKE = "snowflake"


# Owner flag in the token verification response for each backend.
BACKEND_CAPABILITY_FLAGS = {
    Backend.MYSQL: "hasMysql",
    Backend.REDSHIFT: "hasRedshift",
    Backend.SNOWFLAKE: "hasSnowflake",
}


def trim_source_base_path(base_path: str | None) -> str:
    """
    Normalize the backup base path into a key prefix.

    Empty values and "/" mean the backup sits at the bucket root. Any other
    value is stripped of surrounding slashes and gets one trailing slash.
    """
    if not base_path or base_path == "/":
        return ""
    return base_path.strip("/") + "/"


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate S3 bucket name according to AWS rules.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    # Must be lowercase letters, numbers, hyphens, or periods
    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    # No consecutive periods
    if ".." in bucket:
        return False

    # Not IP address format
    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


def _validate_api_url(url: str) -> bool:
    """Validate that the Storage API URL is an absolute http(s) URL."""
    return bool(re.match(r"^https?://[^/\s]+", url or ""))


@dataclass(frozen=True)
class RestoreConfig:
    """
    Immutable configuration for a project restore run.
    """

    # Required: S3 bucket holding the backup
    source_bucket: str

    # Required: Storage API endpoint and token of the target project
    storage_api_url: str
    storage_api_token: str

    # Key prefix of the backup inside the bucket ("" = bucket root)
    source_base_path: str | None = None

    # AWS region of the backup bucket
    region: str = "us-east-1"

    # Verify the target project has every backend the buckets need
    check_backend: bool = True

    # Parent directory for the run's temporary working directory
    work_dir: Path | None = None

    # Seconds between async job status polls
    job_poll_interval: float = 1.0

    # Give up waiting on a single async job after this many seconds
    job_timeout: float = 3600.0

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not _validate_bucket_name(self.source_bucket):
            errors.append(f"Invalid bucket name: {self.source_bucket}")

        if not _validate_api_url(self.storage_api_url):
            errors.append(f"Invalid Storage API URL: {self.storage_api_url}")

        if not self.storage_api_token:
            errors.append("storage_api_token is required")

        if self.job_poll_interval <= 0:
            errors.append(
                f"job_poll_interval must be > 0, got {self.job_poll_interval}"
            )

        if self.job_timeout <= 0:
            errors.append(f"job_timeout must be > 0, got {self.job_timeout}")

        # Raise all errors at once
        if errors:
            from s3restore.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def base_path(self) -> str:
        """Normalized key prefix of the backup."""
        return trim_source_base_path(self.source_base_path)

    def with_updates(self, **kwargs) -> "RestoreConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return RestoreConfig(**current)
