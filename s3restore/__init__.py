# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
s3restore - Restore an analytics platform project from an S3 backup.

Recreates buckets, tables (schema and data), table aliases and component
configurations in dependency order through the Storage API. Package name:
s3restore.
"""

__version__ = "0.1.0"

# Configuration
from s3restore.config import RestoreConfig, trim_source_base_path
from s3restore.env import create_config_from_env

# Core orchestration
from s3restore.core import RestoreResult, RestoreState, run_restore

# Errors
from s3restore.exceptions import (
    ConfigurationError,
    DecodeFailure,
    MissingBackendCapability,
    PlatformApiError,
    S3RestoreError,
    TransferFailure,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "RestoreConfig",
    "create_config_from_env",
    "trim_source_base_path",
    # Core orchestration
    "run_restore",
    "RestoreResult",
    "RestoreState",
    # Errors
    "S3RestoreError",
    "ConfigurationError",
    "MissingBackendCapability",
    "TransferFailure",
    "DecodeFailure",
    "PlatformApiError",
]
