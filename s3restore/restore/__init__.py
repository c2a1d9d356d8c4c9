# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore Phases - Buckets, tables, table aliases and configurations.
"""

from s3restore.restore.aliases import AliasRestoreResult, restore_table_aliases
from s3restore.restore.buckets import BucketRestoreResult, restore_buckets
from s3restore.restore.components import is_obsolete_component
from s3restore.restore.configurations import ConfigurationRestoreResult, restore_configs
from s3restore.restore.metadata import prepare_metadata
from s3restore.restore.tables import TableRestoreResult, restore_tables
from s3restore.restore.transfer import TransferMode, is_single_file_export, transfer_table_data

__all__ = [
    # Phases
    "restore_buckets",
    "restore_tables",
    "restore_table_aliases",
    "restore_configs",
    # Results
    "BucketRestoreResult",
    "TableRestoreResult",
    "AliasRestoreResult",
    "ConfigurationRestoreResult",
    # Building blocks
    "TransferMode",
    "transfer_table_data",
    "is_single_file_export",
    "is_obsolete_component",
    "prepare_metadata",
]
