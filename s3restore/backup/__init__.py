# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Reader - Manifests, slices and configuration documents in S3.
"""

from s3restore.backup.reader import (
    BUCKETS_MANIFEST,
    CONFIGURATIONS_MANIFEST,
    TABLES_MANIFEST,
    configuration_key,
    download_json,
    download_to_file,
    list_objects,
    load_manifest,
    read_object,
)

__all__ = [
    "BUCKETS_MANIFEST",
    "TABLES_MANIFEST",
    "CONFIGURATIONS_MANIFEST",
    "configuration_key",
    "download_json",
    "download_to_file",
    "list_objects",
    "load_manifest",
    "read_object",
]
