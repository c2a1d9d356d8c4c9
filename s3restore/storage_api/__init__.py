# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Storage API - Client for the target project's Storage API.
"""

from s3restore.storage_api.client import (
    StorageApiClient,
    federated_s3_client,
    server_side_encryption_args,
)

__all__ = [
    "StorageApiClient",
    "federated_s3_client",
    "server_side_encryption_args",
]
