# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Metadata Translator - Reshape backup metadata for the Storage API.

Backups store metadata as a flat list of {provider, key, value} records.
The Storage API accepts metadata one provider at a time.
"""

from typing import Any, Dict, List


def prepare_metadata(raw_metadata: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Group metadata records by provider.

    Providers keep the order of their first appearance, records keep their
    order within a provider.
    """
    result: Dict[str, List[Dict[str, Any]]] = {}
    for item in raw_metadata:
        result.setdefault(item["provider"], []).append(
            {"key": item["key"], "value": item["value"]}
        )
    return result


async def apply_bucket_attributes_and_metadata(
    api: Any, bucket_id: str, bucket_info: Dict[str, Any]
) -> None:
    """Replace bucket attributes and post bucket metadata, when present."""
    if bucket_info.get("attributes"):
        await api.replace_bucket_attributes(bucket_id, bucket_info["attributes"])

    if bucket_info.get("metadata"):
        for provider, metadata in prepare_metadata(bucket_info["metadata"]).items():
            await api.post_bucket_metadata(bucket_id, provider, metadata)


async def apply_table_attributes_and_metadata(
    api: Any, table_id: str, table_info: Dict[str, Any]
) -> None:
    """Replace table attributes and post table and column metadata, when present."""
    if table_info.get("attributes"):
        await api.replace_table_attributes(table_id, table_info["attributes"])

    if table_info.get("metadata"):
        for provider, metadata in prepare_metadata(table_info["metadata"]).items():
            await api.post_table_metadata(table_id, provider, metadata)

    # {"column": [{provider, key, value}, ...]}
    for column, column_metadata in (table_info.get("columnMetadata") or {}).items():
        for provider, metadata in prepare_metadata(column_metadata).items():
            await api.post_column_metadata(f"{table_id}.{column}", provider, metadata)
