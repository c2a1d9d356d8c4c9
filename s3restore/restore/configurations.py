# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration Restorer - Recreate component configurations and their rows.

The configuration API cannot create a configuration with a caller-chosen
id and its content in one call. Every configuration and every row is
therefore written in two steps: create an empty shell with the backup id,
then update it with the content.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List

import structlog

from s3restore.backup import CONFIGURATIONS_MANIFEST, configuration_key, download_json, load_manifest
from s3restore.core import RestoreState
from s3restore.restore.components import is_obsolete_component

logger = structlog.get_logger()


@dataclass
class ConfigurationRestoreResult:
    """Result of the configuration phase."""

    restored: List[str] = field(default_factory=list)  # "<component>/<configuration>"
    skipped: List[str] = field(default_factory=list)  # component ids


async def create_then_update(
    create: Callable[[], Awaitable[Any]],
    update: Callable[[], Awaitable[Any]],
) -> None:
    """
    Create an empty entity, then write its content.

    The update only runs once the create call has returned.
    """
    await create()
    await update()


async def load_component_catalog(api: Any) -> Dict[str, Dict[str, Any]]:
    """Component descriptors of the target stack, by id."""
    index = await api.index()
    return {component["id"]: component for component in index.get("components", [])}


async def restore_configuration(
    api: Any,
    component_id: str,
    configuration_id: str,
    configuration_data: Dict[str, Any],
) -> None:
    """
    Restore one configuration and its rows.

    ``configuration_data`` is the decoded per-configuration backup document.
    Payloads are passed on as decoded, so empty objects and empty arrays
    reach the API unchanged.
    """

    async def create_configuration() -> Any:
        return await api.add_configuration(
            component_id,
            configuration_id,
            configuration_data["name"],
            configuration_data.get("description") or "",
        )

    async def update_configuration() -> Any:
        return await api.update_configuration(
            component_id,
            configuration_id,
            configuration=configuration_data.get("configuration"),
            state=configuration_data.get("state"),
            change_description=f"Configuration {configuration_id} restored from backup",
        )

    await create_then_update(create_configuration, update_configuration)

    for row in configuration_data.get("rows") or []:
        await restore_configuration_row(api, component_id, configuration_id, row)


async def restore_configuration_row(
    api: Any,
    component_id: str,
    configuration_id: str,
    row: Dict[str, Any],
) -> None:
    """Restore one configuration row."""
    row_id = row["id"]

    async def create_row() -> Any:
        return await api.add_configuration_row(component_id, configuration_id, row_id)

    async def update_row() -> Any:
        return await api.update_configuration_row(
            component_id,
            configuration_id,
            row_id,
            configuration=row.get("configuration"),
            state=row.get("state"),
            change_description=f"Row {row_id} restored from backup",
        )

    await create_then_update(create_row, update_row)


async def restore_configs(state: RestoreState) -> ConfigurationRestoreResult:
    """
    Restore configurations of all components known to the target stack.

    Unknown components and components managing their own state are skipped.

    Args:
        state: Runtime state

    Returns:
        ConfigurationRestoreResult
    """
    api = state["api"]
    s3_client = state["s3_client"]
    bucket = state["source_bucket"]
    base_path = state["base_path"]

    manifest = await load_manifest(s3_client, bucket, base_path, CONFIGURATIONS_MANIFEST)
    components = await load_component_catalog(api)

    result = ConfigurationRestoreResult()

    for component_info in manifest:
        component_id = component_info["id"]

        if component_id not in components:
            logger.warning("component_skipped_unknown", component_id=component_id)
            result.skipped.append(component_id)
            continue

        if is_obsolete_component(components[component_id]):
            logger.warning("component_skipped_custom_api", component_id=component_id)
            result.skipped.append(component_id)
            continue

        logger.info("component_configurations_restoring", component_id=component_id)

        for configuration in component_info.get("configurations") or []:
            configuration_id = configuration["id"]
            configuration_data = await download_json(
                s3_client,
                bucket,
                configuration_key(base_path, component_id, configuration_id),
            )

            await restore_configuration(api, component_id, configuration_id, configuration_data)

            result.restored.append(f"{component_id}/{configuration_id}")
            logger.debug(
                "configuration_restored",
                component_id=component_id,
                configuration_id=configuration_id,
                rows=len(configuration_data.get("rows") or []),
            )

    logger.info(
        "configurations_restored",
        restored=len(result.restored),
        skipped=len(result.skipped),
    )
    return result
