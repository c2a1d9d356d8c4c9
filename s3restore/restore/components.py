# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Component Eligibility Filter.

Components with their own management API keep their state in their own
systems, so replaying their configurations through the generic
configuration API would overwrite it. Those components are "obsolete" for
the purpose of a restore and their configurations are skipped.
"""

from typing import Any, Dict

OBSOLETE_COMPONENT_ID = "gooddata-writer"
TRANSFORMATION_COMPONENT_ID = "transformation"

# Components that declare a uri but have no real API behind it.
COMPONENTS_WITHOUT_API = frozenset({
    "wr-dropbox",
    "tde-exporter",
    "geneea-topic-detection",
    "geneea-language-detection",
    "geneea-lemmatization",
    "geneea-sentiment-analysis",
    "geneea-text-correction",
    "geneea-entity-recognition",
    "ex-adform",
    "geneea-nlp-analysis",
    "rcp-anomaly",
    "rcp-basket",
    "rcp-correlations",
    "rcp-data-type-assistant",
    "rcp-distribution-groups",
    "rcp-linear-dependency",
    "rcp-linear-regression",
    "rcp-next-event",
    "rcp-next-order-simple",
    "rcp-segmentation",
    "rcp-var-characteristics",
    "ex-sklik",
    "ex-dropbox",
    "wr-portal-sas",
    "ag-geocoding",
    "keboola.ex-db-pgsql",
    "keboola.ex-db-db2",
    "keboola.ex-db-firebird",
})

GENERIC_UI_FLAGS = frozenset({"genericUI", "genericDockerUI", "genericTemplatesUI"})


def is_obsolete_component(component: Dict[str, Any]) -> bool:
    """
    Check whether a component's configurations must not be restored.

    Args:
        component: Component descriptor from the Storage API index

    Returns:
        True if the component manages its own state
    """
    component_id = component["id"]
    if component_id == OBSOLETE_COMPONENT_ID:
        return True

    if component_id == TRANSFORMATION_COMPONENT_ID:
        return False

    flags = set(component.get("flags") or [])
    return (
        component.get("uri") is not None
        and component_id not in COMPONENTS_WITHOUT_API
        and not flags & GENERIC_UI_FLAGS
    )
