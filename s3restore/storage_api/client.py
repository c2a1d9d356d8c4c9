# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Storage API Client - Async client for the platform Storage API.

Covers the calls a project restore needs: token verification, component
catalog, buckets, tables, aliases, metadata, file uploads through
federated S3 credentials, async table imports and component configurations.

Requests are form-encoded the way the Storage API expects. Async endpoints
return a job which is polled until it finishes.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List
from urllib.parse import quote

import aiofiles
import httpx
import structlog

from s3restore.exceptions import PlatformApiError, TransferFailure

logger = structlog.get_logger()

TOKEN_HEADER = "X-StorageApi-Token"

JOB_SUCCESS = "success"
JOB_ERROR = "error"


def federated_s3_client(session: Any, file_upload_info: Dict[str, Any]) -> Any:
    """
    Create an S3 client bound to the short-lived credentials of a prepared upload.

    Returns the aiobotocore client context manager; use with ``async with``.
    """
    credentials = file_upload_info["uploadParams"]["credentials"]
    return session.create_client(
        "s3",
        region_name=file_upload_info["region"],
        aws_access_key_id=credentials["AccessKeyId"],
        aws_secret_access_key=credentials["SecretAccessKey"],
        aws_session_token=credentials["SessionToken"],
    )


def server_side_encryption_args(upload_params: Dict[str, Any]) -> Dict[str, str]:
    """put_object arguments for the encryption mode the Storage API requested."""
    mode = upload_params.get("x-amz-server-side-encryption")
    if not mode:
        return {}
    return {"ServerSideEncryption": mode}


def _path_id(value: str) -> str:
    return quote(str(value), safe="")


def _attributes_form(attributes: List[Dict[str, Any]]) -> Dict[str, Any]:
    form: Dict[str, Any] = {}
    for index, attribute in enumerate(attributes):
        form[f"attributes[{index}][name]"] = attribute["name"]
        form[f"attributes[{index}][value]"] = attribute.get("value", "")
        if "protected" in attribute:
            form[f"attributes[{index}][protected]"] = (
                "1" if attribute["protected"] else "0"
            )
    return form


def _metadata_form(provider: str, metadata: List[Dict[str, Any]]) -> Dict[str, Any]:
    form: Dict[str, Any] = {"provider": provider}
    for index, item in enumerate(metadata):
        form[f"metadata[{index}][key]"] = item["key"]
        form[f"metadata[{index}][value]"] = item["value"]
    return form


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class StorageApiClient:
    """
    Storage API client bound to one project token.

    Args:
        url: Storage API endpoint, e.g. https://connection.keboola.com
        token: Storage API token of the target project
        s3_session: aiobotocore session used for federated file uploads
        job_poll_interval: Seconds between async job polls
        job_timeout: Maximum seconds to wait for one async job
        transport: Optional httpx transport (tests)
        timeout: HTTP timeout in seconds
    """

    def __init__(
        self,
        url: str,
        token: str,
        *,
        s3_session: Any = None,
        job_poll_interval: float = 1.0,
        job_timeout: float = 3600.0,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 120.0,
    ):
        if s3_session is None:
            from aiobotocore.session import get_session

            s3_session = get_session()

        self.s3_session = s3_session
        self.job_poll_interval = job_poll_interval
        self.job_timeout = job_timeout
        self._http = httpx.AsyncClient(
            base_url=url.rstrip("/"),
            headers={TOKEN_HEADER: token, "User-Agent": "s3restore"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "StorageApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise PlatformApiError(
                f"Storage API request failed: {e}",
                details={"method": method, "path": path},
            ) from e

        if response.is_error:
            body = _error_body(response)
            message = body.get("error") if isinstance(body, dict) else None
            raise PlatformApiError(
                message or f"Storage API returned HTTP {response.status_code}",
                status_code=response.status_code,
                details={"method": method, "path": path, "response": body},
            )

        if not response.content:
            return None
        return response.json()

    async def wait_for_job(self, job: Dict[str, Any]) -> Dict[str, Any]:
        """
        Poll an async job until it finishes.

        Returns:
            The finished job

        Raises:
            PlatformApiError: If the job fails or does not finish in time
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.job_timeout

        while job.get("status") not in (JOB_SUCCESS, JOB_ERROR):
            if loop.time() > deadline:
                raise PlatformApiError(
                    "Timed out waiting for job",
                    details={"job_id": job.get("id"), "timeout": self.job_timeout},
                )
            await asyncio.sleep(self.job_poll_interval)
            job = await self._request("GET", f"/v2/storage/jobs/{job['id']}")

        if job["status"] == JOB_ERROR:
            error = job.get("error") or {}
            raise PlatformApiError(
                error.get("message") or "Storage job failed",
                details={"job_id": job.get("id"), "operation": job.get("operationName")},
            )

        logger.debug("storage_job_finished", job_id=job.get("id"))
        return job

    # ------------------------------------------------------------------
    # Project
    # ------------------------------------------------------------------

    async def verify_token(self) -> Dict[str, Any]:
        """Token details, including the owner's backend capability flags."""
        return await self._request("GET", "/v2/storage/tokens/verify")

    async def index(self) -> Dict[str, Any]:
        """Storage API index, including the component catalog."""
        return await self._request("GET", "/v2/storage")

    # ------------------------------------------------------------------
    # Buckets
    # ------------------------------------------------------------------

    async def create_bucket(
        self,
        name: str,
        stage: str,
        description: str = "",
        backend: str | None = None,
    ) -> str:
        """Create a bucket and return its id."""
        form = {"name": name, "stage": stage, "description": description or ""}
        if backend:
            form["backend"] = backend
        bucket = await self._request("POST", "/v2/storage/buckets", data=form)
        return bucket["id"]

    async def replace_bucket_attributes(
        self, bucket_id: str, attributes: List[Dict[str, Any]]
    ) -> None:
        await self._request(
            "POST",
            f"/v2/storage/buckets/{_path_id(bucket_id)}/attributes",
            data=_attributes_form(attributes),
        )

    async def post_bucket_metadata(
        self, bucket_id: str, provider: str, metadata: List[Dict[str, Any]]
    ) -> None:
        await self._request(
            "POST",
            f"/v2/storage/buckets/{_path_id(bucket_id)}/metadata",
            data=_metadata_form(provider, metadata),
        )

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def create_table(
        self,
        bucket_id: str,
        name: str,
        header_path: Path,
        primary_key: str = "",
    ) -> str:
        """
        Create a table from a CSV file (usually header only).

        Returns:
            The table id assigned by the Storage API
        """
        file_id = await self.upload_file(header_path)
        job = await self._request(
            "POST",
            f"/v2/storage/buckets/{_path_id(bucket_id)}/tables-async",
            data={"name": name, "dataFileId": file_id, "primaryKey": primary_key},
        )
        job = await self.wait_for_job(job)
        return job["results"]["id"]

    async def create_alias_table(
        self,
        bucket_id: str,
        source_table_id: str,
        name: str,
        alias_filter: Dict[str, Any] | None = None,
        alias_columns: List[str] | None = None,
    ) -> str:
        """Create an alias of ``source_table_id`` and return the alias id."""
        form: Dict[str, Any] = {"sourceTable": source_table_id, "name": name}
        if alias_filter:
            form["aliasFilter[column]"] = alias_filter["column"]
            form["aliasFilter[values][]"] = list(alias_filter.get("values", []))
            if alias_filter.get("operator"):
                form["aliasFilter[operator]"] = alias_filter["operator"]
        if alias_columns is not None:
            form["aliasColumns[]"] = list(alias_columns)

        table = await self._request(
            "POST",
            f"/v2/storage/buckets/{_path_id(bucket_id)}/table-aliases",
            data=form,
        )
        return table["id"]

    async def replace_table_attributes(
        self, table_id: str, attributes: List[Dict[str, Any]]
    ) -> None:
        await self._request(
            "POST",
            f"/v2/storage/tables/{_path_id(table_id)}/attributes",
            data=_attributes_form(attributes),
        )

    async def post_table_metadata(
        self, table_id: str, provider: str, metadata: List[Dict[str, Any]]
    ) -> None:
        await self._request(
            "POST",
            f"/v2/storage/tables/{_path_id(table_id)}/metadata",
            data=_metadata_form(provider, metadata),
        )

    async def post_column_metadata(
        self, column_id: str, provider: str, metadata: List[Dict[str, Any]]
    ) -> None:
        await self._request(
            "POST",
            f"/v2/storage/columns/{_path_id(column_id)}/metadata",
            data=_metadata_form(provider, metadata),
        )

    async def write_table_async_direct(
        self,
        table_id: str,
        *,
        data_file_id: int,
        name: str | None = None,
        columns: List[str] | None = None,
    ) -> Dict[str, Any]:
        """
        Import an uploaded file into a table and wait for the import job.

        ``columns`` maps headerless (sliced) data onto table columns.
        """
        form: Dict[str, Any] = {"dataFileId": data_file_id}
        if name is not None:
            form["name"] = name
        if columns is not None:
            form["columns[]"] = list(columns)

        job = await self._request(
            "POST",
            f"/v2/storage/tables/{_path_id(table_id)}/import-async",
            data=form,
        )
        return await self.wait_for_job(job)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def prepare_file_upload(
        self,
        name: str,
        *,
        size_bytes: int | None = None,
        federation_token: bool = True,
        is_sliced: bool = False,
    ) -> Dict[str, Any]:
        """
        Register a file and get upload parameters for it.

        With ``federation_token`` the response carries short-lived S3
        credentials scoped to ``uploadParams.bucket``/``uploadParams.key``.
        """
        form: Dict[str, Any] = {
            "name": name,
            "federationToken": "1" if federation_token else "0",
            "isSliced": "1" if is_sliced else "0",
        }
        if size_bytes is not None:
            form["sizeBytes"] = size_bytes
        return await self._request("POST", "/v2/storage/files/prepare", data=form)

    async def upload_file(self, path: Path, name: str | None = None) -> int:
        """
        Upload a local file to the project's file storage.

        Returns:
            The Storage API file id
        """
        path = Path(path)
        async with aiofiles.open(path, "rb") as f:
            body = await f.read()

        info = await self.prepare_file_upload(
            name or path.name,
            size_bytes=len(body),
            federation_token=True,
        )
        upload_params = info["uploadParams"]

        try:
            async with federated_s3_client(self.s3_session, info) as s3_client:
                await s3_client.put_object(
                    Bucket=upload_params["bucket"],
                    Key=upload_params["key"],
                    Body=body,
                    **server_side_encryption_args(upload_params),
                )
        except Exception as e:
            raise TransferFailure(
                f"Failed to upload file: {e}",
                details={"file_id": info["id"], "key": upload_params["key"]},
            ) from e

        logger.debug("file_uploaded", file_id=info["id"], name=name or path.name, size=len(body))
        return info["id"]

    # ------------------------------------------------------------------
    # Component configurations
    # ------------------------------------------------------------------

    async def add_configuration(
        self,
        component_id: str,
        configuration_id: str,
        name: str,
        description: str = "",
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/v2/storage/components/{_path_id(component_id)}/configs",
            data={
                "configurationId": configuration_id,
                "name": name,
                "description": description or "",
            },
        )

    async def update_configuration(
        self,
        component_id: str,
        configuration_id: str,
        *,
        configuration: Any,
        state: Any = None,
        change_description: str | None = None,
    ) -> Dict[str, Any]:
        """
        Update a configuration's content.

        Payloads are sent JSON-encoded, so ``{}`` and ``[]`` stay distinct.
        A ``state`` of None leaves the stored state untouched.
        """
        form: Dict[str, Any] = {"configuration": json.dumps(configuration)}
        if state is not None:
            form["state"] = json.dumps(state)
        if change_description:
            form["changeDescription"] = change_description
        return await self._request(
            "PUT",
            f"/v2/storage/components/{_path_id(component_id)}"
            f"/configs/{_path_id(configuration_id)}",
            data=form,
        )

    async def add_configuration_row(
        self, component_id: str, configuration_id: str, row_id: str
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/v2/storage/components/{_path_id(component_id)}"
            f"/configs/{_path_id(configuration_id)}/rows",
            data={"rowId": row_id},
        )

    async def update_configuration_row(
        self,
        component_id: str,
        configuration_id: str,
        row_id: str,
        *,
        configuration: Any,
        state: Any = None,
        change_description: str | None = None,
    ) -> Dict[str, Any]:
        form: Dict[str, Any] = {"configuration": json.dumps(configuration)}
        if state is not None:
            form["state"] = json.dumps(state)
        if change_description:
            form["changeDescription"] = change_description
        return await self._request(
            "PUT",
            f"/v2/storage/components/{_path_id(component_id)}"
            f"/configs/{_path_id(configuration_id)}/rows/{_path_id(row_id)}",
            data=form,
        )
