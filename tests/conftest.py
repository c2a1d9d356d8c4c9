# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for s3restore tests.

Provides a moto S3 server with aiobotocore sessions pointed at it, a mocked
Storage API client, restore state helpers and a small in-memory S3 double
for injecting failures.
"""

import json
import socket
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Tuple
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from s3restore.core import RestoreState
from s3restore.storage_api import StorageApiClient

SOURCE_BUCKET = "backup-bucket"
SOURCE_REGION = "us-east-1"
UPLOAD_BUCKET = "kbc-sapi-files"
UPLOAD_REGION = "eu-central-1"
UPLOAD_KEY = "exp-15/123/files/2026/10/19/456.in.c-main.users"


def file_upload_info(file_id: int = 987, encryption: str | None = "AES256") -> Dict[str, Any]:
    """A federated files/prepare response."""
    upload_params = {
        "bucket": UPLOAD_BUCKET,
        "key": UPLOAD_KEY,
        "credentials": {
            "AccessKeyId": "ASIAFAKE",
            "SecretAccessKey": "secret",
            "SessionToken": "session-token",
        },
    }
    if encryption:
        upload_params["x-amz-server-side-encryption"] = encryption
    return {"id": file_id, "region": UPLOAD_REGION, "uploadParams": upload_params}


# ============================================================================
# moto S3 server
# ============================================================================

def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(scope="session")
def moto_endpoint() -> Generator[str, None, None]:
    """
    Start a moto S3 server for the test session.

    aiobotocore talks to it over HTTP, exactly as it talks to S3.
    """
    from moto.server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(ip_address="127.0.0.1", port=port, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()


class _HookedClientContext:
    def __init__(self, context: Any, hooks: List[Tuple[str, Callable]]):
        self._context = context
        self._hooks = hooks

    async def __aenter__(self) -> Any:
        client = await self._context.__aenter__()
        for event_name, handler in self._hooks:
            client.meta.events.register(event_name, handler)
        return client

    async def __aexit__(self, *exc_info: Any) -> Any:
        return await self._context.__aexit__(*exc_info)


class MotoSession:
    """
    aiobotocore session bound to the moto server.

    Records the arguments of every client it creates and registers botocore
    event handlers (see ``on``) on each of them.
    """

    def __init__(self, endpoint_url: str):
        from aiobotocore.session import get_session

        self._session = get_session()
        self.endpoint_url = endpoint_url
        self.created: List[Dict[str, Any]] = []
        self._hooks: List[Tuple[str, Callable]] = []

    def on(self, event_name: str, handler: Callable) -> None:
        self._hooks.append((event_name, handler))

    def create_client(self, service_name: str, **kwargs: Any) -> _HookedClientContext:
        self.created.append({"service_name": service_name, **kwargs})
        kwargs.setdefault("aws_access_key_id", "testing")
        kwargs.setdefault("aws_secret_access_key", "testing")
        context = self._session.create_client(
            service_name, endpoint_url=self.endpoint_url, **kwargs
        )
        return _HookedClientContext(context, self._hooks)


@pytest.fixture
def s3_session(moto_endpoint: str) -> MotoSession:
    """Fresh moto state for every test."""
    httpx.post(f"{moto_endpoint}/moto-api/reset").raise_for_status()
    return MotoSession(moto_endpoint)


@pytest_asyncio.fixture
async def source_s3(s3_session: MotoSession):
    """Client for the backup bucket."""
    async with s3_session.create_client("s3", region_name=SOURCE_REGION) as client:
        await client.create_bucket(Bucket=SOURCE_BUCKET)
        yield client


@pytest_asyncio.fixture
async def target_s3(s3_session: MotoSession, source_s3):
    """Client for the federated file storage bucket."""
    async with s3_session.create_client("s3", region_name=UPLOAD_REGION) as client:
        await client.create_bucket(
            Bucket=UPLOAD_BUCKET,
            CreateBucketConfiguration={"LocationConstraint": UPLOAD_REGION},
        )
        s3_session.created.clear()
        yield client


async def put_object(client: Any, key: str, body: bytes, bucket: str = SOURCE_BUCKET) -> None:
    await client.put_object(Bucket=bucket, Key=key, Body=body)


async def put_json(client: Any, key: str, document: Any, bucket: str = SOURCE_BUCKET) -> None:
    await put_object(client, key, json.dumps(document).encode(), bucket)


async def read_object(client: Any, key: str, bucket: str = UPLOAD_BUCKET) -> bytes:
    response = await client.get_object(Bucket=bucket, Key=key)
    async with response["Body"] as stream:
        return await stream.read()


async def list_keys(client: Any, bucket: str = UPLOAD_BUCKET) -> List[str]:
    response = await client.list_objects_v2(Bucket=bucket)
    return [obj["Key"] for obj in response.get("Contents", [])]


# ============================================================================
# In-memory S3 double for failure injection
# ============================================================================

class FakeS3Error(Exception):
    """Stands in for botocore ClientError."""


class FakeStreamingBody:
    def __init__(self, data: bytes):
        self._data = data

    async def __aenter__(self) -> "FakeStreamingBody":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False

    async def read(self, amt: int | None = None) -> bytes:
        data, self._data = (self._data, b"") if amt is None else (self._data[:amt], self._data[amt:])
        return data


class FakeS3Client:
    """
    S3 double that fails on chosen keys.

    One instance serves both the backup bucket and the file storage bucket.
    """

    def __init__(self):
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.fail_get_keys: set = set()
        self.fail_put_keys: set = set()
        self.got: List[str] = []

    def add(self, bucket: str, key: str, body: bytes) -> None:
        self.objects[(bucket, key)] = body

    async def get_object(self, Bucket: str, Key: str, **kwargs: Any) -> Dict[str, Any]:
        self.got.append(Key)
        if Key in self.fail_get_keys or (Bucket, Key) not in self.objects:
            raise FakeS3Error(f"GetObject failed for {Key}")
        return {"Body": FakeStreamingBody(self.objects[(Bucket, Key)])}

    async def put_object(self, Bucket: str, Key: str, Body: bytes, **kwargs: Any) -> Dict[str, Any]:
        if Key in self.fail_put_keys:
            raise FakeS3Error(f"PutObject failed for {Key}")
        self.objects[(Bucket, Key)] = Body
        return {}

    def get_paginator(self, name: str) -> "FakeS3Client":
        return self

    async def paginate(self, Bucket: str, Prefix: str = "", **kwargs: Any):
        yield {
            "Contents": [
                {"Key": key, "Size": len(body)}
                for (bucket, key), body in self.objects.items()
                if bucket == Bucket and key.startswith(Prefix)
            ]
        }


class _FakeClientContext:
    def __init__(self, client: FakeS3Client | None, error: Exception | None = None):
        self._client = client
        self._error = error

    async def __aenter__(self) -> FakeS3Client:
        if self._error is not None:
            raise self._error
        return self._client

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


class FakeSession:
    """Session handing out one FakeS3Client, or failing to open clients with ``error``."""

    def __init__(self, client: FakeS3Client | None = None, error: Exception | None = None):
        self.client = client
        self.error = error

    def create_client(self, service_name: str, **kwargs: Any) -> _FakeClientContext:
        return _FakeClientContext(self.client, self.error)


@pytest.fixture
def faulty_s3() -> FakeS3Client:
    return FakeS3Client()


# ============================================================================
# Storage API and restore state
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_api() -> AsyncMock:
    """Mocked StorageApiClient."""
    api = AsyncMock(spec=StorageApiClient)
    api.verify_token.return_value = {
        "owner": {"hasMysql": False, "hasRedshift": True, "hasSnowflake": True}
    }
    api.create_bucket.side_effect = lambda name, stage, *args, **kwargs: f"{stage}.c-{name}"
    api.create_table.side_effect = lambda bucket_id, name, *args, **kwargs: f"{bucket_id}.{name}"
    api.create_alias_table.side_effect = lambda bucket_id, source, name, **kwargs: f"{bucket_id}.{name}"
    api.upload_file.return_value = 555
    api.prepare_file_upload.return_value = file_upload_info()
    api.index.return_value = {"components": []}
    return api


@pytest.fixture
def restore_state(
    temp_dir: Path,
    source_s3: Any,
    target_s3: Any,
    s3_session: MotoSession,
    storage_api: AsyncMock,
) -> RestoreState:
    """Restore state reading the backup from the bucket root on moto."""
    return RestoreState(
        run_id="01TESTRUN",
        source_bucket=SOURCE_BUCKET,
        base_path="",
        work_dir=temp_dir,
        s3_client=source_s3,
        s3_session=s3_session,
        api=storage_api,
    )


@pytest.fixture
def faulty_state(temp_dir: Path, faulty_s3: FakeS3Client, storage_api: AsyncMock) -> RestoreState:
    """Restore state whose backup and file storage live in a FakeS3Client."""
    return RestoreState(
        run_id="01TESTRUN",
        source_bucket=SOURCE_BUCKET,
        base_path="",
        work_dir=temp_dir,
        s3_client=faulty_s3,
        s3_session=FakeSession(faulty_s3),
        api=storage_api,
    )
