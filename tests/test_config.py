# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration Tests.

Base path normalization, RestoreConfig validation and the environment
loader.
"""

from pathlib import Path

import pytest

from s3restore.config import RestoreConfig, trim_source_base_path
from s3restore.env import DEFAULT_STORAGE_API_URL, create_config_from_env
from s3restore.exceptions import ConfigurationError

ENV_VARS = (
    "S3RESTORE_SOURCE_BUCKET",
    "STORAGE_API_TOKEN",
    "STORAGE_API_URL",
    "S3RESTORE_SOURCE_PATH",
    "AWS_REGION",
    "S3RESTORE_CHECK_BACKEND",
    "S3RESTORE_WORK_DIR",
    "S3RESTORE_JOB_POLL_INTERVAL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def make_config(**kwargs) -> RestoreConfig:
    values = {
        "source_bucket": "backup-bucket",
        "storage_api_url": "https://connection.keboola.com",
        "storage_api_token": "token",
    }
    values.update(kwargs)
    return RestoreConfig(**values)


# ============================================================================
# Base path normalization
# ============================================================================

@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, ""),
        ("", ""),
        ("/", ""),
        ("a", "a/"),
        ("a/", "a/"),
        ("/a", "a/"),
        ("/a/b/", "a/b/"),
        ("a/b", "a/b/"),
    ],
)
def test_trim_source_base_path(raw, expected):
    assert trim_source_base_path(raw) == expected


def test_trim_source_base_path_is_idempotent():
    for raw in ("/a/b/", "x", "/"):
        once = trim_source_base_path(raw)
        assert trim_source_base_path(once) == once


# ============================================================================
# RestoreConfig
# ============================================================================

def test_config_defaults():
    config = make_config()

    assert config.region == "us-east-1"
    assert config.check_backend is True
    assert config.base_path == ""
    assert config.work_dir is None


def test_config_base_path_is_normalized():
    assert make_config(source_base_path="/project-1").base_path == "project-1/"


def test_config_is_frozen():
    config = make_config()

    with pytest.raises(Exception):
        config.source_bucket = "other-bucket"


def test_config_collects_all_validation_errors():
    with pytest.raises(ConfigurationError) as exc_info:
        make_config(
            source_bucket="Bad_Bucket",
            storage_api_url="connection.keboola.com",
            storage_api_token="",
            job_poll_interval=0,
        )

    errors = exc_info.value.details["errors"]
    assert len(errors) == 4
    assert any("Invalid bucket name" in error for error in errors)
    assert any("Invalid Storage API URL" in error for error in errors)


def test_with_updates_returns_new_config():
    config = make_config()
    updated = config.with_updates(check_backend=False, source_base_path="p")

    assert config.check_backend is True
    assert updated.check_backend is False
    assert updated.base_path == "p/"


# ============================================================================
# Environment loader
# ============================================================================

def test_env_requires_bucket(clean_env):
    clean_env.setenv("STORAGE_API_TOKEN", "token")

    with pytest.raises(ConfigurationError, match="S3RESTORE_SOURCE_BUCKET"):
        create_config_from_env()


def test_env_requires_token(clean_env):
    clean_env.setenv("S3RESTORE_SOURCE_BUCKET", "backup-bucket")

    with pytest.raises(ConfigurationError, match="STORAGE_API_TOKEN"):
        create_config_from_env()


def test_env_reads_all_variables(clean_env, tmp_path: Path):
    clean_env.setenv("S3RESTORE_SOURCE_BUCKET", "backup-bucket")
    clean_env.setenv("STORAGE_API_TOKEN", "token")
    clean_env.setenv("STORAGE_API_URL", "https://connection.eu-central-1.keboola.com/")
    clean_env.setenv("S3RESTORE_SOURCE_PATH", "/backups/123/")
    clean_env.setenv("AWS_REGION", "eu-central-1")
    clean_env.setenv("S3RESTORE_CHECK_BACKEND", "no")
    clean_env.setenv("S3RESTORE_WORK_DIR", str(tmp_path))
    clean_env.setenv("S3RESTORE_JOB_POLL_INTERVAL", "0.5")

    config = create_config_from_env()

    assert config.source_bucket == "backup-bucket"
    assert config.storage_api_url == "https://connection.eu-central-1.keboola.com"
    assert config.base_path == "backups/123/"
    assert config.region == "eu-central-1"
    assert config.check_backend is False
    assert config.work_dir == tmp_path
    assert config.job_poll_interval == 0.5


def test_env_defaults(clean_env):
    clean_env.setenv("S3RESTORE_SOURCE_BUCKET", "backup-bucket")
    clean_env.setenv("STORAGE_API_TOKEN", "token")

    config = create_config_from_env()

    assert config.storage_api_url == DEFAULT_STORAGE_API_URL
    assert config.check_backend is True
    assert config.base_path == ""


def test_overrides_win_and_none_is_ignored(clean_env):
    clean_env.setenv("S3RESTORE_SOURCE_BUCKET", "env-bucket")
    clean_env.setenv("STORAGE_API_TOKEN", "token")
    clean_env.setenv("S3RESTORE_CHECK_BACKEND", "false")

    config = create_config_from_env(
        source_bucket="flag-bucket",
        check_backend=None,
        source_base_path="x",
    )

    assert config.source_bucket == "flag-bucket"
    assert config.check_backend is False
    assert config.base_path == "x/"


def test_invalid_check_backend_value(clean_env):
    clean_env.setenv("S3RESTORE_SOURCE_BUCKET", "backup-bucket")
    clean_env.setenv("STORAGE_API_TOKEN", "token")
    clean_env.setenv("S3RESTORE_CHECK_BACKEND", "maybe")

    with pytest.raises(ConfigurationError, match="S3RESTORE_CHECK_BACKEND"):
        create_config_from_env()


def test_invalid_poll_interval_value(clean_env):
    clean_env.setenv("S3RESTORE_SOURCE_BUCKET", "backup-bucket")
    clean_env.setenv("STORAGE_API_TOKEN", "token")
    clean_env.setenv("S3RESTORE_JOB_POLL_INTERVAL", "-1")

    with pytest.raises(ConfigurationError, match="S3RESTORE_JOB_POLL_INTERVAL"):
        create_config_from_env()


def test_invalid_storage_api_url(clean_env):
    clean_env.setenv("S3RESTORE_SOURCE_BUCKET", "backup-bucket")
    clean_env.setenv("STORAGE_API_TOKEN", "token")
    clean_env.setenv("STORAGE_API_URL", "ftp://example.com")

    with pytest.raises(ConfigurationError, match="Invalid Storage API URL"):
        create_config_from_env()
