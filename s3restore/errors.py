# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for s3restore.

These helpers centralize wording for common configuration errors so that
the CLI and the environment loader present consistent, actionable messages.
"""


def explain_missing_bucket_env() -> str:
    """
    Explain that the source S3 bucket is missing.
    """

    return (
        "Backup S3 bucket is not configured. "
        "Set the S3RESTORE_SOURCE_BUCKET environment variable or pass --bucket."
    )


def explain_missing_storage_api_token() -> str:
    """
    Explain that the Storage API token is missing.
    """

    return (
        "Storage API token is not configured. "
        "Set the STORAGE_API_TOKEN environment variable or pass --token. "
        "The token must belong to the project the backup is restored into."
    )


def explain_invalid_storage_api_url(value: str | None) -> str:
    """
    Explain that the Storage API URL is invalid.
    """

    return (
        f"Invalid Storage API URL: {value!r}. "
        "Expected an absolute http(s) URL, e.g. 'https://connection.keboola.com'."
    )


def explain_invalid_check_backend_env(value: str | None) -> str:
    """
    Explain that S3RESTORE_CHECK_BACKEND is invalid.
    """

    return (
        f"Invalid S3RESTORE_CHECK_BACKEND value: {value!r}. "
        "Expected one of: '1', '0', 'true', 'false', 'yes', 'no'."
    )


def explain_invalid_poll_interval_env(value: str | None) -> str:
    """
    Explain that S3RESTORE_JOB_POLL_INTERVAL is invalid.
    """

    return (
        f"Invalid S3RESTORE_JOB_POLL_INTERVAL value: {value!r}. "
        "It must be a positive number of seconds."
    )
