# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
S3 Restore Exceptions - Custom exceptions for the s3restore package.
"""


class S3RestoreError(Exception):
    """Base exception for all s3restore errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(S3RestoreError):
    """Raised when configuration is invalid."""

    pass


class MissingBackendCapability(S3RestoreError):
    """Raised when the target project lacks a backend required by a bucket."""

    def __init__(self, backend: str, details: dict | None = None):
        self.backend = backend
        super().__init__(f"Missing {_BACKEND_LABELS.get(backend, backend)} backend", details)


class TransferFailure(S3RestoreError):
    """Raised when downloading from or uploading to S3 fails."""

    pass


class DecodeFailure(S3RestoreError):
    """Raised when a backup manifest or configuration is not valid JSON."""

    pass


class PlatformApiError(S3RestoreError):
    """Raised when a Storage API call or async job fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


_BACKEND_LABELS = {
    "mysql": "MySQL",
    "redshift": "Redshift",
    "snowflake": "Snowflake",
}
