# src/ecs_s3_copy/exceptions.py
"""Custom exceptions for the ecs-s3-copy application."""


class EcsCopyError(Exception):
    """Base exception for all application-specific errors."""

    pass


class ConfigError(EcsCopyError):
    """Raised for configuration-related issues."""

    pass


class StoreError(EcsCopyError):
    """Raised when the object store returns a response the client cannot use."""

    pass


class EnumerationError(EcsCopyError):
    """Raised when a listing or metadata query page cannot be fetched."""

    pass
