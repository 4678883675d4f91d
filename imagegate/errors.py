"""Exceptions raised while serving and storing images."""

from __future__ import annotations


class GatewayError(RuntimeError):
    """Base exception for image gateway failures."""


class NotFoundError(GatewayError):
    """Raised when no document matches the requested name and folder."""


class DecodeError(GatewayError):
    """Raised when bytes cannot be read as an image."""


class UnsupportedFormatError(GatewayError):
    """Raised when an image must be written in a format we cannot encode."""


class EncodeError(GatewayError):
    """Raised when the encoder fails on an otherwise supported format."""


class CacheDirError(GatewayError):
    """Raised when the cache folder for a request cannot be created."""


class InvalidPathError(GatewayError):
    """Raised when a request path resolves outside the cache root."""


class StoreError(GatewayError):
    """Raised when the document store rejects a write."""
