"""Exceptions raised while generating CSVW metadata."""

from __future__ import annotations

from typing import Optional


class CSVWError(Exception):
    """Base exception for all CSVW generation errors."""


class MetadataRequestError(CSVWError):
    """The metadata request could not be built, sent, or was answered with an error status."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class MetadataDecodeError(CSVWError):
    """The metadata response body is not a valid metadata document."""


class EmptyContactsError(CSVWError):
    """The metadata document lists no contacts."""


class MalformedHeaderError(CSVWError):
    """The header row does not follow the V4 layout."""


class UnmatchedDimensionError(CSVWError):
    """A dimension named in the header is missing from the metadata."""

    def __init__(self, message: str, dimension: str):
        super().__init__(message)
        self.dimension = dimension


class KeyCollisionError(CSVWError):
    """An extra top-level field would overwrite a generated one."""

    def __init__(self, message: str, key: str):
        super().__init__(message)
        self.key = key
