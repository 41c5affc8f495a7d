#!/usr/bin/env python3
# ----------------------------- requirements.txt -----------------------------
# httpx==0.27.2
# ---------------------------------------------------------------------------

"""
ONS dataset API version metadata: typed model and HTTP fetch.

- Decodes the ``/datasets/{id}/editions/{edition}/versions/{version}/metadata``
  document into frozen dataclasses.
- Absent or ``null`` fields decode to zero values (empty strings, empty lists,
  empty nested objects); unknown keys are ignored.
- Fields with the wrong JSON shape raise ``MetadataDecodeError``.
- Transport failures and error statuses raise ``MetadataRequestError``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from csvw_errors import MetadataDecodeError, MetadataRequestError


DEFAULT_METADATA_URL = (
    "https://api.beta.ons.gov.uk/v1/datasets/ashe-table-7-hours/editions/time-series/versions/1/metadata"
)
DEFAULT_TIMEOUT = 30.0

DEFAULT_HEADERS = {
    "User-Agent": "ons-csvw/0.1.0",
    "Accept": "application/json",
}


# -------------------------- Field decoding helpers --------------------------

def _get_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MetadataDecodeError(f"field '{key}' must be a string, got {type(value).__name__}")
    return value


def _get_object(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MetadataDecodeError(f"field '{key}' must be an object, got {type(value).__name__}")
    return value


def _get_list(data: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MetadataDecodeError(f"field '{key}' must be a list, got {type(value).__name__}")
    for index, item in enumerate(value):
        if not isinstance(item, dict):
            raise MetadataDecodeError(f"field '{key}[{index}]' must be an object, got {type(item).__name__}")
    return value


# ------------------------------ Metadata model ------------------------------

@dataclass(frozen=True)
class ContactDetails:
    name: str = ""
    email: str = ""
    telephone: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContactDetails":
        return cls(
            name=_get_str(data, "name"),
            email=_get_str(data, "email"),
            telephone=_get_str(data, "telephone"),
        )

    def to_dict(self) -> Dict[str, str]:
        """Serialise, leaving out empty fields."""
        out = {"email": self.email, "name": self.name, "telephone": self.telephone}
        return {k: v for k, v in out.items() if v}


@dataclass(frozen=True)
class Publisher:
    name: str = ""
    type: str = ""
    href: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Publisher":
        return cls(
            name=_get_str(data, "name"),
            type=_get_str(data, "type"),
            href=_get_str(data, "href"),
        )


@dataclass(frozen=True)
class CodeList:
    """A dataset dimension and the code list behind it."""

    id: str = ""
    name: str = ""
    label: str = ""
    description: str = ""
    href: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CodeList":
        return cls(
            id=_get_str(data, "id"),
            name=_get_str(data, "name"),
            label=_get_str(data, "label"),
            description=_get_str(data, "description"),
            href=_get_str(data, "href"),
        )


@dataclass(frozen=True)
class DownloadObject:
    href: str = ""
    size: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DownloadObject":
        size = data.get("size")
        # the API has served sizes both as strings and as numbers
        if isinstance(size, int) and not isinstance(size, bool):
            return cls(href=_get_str(data, "href"), size=str(size))
        return cls(href=_get_str(data, "href"), size=_get_str(data, "size"))


@dataclass(frozen=True)
class DownloadList:
    csv: DownloadObject = field(default_factory=DownloadObject)
    xls: DownloadObject = field(default_factory=DownloadObject)
    xlsx: DownloadObject = field(default_factory=DownloadObject)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DownloadList":
        return cls(
            csv=DownloadObject.from_dict(_get_object(data, "csv")),
            xls=DownloadObject.from_dict(_get_object(data, "xls")),
            xlsx=DownloadObject.from_dict(_get_object(data, "xlsx")),
        )


@dataclass(frozen=True)
class Alert:
    date: str = ""
    description: str = ""
    type: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Alert":
        return cls(
            date=_get_str(data, "date"),
            description=_get_str(data, "description"),
            type=_get_str(data, "type"),
        )


@dataclass(frozen=True)
class UsageNote:
    title: str = ""
    note: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageNote":
        return cls(title=_get_str(data, "title"), note=_get_str(data, "note"))


@dataclass(frozen=True)
class Metadata:
    """Version metadata as served by the ONS dataset API."""

    title: str = ""
    description: str = ""
    release_date: str = ""
    theme: str = ""
    license: str = ""
    release_frequency: str = ""
    unit_of_measure: str = ""
    contacts: List[ContactDetails] = field(default_factory=list)
    publisher: Publisher = field(default_factory=Publisher)
    dimensions: List[CodeList] = field(default_factory=list)
    downloads: DownloadList = field(default_factory=DownloadList)
    alerts: List[Alert] = field(default_factory=list)
    usage_notes: List[UsageNote] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Metadata":
        if not isinstance(data, dict):
            raise MetadataDecodeError(f"metadata must be a JSON object, got {type(data).__name__}")
        return cls(
            title=_get_str(data, "title"),
            description=_get_str(data, "description"),
            release_date=_get_str(data, "release_date"),
            theme=_get_str(data, "theme"),
            license=_get_str(data, "license"),
            release_frequency=_get_str(data, "release_frequency"),
            unit_of_measure=_get_str(data, "unit_of_measure"),
            contacts=[ContactDetails.from_dict(c) for c in _get_list(data, "contacts")],
            publisher=Publisher.from_dict(_get_object(data, "publisher")),
            dimensions=[CodeList.from_dict(d) for d in _get_list(data, "dimensions")],
            downloads=DownloadList.from_dict(_get_object(data, "downloads")),
            alerts=[Alert.from_dict(a) for a in _get_list(data, "alerts")],
            usage_notes=[UsageNote.from_dict(u) for u in _get_list(data, "usage_notes")],
        )


# ------------------------------ HTTP fetch ------------------------------

def decode_metadata(body: bytes) -> Metadata:
    """Decode a raw response body into ``Metadata``."""
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise MetadataDecodeError(f"metadata response is not valid JSON: {exc}") from exc
    return Metadata.from_dict(payload)


def _fetch(client: httpx.Client, url: str) -> Metadata:
    try:
        response = client.get(url, headers=DEFAULT_HEADERS)
    except httpx.InvalidURL as exc:
        raise MetadataRequestError(f"Invalid metadata URL {url!r}: {exc}", url=url) from exc
    except httpx.HTTPError as exc:
        raise MetadataRequestError(f"Failed to fetch metadata from {url}: {exc}", url=url) from exc

    if response.status_code >= 400:
        raise MetadataRequestError(
            f"Metadata request to {url} failed with status {response.status_code}",
            url=url,
            status_code=response.status_code,
        )

    logging.debug("Received %d bytes from %s", len(response.content), url)
    return decode_metadata(response.content)


def fetch_metadata(
    url: str = DEFAULT_METADATA_URL,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Metadata:
    """
    GET ``url`` once and decode the body as version metadata.

    Args:
        url: Metadata endpoint
        client: Optional preconfigured client; one is created (and closed) otherwise
        timeout: Request timeout in seconds, used only when no client is given

    Raises:
        MetadataRequestError: invalid URL, transport failure, or status >= 400
        MetadataDecodeError: body is not a metadata document
    """
    logging.info("Fetching metadata from %s", url)
    if client is None:
        with httpx.Client(timeout=timeout) as own_client:
            metadata = _fetch(own_client, url)
    else:
        metadata = _fetch(client, url)
    logging.info(
        "Fetched metadata '%s' with %d dimensions",
        metadata.title,
        len(metadata.dimensions),
    )
    return metadata
