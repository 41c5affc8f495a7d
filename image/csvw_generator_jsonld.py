#!/usr/bin/env python3
# ----------------------------- requirements.txt -----------------------------
# httpx==0.27.2
# chardet==5.2.0
# rdflib==7.0.0
# ---------------------------------------------------------------------------

"""
ONS V4 dataset metadata -> CSVW (CSV on the Web) JSON-LD.

- Fetches one version-metadata document from the ONS dataset API.
- Copies title, description, release date, publisher, contact, theme, licence
  and release frequency into a CSVW table description.
- Derives the table schema from a V4 header row: one observation column,
  N data-marking columns, then a code/label column pair per dimension.
- Turns alerts and usage notes into CSVW notes.
- Prints compact JSON-LD to stdout (or Turtle with --format turtle).

USAGE
------

Defaults (ASHE table 7 hours, fixed V4 header):

    python csvw_generator_jsonld.py

Another dataset version, header taken from its V4 CSV:

    python csvw_generator_jsonld.py \\
        --url "https://api.beta.ons.gov.uk/v1/datasets/cpih01/editions/time-series/versions/6/metadata" \\
        --header-csv /data/cpih01-time-series-v6.csv \\
        --indent 2 \\
        --output cpih01.csv-metadata.json

Notes
-----
- The first header token is ``<name>_<N>``; N is the number of data-marking
  columns after the observation column.
- A dimension header with no matching dimension in the metadata falls back to
  an empty dimension (logged as a warning); --strict-dimensions makes it an error.
- Encoding of --header-csv is detected via chardet; override with --encoding.
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import chardet
import httpx

from csvw_errors import (
    CSVWError,
    EmptyContactsError,
    KeyCollisionError,
    MalformedHeaderError,
    UnmatchedDimensionError,
)
from csvw_generator import serialize_csvw_turtle
from ons_metadata import (
    DEFAULT_METADATA_URL,
    DEFAULT_TIMEOUT,
    Alert,
    CodeList,
    ContactDetails,
    Metadata,
    UsageNote,
    fetch_metadata,
)


CSVW_CONTEXT = "http://www.w3.org/ns/csvw"

DEFAULT_HEADER_ROW = (
    "V4_2,Data marking,Coefficient of variation,"
    "Time_codelist,Time,ashe-geography,Geography,Hours_codelist,Hours,"
    "Sex_codelist,Sex,WorkingPattern_codelist,WorkingPattern,Statistics_codelist,Statistics"
)

# Usage notes are not yet tied to a specific column
USAGE_NOTE_FRAGMENT = "#col=need-to-store"

_MARKING_COUNT = re.compile(r"[0-9]+")


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Set up logging configuration."""
    if quiet:
        level = logging.WARNING
    else:
        level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


# ------------------------------ V4 header ------------------------------

def detect_encoding(path: Path, sample_bytes: int = 64 * 1024) -> str:
    """Detect file encoding using chardet."""
    with path.open("rb") as f:
        raw = f.read(sample_bytes)
    res = chardet.detect(raw)
    encoding = (res.get("encoding") or "utf-8").lower()
    confidence = res.get("confidence") or 0
    logging.info(f"Detected encoding: {encoding} (confidence: {confidence:.2f})")
    return encoding


def read_header_row(path: Path, encoding: Optional[str] = None) -> List[str]:
    """Read the first row of a V4 CSV file."""
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    enc = encoding or detect_encoding(path)
    with path.open("r", encoding=enc, newline="") as f:
        try:
            row = next(csv.reader(f))
        except StopIteration:
            raise MalformedHeaderError(f"CSV file is empty: {path}")
        except csv.Error as exc:
            raise MalformedHeaderError(f"cannot read header row from {path}: {exc}") from exc
    logging.info(f"Read {len(row)} header columns from {path}")
    return row


@dataclass(frozen=True)
class V4Header:
    """A V4 header row split into its observation, marking and dimension parts."""

    observation: str
    markings: Tuple[str, ...]
    dimensions: Tuple[Tuple[str, str], ...]

    @classmethod
    def parse(cls, header: Union[str, Sequence[str]]) -> "V4Header":
        tokens = header.split(",") if isinstance(header, str) else list(header)
        if not tokens:
            raise MalformedHeaderError("not valid v4 header: no columns")

        first = tokens[0]
        parts = first.split("_")
        if len(parts) != 2 or not _MARKING_COUNT.fullmatch(parts[1]):
            raise MalformedHeaderError(f"not valid v4 header: first column {first!r} is not <name>_<count>")

        n_markings = int(parts[1])
        offset = n_markings + 1
        if len(tokens) < offset:
            raise MalformedHeaderError(
                f"not valid v4 header: {first!r} declares {n_markings} data marking columns "
                f"but only {len(tokens) - 1} columns follow"
            )

        rest = tokens[offset:]
        if len(rest) % 2:
            raise MalformedHeaderError(
                f"not valid v4 header: dimension column {rest[-1]!r} has no code/label pair"
            )

        return cls(
            observation=first,
            markings=tuple(tokens[1:offset]),
            dimensions=tuple((rest[i], rest[i + 1]) for i in range(0, len(rest), 2)),
        )

    @property
    def width(self) -> int:
        return 1 + len(self.markings) + 2 * len(self.dimensions)


# ------------------------------ Columns ------------------------------

def column_id(csv_url: str, position: int) -> str:
    return f"{csv_url}#col={position}"


@dataclass(frozen=True)
class ObservationColumn:
    title: str
    unit: str
    csv_url: str
    position: int = 0

    def to_jsonld(self) -> Dict[str, Any]:
        return {
            "titles": self.title,
            "name": self.unit,
            "datatype": "number",
            "required": True,
            "@id": column_id(self.csv_url, self.position),
        }


@dataclass(frozen=True)
class MarkingColumn:
    title: str
    csv_url: str
    position: int

    def to_jsonld(self) -> Dict[str, Any]:
        return {
            "titles": self.title,
            "@id": column_id(self.csv_url, self.position),
        }


@dataclass(frozen=True)
class DimensionCodeColumn:
    name: str
    code_list_url: str
    csv_url: str
    position: int

    @property
    def value_url(self) -> str:
        return f"{self.code_list_url}/codes/{{{self.name}}}"

    def to_jsonld(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "@id": column_id(self.csv_url, self.position),
            "valueURL": self.value_url,
            "required": True,
        }


@dataclass(frozen=True)
class DimensionLabelColumn:
    title: str
    name: str
    description: str
    csv_url: str
    position: int

    def to_jsonld(self) -> Dict[str, Any]:
        return {
            "titles": self.title,
            "name": self.name,
            "description": self.description,
            "@id": column_id(self.csv_url, self.position),
        }


Column = Union[ObservationColumn, MarkingColumn, DimensionCodeColumn, DimensionLabelColumn]


def find_dimension(dimensions: Sequence[CodeList], name: str) -> Optional[CodeList]:
    for dim in dimensions:
        if dim.name == name:
            return dim
    return None


def populate_columns(
    header: Union[str, Sequence[str], V4Header],
    dimensions: Sequence[CodeList],
    unit: str,
    csv_url: str,
    strict_dimensions: bool = False,
) -> List[Column]:
    """
    Build the ordered column descriptors for a V4 header.

    Args:
        header: Header row as a string, token list, or parsed ``V4Header``
        dimensions: Dimensions listed in the metadata
        unit: Unit of measure for the observation column
        csv_url: CSV download URL; column ids are ``<csv_url>#col=<position>``
        strict_dimensions: Raise instead of falling back when a dimension is missing

    Returns:
        Columns in header order, positions 0..n-1
    """
    v4 = header if isinstance(header, V4Header) else V4Header.parse(header)

    columns: List[Column] = [ObservationColumn(title=v4.observation, unit=unit, csv_url=csv_url)]

    for i, title in enumerate(v4.markings, start=1):
        columns.append(MarkingColumn(title=title, csv_url=csv_url, position=i))

    position = len(columns)
    for code_header, dim_header in v4.dimensions:
        dim_name = dim_header.lower()
        dim = find_dimension(dimensions, dim_name)
        if dim is None:
            if strict_dimensions:
                raise UnmatchedDimensionError(
                    f"dimension {dim_name!r} from header column {dim_header!r} not found in metadata",
                    dimension=dim_name,
                )
            logging.warning("No dimension named %r in metadata; label column will be empty", dim_name)
            dim = CodeList()

        columns.append(DimensionCodeColumn(
            name=code_header,
            code_list_url=dim.href,
            csv_url=csv_url,
            position=position,
        ))
        columns.append(DimensionLabelColumn(
            title=dim.label,
            name=dim_name,
            description=dim.description,
            csv_url=csv_url,
            position=position + 1,
        ))
        position += 2

    logging.debug("Built %d of %d columns from header %r", len(columns), v4.width, v4.observation)
    return columns


# ------------------------------ Notes ------------------------------

@dataclass(frozen=True)
class Note:
    type: str
    target: str
    body: str
    motivation: str = ""

    def to_jsonld(self) -> Dict[str, str]:
        return {
            "type": self.type,
            "target": self.target,
            "body": self.body,
            "motivation": self.motivation,
        }


def add_notes(csv_url: str, alerts: Sequence[Alert], usage_notes: Sequence[UsageNote]) -> List[Note]:
    """Alerts first, then usage notes, each in their original order."""
    notes = [Note(type=a.type, target=csv_url, body=a.description) for a in alerts or ()]
    notes.extend(
        Note(type=u.title, target=csv_url + USAGE_NOTE_FRAGMENT, body=u.note)
        for u in usage_notes or ()
    )
    return notes


# ------------------------------ Document ------------------------------

@dataclass(frozen=True)
class Creator:
    name: str = ""
    type: str = ""
    id: str = ""

    def to_jsonld(self) -> Dict[str, str]:
        return {"name": self.name, "@type": self.type, "@id": self.id}


@dataclass(frozen=True)
class CSVWDocument:
    url: str
    title: str
    description: str
    issued: str
    creator: Creator
    contact: ContactDetails
    theme: str
    license: str
    frequency: str
    about_url: str = ""
    columns: Tuple[Column, ...] = ()
    notes: Tuple[Note, ...] = ()
    context: str = CSVW_CONTEXT

    def to_jsonld(self) -> Dict[str, Any]:
        """Return a fresh JSON-LD dict; the document itself is never modified."""
        return {
            "@context": self.context,
            "url": self.url,
            "dct:title": self.title,
            "dct:description": self.description,
            "dct:issued": self.issued,
            "dct:publisher": self.creator.to_jsonld(),
            "dcat:contactPoint": self.contact.to_dict(),
            "tableSchema": {
                "columns": [c.to_jsonld() for c in self.columns],
                "aboutUrl": self.about_url,
            },
            "dcat:theme": self.theme,
            "dct:license": self.license,
            "dct:accrualPeriodicity": self.frequency,
            "notes": [n.to_jsonld() for n in self.notes],
        }


def assign_top_level(metadata: Metadata, about_url: str = "") -> CSVWDocument:
    """Copy the table-level fields; columns and notes are left empty."""
    if not metadata.contacts:
        raise EmptyContactsError(f"metadata for {metadata.title!r} lists no contacts")
    return CSVWDocument(
        url=metadata.downloads.csv.href,
        title=metadata.title,
        description=metadata.description,
        issued=metadata.release_date,
        creator=Creator(
            name=metadata.publisher.name,
            type=metadata.publisher.type,
            id=metadata.publisher.href,
        ),
        contact=metadata.contacts[0],
        theme=metadata.theme,
        license=metadata.license,
        frequency=metadata.release_frequency,
        about_url=about_url,
    )


def build_csvw_document(
    metadata: Metadata,
    metadata_url: str,
    header: Union[str, Sequence[str]] = DEFAULT_HEADER_ROW,
    strict_dimensions: bool = False,
) -> CSVWDocument:
    """Assemble the full CSVW document from already-fetched metadata."""
    csv_url = metadata.downloads.csv.href
    if not csv_url:
        logging.warning("Metadata has no CSV download link; column ids will be relative")

    top = assign_top_level(metadata, about_url=metadata_url)
    columns = populate_columns(
        header,
        metadata.dimensions,
        metadata.unit_of_measure,
        csv_url,
        strict_dimensions=strict_dimensions,
    )
    notes = add_notes(csv_url, metadata.alerts, metadata.usage_notes)
    logging.info("Built CSVW document with %d columns and %d notes", len(columns), len(notes))

    return CSVWDocument(
        url=top.url,
        title=top.title,
        description=top.description,
        issued=top.issued,
        creator=top.creator,
        contact=top.contact,
        theme=top.theme,
        license=top.license,
        frequency=top.frequency,
        about_url=top.about_url,
        columns=tuple(columns),
        notes=tuple(notes),
    )


def generate_csvw(
    url: str = DEFAULT_METADATA_URL,
    header: Union[str, Sequence[str]] = DEFAULT_HEADER_ROW,
    strict_dimensions: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> CSVWDocument:
    """Fetch metadata from ``url`` and build its CSVW document."""
    metadata = fetch_metadata(url, client=client, timeout=timeout)
    return build_csvw_document(metadata, url, header=header, strict_dimensions=strict_dimensions)


def merge_extra_fields(document: Dict[str, Any], extra: Dict[str, str]) -> Dict[str, Any]:
    """Return a copy of ``document`` with ``extra`` added at the top level."""
    merged = dict(document)
    for key, value in extra.items():
        if key in merged:
            raise KeyCollisionError(f"key collision: {key!r} is already set", key=key)
        merged[key] = value
    return merged


def dump_json(payload: Dict[str, Any], indent: Optional[int] = None) -> str:
    if indent is None:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return json.dumps(payload, indent=indent, ensure_ascii=False)


def write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(text + "\n")
        return
    if output.parent != Path("."):
        output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    logging.info("Wrote CSVW metadata to %s", output)


# ------------------------------ CLI ------------------------------

def _extra_field(value: str) -> Tuple[str, str]:
    key, sep, val = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key, val


def parse_args(argv: Optional[Sequence[str]] = None):
    p = argparse.ArgumentParser(description="Fetch ONS version metadata and emit CSVW metadata.")
    p.add_argument("--url", default=DEFAULT_METADATA_URL, help="Version metadata URL")
    header = p.add_mutually_exclusive_group()
    header.add_argument("--header", default=DEFAULT_HEADER_ROW, help="Comma-separated V4 header row")
    header.add_argument("--header-csv", type=Path, help="Read the V4 header from the first row of this CSV")
    p.add_argument("--encoding", help="Force encoding of --header-csv (otherwise detected)")
    p.add_argument("--format", choices=("jsonld", "turtle"), default="jsonld", help="Output format")
    p.add_argument("--output", "-o", type=Path, help="Output path (default: stdout)")
    p.add_argument("--indent", type=int, help="Pretty-print JSON with this indent")
    p.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="HTTP timeout in seconds")
    p.add_argument("--strict-dimensions", action="store_true",
                   help="Fail when a header dimension is missing from the metadata")
    p.add_argument("--extra", type=_extra_field, action="append", default=[], metavar="KEY=VALUE",
                   help="Extra top-level JSON-LD field (repeatable)")
    p.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    p.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    args = p.parse_args(argv)
    if args.extra and args.format != "jsonld":
        p.error("--extra is only supported with --format jsonld")
    return args


def main(argv: Optional[Sequence[str]] = None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    try:
        if args.header_csv:
            header: Union[str, List[str]] = read_header_row(args.header_csv, args.encoding)
        else:
            header = args.header

        document = generate_csvw(
            args.url,
            header=header,
            strict_dimensions=args.strict_dimensions,
            timeout=args.timeout,
        )

        if args.format == "turtle":
            text = serialize_csvw_turtle(document)
        else:
            payload = document.to_jsonld()
            if args.extra:
                payload = merge_extra_fields(payload, dict(args.extra))
            text = dump_json(payload, args.indent)

        write_output(text, args.output)

    except (CSVWError, OSError, LookupError, UnicodeDecodeError) as e:
        logging.error("Error during conversion: %s", e)
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
