#!/usr/bin/env python3
"""Quick end-to-end check of the ASHE table 7 CSVW document against the fixture metadata."""

import sys
import json
from pathlib import Path

import httpx

# Add image directory to path
sys.path.insert(0, str(Path(__file__).parent / "image"))

import csvw_generator_jsonld  # type: ignore

FIXTURE = Path(__file__).parent / "image" / "testdata" / "ashe_metadata.json"


def test_ashe_csvw_document():
    """Fetch the fixture through a mock transport and check the CSVW output."""

    body = FIXTURE.read_bytes()
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body))

    with httpx.Client(transport=transport) as client:
        document = csvw_generator_jsonld.generate_csvw(client=client)

    output = json.loads(csvw_generator_jsonld.dump_json(document.to_jsonld()))
    print(f"✓ Generated CSVW for '{output['dct:title']}'")

    columns = output["tableSchema"]["columns"]
    assert len(columns) == 15, f"expected 15 columns, got {len(columns)}"
    print(f"✓ Found {len(columns)} columns")

    csv_url = output["url"]
    for position, column in enumerate(columns):
        assert column["@id"] == f"{csv_url}#col={position}", column
    print("✓ Column ids are contiguous")

    labels = [c["titles"] for c in columns[4::2]]
    assert labels == ["Time", "Geography", "Hours", "Sex", "Working pattern", "Statistics"], labels
    print(f"✓ Dimension labels: {', '.join(labels)}")

    assert output["tableSchema"]["aboutUrl"] == csvw_generator_jsonld.DEFAULT_METADATA_URL
    assert output["dcat:contactPoint"]["name"] == "Nicola Kristiansen"

    targets = [n["target"] for n in output["notes"]]
    assert targets == [csv_url, csv_url + "#col=need-to-store", csv_url + "#col=need-to-store"], targets
    print(f"✓ Found {len(targets)} notes")

    print("✅ All checks passed!")


if __name__ == "__main__":
    test_ashe_csvw_document()
