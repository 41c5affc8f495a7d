#!/usr/bin/env python3
"""Tests for the Turtle output in csvw_generator.py"""

import json
import sys
import unittest
from pathlib import Path

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.collection import Collection
from rdflib.namespace import DCAT, DCTERMS, FOAF, RDF

sys.path.insert(0, str(Path(__file__).parent))

import csvw_generator
import csvw_generator_jsonld as csvw_gen
from ons_metadata import Metadata

FIXTURE = Path(__file__).parent / "testdata" / "ashe_metadata.json"
METADATA_URL = "https://api.example.org/v1/datasets/ashe-table-7-hours/editions/time-series/versions/1/metadata"

CSVW = csvw_generator.CSVW
OA = csvw_generator.OA


class TestCSVWGraph(unittest.TestCase):
    """Test the rdflib graph built from a CSVW document"""

    def setUp(self):
        metadata = Metadata.from_dict(json.loads(FIXTURE.read_text(encoding="utf-8")))
        self.document = csvw_gen.build_csvw_document(metadata, METADATA_URL)
        self.table = URIRef(self.document.url)
        self.graph = csvw_generator.build_csvw_graph(self.document)

    def test_table_fields(self):
        """Test table type and Dublin Core fields"""
        g = self.graph
        self.assertIn((self.table, RDF.type, CSVW.Table), g)
        self.assertEqual(g.value(self.table, DCTERMS.title), Literal(self.document.title))
        self.assertEqual(g.value(self.table, DCTERMS.accrualPeriodicity), Literal("Annual"))
        self.assertEqual(g.value(self.table, DCAT.theme), Literal("Earnings"))

    def test_publisher(self):
        """Test publisher node named by its href"""
        publisher = self.graph.value(self.table, DCTERMS.publisher)
        self.assertEqual(publisher, URIRef("https://www.ons.gov.uk"))
        self.assertEqual(self.graph.value(publisher, FOAF.name), Literal("Office for National Statistics"))

    def test_columns_ordered(self):
        """Test columns form an ordered list with column ids as nodes"""
        schema = self.graph.value(self.table, CSVW.tableSchema)
        head = self.graph.value(schema, CSVW.column)
        columns = list(Collection(self.graph, head))
        self.assertEqual(len(columns), 15)
        self.assertEqual(columns[0], URIRef(f"{self.document.url}#col=0"))
        self.assertEqual(self.graph.value(columns[0], CSVW.datatype), Literal("number"))
        self.assertEqual(self.graph.value(columns[0], CSVW.required), Literal(True))
        self.assertEqual(self.graph.value(columns[4], CSVW.title), Literal("Time"))

    def test_notes(self):
        """Test one annotation per alert and usage note"""
        notes = list(self.graph.objects(self.table, CSVW.note))
        self.assertEqual(len(notes), 3)
        for note in notes:
            self.assertIn((note, RDF.type, OA.Annotation), self.graph)

    def test_turtle_parses(self):
        """Test that the Turtle text parses back to an isomorphic size"""
        text = csvw_generator.serialize_csvw_turtle(self.document)
        parsed = Graph()
        parsed.parse(data=text, format="turtle")
        self.assertEqual(len(parsed), len(self.graph))

    def test_no_csv_url(self):
        """Test a blank table node when there is no CSV link"""
        document = csvw_gen.CSVWDocument(
            url="", title="t", description="", issued="", creator=csvw_gen.Creator(),
            contact=self.document.contact, theme="", license="", frequency="",
        )
        graph = csvw_generator.build_csvw_graph(document)
        tables = list(graph.subjects(RDF.type, CSVW.Table))
        self.assertEqual(len(tables), 1)
        self.assertIsInstance(tables[0], BNode)


if __name__ == "__main__":
    unittest.main()
