#!/usr/bin/env python3
# ----------------------------- requirements.txt -----------------------------
# rdflib==7.0.0
# ---------------------------------------------------------------------------

"""
CSVW document -> RDF (Turtle).

Builds the same table description that csvw_generator_jsonld.py prints as
JSON-LD, but as an rdflib Graph, so it can be loaded into a triple store
without resolving the remote CSVW context.

- Table node: the CSV download URL (blank node when the metadata has none).
- Columns: an ordered rdf:List under csvw:tableSchema/csvw:column.
- Notes: Web Annotation style nodes under csvw:note.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

from rdflib import BNode, Graph, Literal, Namespace, URIRef
from rdflib.collection import Collection
from rdflib.namespace import DCAT, DCTERMS, FOAF, RDF, XSD

if TYPE_CHECKING:
    from csvw_generator_jsonld import CSVWDocument


# ---- Vocabularies ----
CSVW = Namespace("http://www.w3.org/ns/csvw#")
VCARD = Namespace("http://www.w3.org/2006/vcard/ns#")
OA = Namespace("http://www.w3.org/ns/oa#")

# JSON-LD column keys -> predicates
COLUMN_PROPERTIES = {
    "titles": CSVW.title,
    "name": CSVW.name,
    "datatype": CSVW.datatype,
    "required": CSVW.required,
    "valueURL": CSVW.valueUrl,
    "description": DCTERMS.description,
}


def _node(uri: str) -> Union[URIRef, BNode]:
    return URIRef(uri) if uri else BNode()


def _add_text(g: Graph, subject, predicate, value: str) -> None:
    if value:
        g.add((subject, predicate, Literal(value)))


def build_csvw_graph(document: "CSVWDocument") -> Graph:
    g = Graph()
    g.bind("csvw", CSVW); g.bind("dcterms", DCTERMS); g.bind("dcat", DCAT)
    g.bind("foaf", FOAF); g.bind("vcard", VCARD); g.bind("oa", OA)

    table = _node(document.url)
    g.add((table, RDF.type, CSVW.Table))
    if document.url:
        g.add((table, CSVW.url, Literal(document.url, datatype=XSD.anyURI)))
    _add_text(g, table, DCTERMS.title, document.title)
    _add_text(g, table, DCTERMS.description, document.description)
    _add_text(g, table, DCTERMS.issued, document.issued)
    _add_text(g, table, DCAT.theme, document.theme)
    _add_text(g, table, DCTERMS.license, document.license)
    _add_text(g, table, DCTERMS.accrualPeriodicity, document.frequency)

    # Publisher
    publisher = _node(document.creator.id)
    g.add((table, DCTERMS.publisher, publisher))
    _add_text(g, publisher, FOAF.name, document.creator.name)
    _add_text(g, publisher, DCTERMS.type, document.creator.type)

    # Contact point
    contact = BNode()
    g.add((table, DCAT.contactPoint, contact))
    g.add((contact, RDF.type, VCARD.Kind))
    _add_text(g, contact, VCARD.fn, document.contact.name)
    if document.contact.email:
        g.add((contact, VCARD.hasEmail, URIRef(f"mailto:{document.contact.email}")))
    _add_text(g, contact, VCARD.hasTelephone, document.contact.telephone)

    # Table schema
    schema = BNode()
    g.add((table, CSVW.tableSchema, schema))
    g.add((schema, RDF.type, CSVW.Schema))
    if document.about_url:
        g.add((schema, CSVW.aboutUrl, Literal(document.about_url)))

    column_nodes = []
    for column in document.columns:
        props = column.to_jsonld()
        col = URIRef(props["@id"]) if document.url else BNode()
        g.add((col, RDF.type, CSVW.Column))
        for key, predicate in COLUMN_PROPERTIES.items():
            if key in props:
                g.add((col, predicate, Literal(props[key])))
        column_nodes.append(col)
    columns_list = BNode()
    Collection(g, columns_list, column_nodes)
    g.add((schema, CSVW.column, columns_list))

    # Notes
    for note in document.notes:
        n = BNode()
        g.add((table, CSVW.note, n))
        g.add((n, RDF.type, OA.Annotation))
        _add_text(g, n, DCTERMS.type, note.type)
        if note.target:
            g.add((n, OA.hasTarget, URIRef(note.target)))
        g.add((n, OA.bodyValue, Literal(note.body)))
        if note.motivation:
            g.add((n, OA.motivatedBy, Literal(note.motivation)))

    return g


def serialize_csvw_turtle(document: "CSVWDocument") -> str:
    """Serialize the CSVW document as Turtle text."""
    return build_csvw_graph(document).serialize(format="turtle").rstrip("\n")
