"""Tests for rdf2html.parser module."""

import pytest
import rdflib
from rdflib.compare import isomorphic
from rdflib.namespace import RDF, XSD

from rdf2html.errors import ParseError, ResolutionError
from rdf2html.parser import parse
from rdf2html.terms import BlankNode, Literal, URIRef

EX = "http://example.org/"
PREAMBLE = f"@prefix ex: <{EX}> .\n@prefix xsd: <{XSD}> .\n"


def ex(name):
    return URIRef(EX + name)


def parse_body(body, source="doc.ttl"):
    return parse(PREAMBLE + body, source)


# ── Statements ───────────────────────────────────────────────────────────


class TestStatements:

    def test_single_triple(self):
        g = parse_body("ex:a ex:p ex:b .")
        assert list(g) == [(ex("a"), ex("p"), ex("b"))]
        assert g.source == "doc.ttl"

    def test_semicolon_and_comma(self):
        g = parse_body('ex:a ex:p 1, 2 ;\n  ex:q "x" .')
        assert [(t.predicate, str(t.object)) for t in g] == [
            (ex("p"), "1"), (ex("p"), "2"), (ex("q"), "x"),
        ]
        assert {t.subject for t in g} == {ex("a")}

    def test_trailing_and_repeated_semicolons(self):
        g = parse_body("ex:a ex:p 1 ;; ex:q 2 ; .")
        assert len(g) == 2

    def test_a_means_rdf_type(self):
        g = parse_body("ex:a a ex:Class .")
        assert g.triples[0].predicate == RDF.type

    def test_triples_keep_document_order(self):
        g = parse_body("ex:z ex:p 1 .\nex:a ex:p 2 .\nex:z ex:q 3 .")
        assert [str(t.object) for t in g] == ["1", "2", "3"]
        assert g.subjects() == (ex("z"), ex("a"))

    def test_empty_input(self):
        assert len(parse("")) == 0
        assert len(parse("# nothing here\n\n   # still nothing\n")) == 0

    def test_prefix_only_document(self):
        g = parse(PREAMBLE)
        assert len(g) == 0
        assert g.prefixes == {"ex": EX, "xsd": str(XSD)}

    def test_last_prefix_declaration_wins(self):
        g = parse("@prefix ex: <http://one/> .\n@prefix ex: <http://two/> .\nex:a ex:p ex:b .")
        assert g.triples[0].subject == URIRef("http://two/a")
        assert g.prefixes["ex"] == "http://two/"

    def test_sparql_style_directives(self):
        g = parse(f"PREFIX ex: <{EX}>\nBASE <{EX}dir/>\n<a> ex:p ex:b .")
        assert g.triples[0].subject == ex("dir/a")
        assert g.base == EX + "dir/"

    def test_base_resolution(self):
        g = parse(f"@base <{EX}dir/> .\n<a> <p> <../b> .")
        assert list(g) == [(ex("dir/a"), ex("dir/p"), ex("b"))]

    def test_base_argument(self):
        g = parse("<a> <p> <b> .", base=EX)
        assert g.triples[0].subject == ex("a")


# ── Literals ─────────────────────────────────────────────────────────────


class TestLiterals:

    def _object(self, body):
        return parse_body(f"ex:a ex:p {body} .").triples[0].object

    def test_plain_string(self):
        lit = self._object('"hello"')
        assert lit == Literal("hello")
        assert lit.datatype is None and lit.language is None

    def test_language_tag(self):
        lit = self._object('"bonjour"@fr')
        assert str(lit) == "bonjour"
        assert lit.language == "fr"

    def test_typed_literal_keeps_lexical_form(self):
        lit = self._object('"007"^^xsd:integer')
        assert str(lit) == "007"
        assert lit.datatype == XSD.integer

    def test_datatype_as_iriref(self):
        lit = self._object(f'"x"^^<{EX}dt>')
        assert lit.datatype == ex("dt")

    @pytest.mark.parametrize("text,datatype", [
        ("42", XSD.integer),
        ("-3.50", XSD.decimal),
        ("1.0e3", XSD.double),
        ("true", XSD.boolean),
    ])
    def test_bare_numerals_and_booleans(self, text, datatype):
        lit = self._object(text)
        assert str(lit) == text
        assert lit.datatype == datatype

    @pytest.mark.parametrize("body", ["true.", "false.", "42."])
    def test_literal_directly_before_final_dot(self, body):
        g = parse_body(f"ex:a ex:p {body}")
        assert str(g.triples[0].object) == body[:-1]

    def test_escapes_decoded(self):
        lit = self._object('"tab\\there\\u00e9"')
        assert str(lit) == "tab\thereé"

    def test_long_string(self):
        lit = self._object('"""two\nlines"""')
        assert str(lit) == "two\nlines"

    def test_lang_string_datatype_rejected(self):
        rdf = f"@prefix rdf: <{RDF}> .\n"
        with pytest.raises(ParseError, match="langString"):
            parse(rdf + PREAMBLE + 'ex:a ex:p "x"^^rdf:langString .')


# ── Blank nodes, property lists and collections ──────────────────────────


class TestNesting:

    def test_nested_property_list(self):
        g = parse_body("ex:a ex:p [ ex:q 1 ; ex:r 2 ] .")
        b = BlankNode("doc.ttl", 0)
        assert [(t.subject, t.predicate) for t in g] == [
            (ex("a"), ex("p")), (b, ex("q")), (b, ex("r")),
        ]
        assert g.triples[0].object == b

    def test_deeply_nested(self):
        g = parse_body("ex:a ex:p [ ex:q [ ex:r 1 ] ] ; ex:s 2 .")
        assert [t.predicate for t in g] == [ex("p"), ex("q"), ex("r"), ex("s")]
        assert g.triples[3].subject == ex("a")

    def test_property_list_as_statement(self):
        g = parse_body("[ ex:p 1 ] .")
        assert len(g) == 1
        assert isinstance(g.triples[0].subject, BlankNode)

    def test_property_list_subject_with_predicates(self):
        g = parse_body("[ ex:p 1 ] ex:q 2 .")
        assert len(g) == 2
        assert g.triples[0].subject == g.triples[1].subject

    def test_empty_brackets(self):
        g = parse_body("[] ex:p [] .")
        s, _, o = g.triples[0]
        assert isinstance(s, BlankNode) and isinstance(o, BlankNode)
        assert s != o

    def test_labelled_blank_nodes_shared_within_document(self):
        g = parse_body("_:x ex:p 1 .\n_:x ex:q _:y .")
        assert g.triples[0].subject == g.triples[1].subject
        assert g.triples[0].subject.label == "x"
        assert g.blank_nodes == ("x", "y")

    def test_blank_nodes_isolated_across_documents(self):
        body = "_:x ex:p 1 ."
        a = parse_body(body, source="a.ttl")
        b = parse_body(body, source="b.ttl")
        assert a.triples[0].subject != b.triples[0].subject

    def test_collection(self):
        g = parse_body("ex:a ex:p (1 2) .")
        (_, _, head), first, rest, second, end = g.triples
        assert first == (head, RDF.first, first.object)
        assert str(first.object) == "1"
        assert rest.subject == head and rest.predicate == RDF.rest
        assert second == (rest.object, RDF.first, second.object)
        assert end == (rest.object, RDF.rest, RDF.nil)

    def test_empty_collection_is_nil(self):
        g = parse_body("ex:a ex:p () .")
        assert g.triples[0].object == RDF.nil

    def test_collection_with_nested_items(self):
        g = parse_body("ex:a ex:p ([ ex:q 1 ] (2)) .")
        preds = [t.predicate for t in g]
        assert preds.count(RDF.first) == 3
        assert preds.count(RDF.rest) == 3

    def test_collection_as_subject(self):
        g = parse_body("(1) ex:p 2 .")
        assert g.triples[-1].predicate == ex("p")
        assert g.triples[-1].subject == g.triples[0].subject


# ── Errors ───────────────────────────────────────────────────────────────


class TestParseErrors:

    def _error(self, text):
        with pytest.raises(ParseError) as exc_info:
            parse(text, "bad.ttl")
        return exc_info.value

    def test_undeclared_prefix(self):
        err = self._error("\nex:a ex:p ex:b .")
        assert (err.line, err.column) == (2, 1)
        assert "undeclared prefix 'ex:'" in err.message
        assert isinstance(err.__cause__, ResolutionError)

    def test_missing_object(self):
        err = self._error(PREAMBLE + "ex:a ex:p .")
        assert (err.line, err.column) == (3, 11)
        assert "expected an object" in err.message

    def test_missing_predicate(self):
        err = self._error(PREAMBLE + 'ex:a "x" ex:b .')
        assert "expected a predicate" in err.message

    def test_literal_as_subject(self):
        err = self._error('"x" <http://e/p> <http://e/o> .')
        assert (err.line, err.column) == (1, 1)

    def test_missing_final_dot(self):
        err = self._error(PREAMBLE + "ex:a ex:p ex:b")
        assert "end of input" in err.message

    def test_unclosed_property_list(self):
        err = self._error(PREAMBLE + "ex:a ex:p [ ex:q 1")
        assert "property list opened at line 3 column 11" in err.message

    def test_unclosed_collection(self):
        err = self._error(PREAMBLE + "ex:a ex:p (1 2")
        assert "collection opened at line 3" in err.message

    def test_relative_iri_without_base(self):
        err = self._error("<a> <http://e/p> <http://e/o> .")
        assert (err.line, err.column) == (1, 1)

    def test_prefix_directive_requires_dot(self):
        err = self._error(f"@prefix ex: <{EX}>\nex:a ex:p ex:b .")
        assert (err.line, err.column) == (2, 1)

    def test_error_carries_source(self):
        err = self._error("ex:a")
        assert err.source == "bad.ttl"
        assert str(err).startswith("bad.ttl:")

    def test_lexer_error_surfaces_as_parse_error(self):
        err = self._error(PREAMBLE + 'ex:a ex:p "unterminated .')
        assert err.line == 3


# ── Fidelity against rdflib ──────────────────────────────────────────────


ROUND_TRIP_DOC = PREAMBLE + """
@prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .

# A small vocabulary
ex:Person a rdfs:Class ;
    rdfs:label "Person"@en, "Personne"@fr ;
    rdfs:comment \"\"\"Someone.
Anyone, really.\"\"\" .

ex:alice a ex:Person ;
    ex:age "42"^^xsd:integer ;
    ex:height 1.75 ;
    ex:active true ;
    ex:knows _:bob , [ a ex:Person ; ex:name "Carol" ] ;
    ex:tags ( "a" "b" ex:c ) .

_:bob ex:name "Bob" ; ex:knows _:bob .
[ ex:orphan "standalone" ] .
"""


class TestRdflibFidelity:

    def test_isomorphic_with_rdflib(self):
        ours = parse(ROUND_TRIP_DOC, "doc.ttl").to_rdflib()
        reference = rdflib.Graph().parse(data=ROUND_TRIP_DOC, format="turtle")
        assert len(ours) == len(reference)
        assert isomorphic(ours, reference)

    def test_round_trip_through_serializer(self):
        g = parse(ROUND_TRIP_DOC, "doc.ttl")
        text = g.to_rdflib().serialize(format="turtle")
        again = parse(text, "again.ttl")
        assert len(again) == len(g)
        assert isomorphic(again.to_rdflib(), g.to_rdflib())

    def test_prefixes_bound_on_export(self):
        rg = parse(ROUND_TRIP_DOC).to_rdflib()
        assert dict(rg.namespaces())["ex"] == URIRef(EX)
