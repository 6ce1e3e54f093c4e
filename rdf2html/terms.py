"""
rdf2html - In-memory graph model.

IRIs and literals reuse rdflib's term classes. Blank nodes do not: an
rdflib BNode compares equal to any other BNode with the same id, while a
blank node here is an index into the arena of the Graph that owns it and
only ever equals nodes from the same source document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, NamedTuple

from rdflib import BNode, Literal, URIRef
from rdflib import Graph as RDFGraph

__all__ = [
    "BlankNode",
    "Graph",
    "Literal",
    "Node",
    "Subject",
    "Triple",
    "URIRef",
]


@dataclass(frozen=True)
class BlankNode:
    """A blank node scoped to one source document."""

    source: str
    index: int
    label: str | None = None

    def __str__(self) -> str:
        return f"_:{self.label}" if self.label else f"_:anon{self.index}"


Subject = URIRef | BlankNode
Node = URIRef | BlankNode | Literal


class Triple(NamedTuple):
    subject: Subject
    predicate: URIRef
    object: Node


@dataclass(frozen=True)
class Graph:
    """
    Parsed content of one Turtle document.

    Triples keep the order in which the parser met them. ``blank_nodes``
    is the arena: slot ``i`` holds the label of ``BlankNode(source, i)``
    (``None`` for anonymous nodes).
    """

    source: str
    triples: tuple[Triple, ...] = ()
    prefixes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    base: str | None = None
    blank_nodes: tuple[str | None, ...] = ()

    def __len__(self) -> int:
        return len(self.triples)

    def __iter__(self) -> Iterator[Triple]:
        return iter(self.triples)

    def subjects(self) -> tuple[Subject, ...]:
        """Distinct subjects in first-seen order."""
        return tuple(dict.fromkeys(t.subject for t in self.triples))

    def by_subject(self) -> list[tuple[Subject, list[Triple]]]:
        """Group triples by subject, first-seen subject order, insertion order within."""
        groups: dict[Subject, list[Triple]] = {}
        for triple in self.triples:
            groups.setdefault(triple.subject, []).append(triple)
        return list(groups.items())

    def blank_node(self, index: int) -> BlankNode:
        return BlankNode(self.source, index, self.blank_nodes[index])

    def to_rdflib(self) -> RDFGraph:
        """Copy the triples into an rdflib Graph with this document's prefixes bound."""
        g = RDFGraph()
        for prefix, ns in self.prefixes.items():
            g.bind(prefix, URIRef(ns), override=True, replace=True)

        bnodes: dict[BlankNode, BNode] = {}

        def convert(node: Node):
            if isinstance(node, BlankNode):
                if node not in bnodes:
                    bnodes[node] = BNode()
                return bnodes[node]
            return node

        for s, p, o in self.triples:
            g.add((convert(s), p, convert(o)))
        return g
