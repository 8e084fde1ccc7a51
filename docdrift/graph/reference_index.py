"""
Reference Index for DocDrift

This module builds a NetworkX-based bipartite index between code symbols
and the documentation sections that reference them. The drift aggregator
uses it to find affected documentation for a set of changed symbols; the
priority scorer uses it to count documentation references.

Design Decisions:
    - Uses an undirected NetworkX Graph with two node kinds, tagged by a
      `kind` attribute ("symbol" / "section")
    - Symbol node IDs are ("symbol", name); section node IDs are
      ("section", doc_path, index) so equal titles never collide
    - Section nodes store the DocumentationSection as an attribute
    - Built once per DriftSnapshot and only read afterwards

Academic Context:
    Input: Mapping of doc path -> DocumentationSnapshot
    Transformation: Symbol/section edge construction
    Output: Read-only lookup of referencing sections per symbol
    Limitation: Matching is by name only; two symbols with the same name
    in different files share one node
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

import networkx as nx

from docdrift.models import DocumentationSection, DocumentationSnapshot


@dataclass(frozen=True)
class SectionRef:
    """
    A documentation section located within its document.

    Attributes:
        doc_path: Snapshot key of the documentation file
        index: Position of the section within the document
        section: The section itself
    """

    doc_path: str
    index: int
    section: DocumentationSection

    @property
    def title(self) -> str:
        return self.section.title


def _symbol_id(name: str) -> tuple[str, str]:
    return ("symbol", name)


class ReferenceIndex:
    """
    Bipartite symbol <-> section index over a snapshot's documentation.

    Attributes:
        graph: The underlying NetworkX Graph
        doc_index: Mapping from doc paths to their section node IDs

    Usage:
        index = ReferenceIndex.from_documentation(snapshot.documentation)
        for ref in index.sections_referencing("connect"):
            print(ref.doc_path, ref.title)
    """

    def __init__(self) -> None:
        """Initialize an empty reference index."""
        self._graph: nx.Graph = nx.Graph()
        self._doc_index: dict[str, list[tuple]] = {}

    @classmethod
    def from_documentation(
        cls, documentation: Mapping[str, DocumentationSnapshot]
    ) -> "ReferenceIndex":
        """Build an index over every document, in sorted path order."""
        index = cls()
        for path in sorted(documentation):
            index.add_document(documentation[path])
        return index

    @property
    def graph(self) -> nx.Graph:
        """Access the underlying NetworkX graph."""
        return self._graph

    @property
    def symbol_count(self) -> int:
        """Return the number of distinct referenced symbols."""
        return sum(1 for _, kind in self._graph.nodes(data="kind") if kind == "symbol")

    @property
    def section_count(self) -> int:
        """Return the number of indexed sections."""
        return sum(len(ids) for ids in self._doc_index.values())

    def add_document(self, doc: DocumentationSnapshot) -> None:
        """
        Add every section of a document and its symbol edges.

        Re-adding a document replaces its previous sections.

        Args:
            doc: The DocumentationSnapshot to index
        """
        self.remove_document(doc.path)
        node_ids = []
        for position, section in enumerate(doc.sections):
            node_id = ("section", doc.path, position)
            self._graph.add_node(node_id, kind="section", ref=SectionRef(doc.path, position, section))
            for name in section.referenced_symbols:
                symbol = _symbol_id(name)
                if symbol not in self._graph:
                    self._graph.add_node(symbol, kind="symbol", name=name)
                self._graph.add_edge(symbol, node_id)
            node_ids.append(node_id)
        self._doc_index[doc.path] = node_ids

    def remove_document(self, doc_path: str) -> None:
        """Drop a document's sections and any symbols left unreferenced."""
        for node_id in self._doc_index.pop(doc_path, []):
            neighbours = list(self._graph.neighbors(node_id))
            self._graph.remove_node(node_id)
            for symbol in neighbours:
                if self._graph.degree(symbol) == 0:
                    self._graph.remove_node(symbol)

    def is_referenced(self, name: str) -> bool:
        return _symbol_id(name) in self._graph

    def sections_referencing(self, name: str) -> list[SectionRef]:
        """
        Get all sections that reference a symbol name.

        Args:
            name: Symbol name as it appears in a fingerprint

        Returns:
            SectionRefs ordered by (doc path, section index)
        """
        symbol = _symbol_id(name)
        if symbol not in self._graph:
            return []
        refs = [self._graph.nodes[node_id]["ref"] for node_id in self._graph.neighbors(symbol)]
        return sorted(refs, key=lambda ref: (ref.doc_path, ref.index))

    def sections_referencing_any(self, names: Iterable[str]) -> list[SectionRef]:
        """Union of referencing sections for several names, without duplicates."""
        seen: dict[tuple[str, int], SectionRef] = {}
        for name in names:
            for ref in self.sections_referencing(name):
                seen.setdefault((ref.doc_path, ref.index), ref)
        return sorted(seen.values(), key=lambda ref: (ref.doc_path, ref.index))

    def documents_referencing(self, names: Iterable[str]) -> tuple[str, ...]:
        """Sorted doc paths with at least one section referencing any name."""
        return tuple(sorted({ref.doc_path for ref in self.sections_referencing_any(names)}))

    def reference_count(self, name: str) -> int:
        """Number of sections referencing a symbol."""
        symbol = _symbol_id(name)
        return self._graph.degree(symbol) if symbol in self._graph else 0

    def referenced_symbols(self) -> Iterator[str]:
        """
        Iterate over every referenced symbol name.

        Yields:
            Symbol names (in no particular order)
        """
        for _, data in self._graph.nodes(data=True):
            if data.get("kind") == "symbol":
                yield data["name"]

    def clear(self) -> None:
        """Remove all nodes and edges from the index."""
        self._graph.clear()
        self._doc_index.clear()
