"""
Tests for the graph module.

Tests ReferenceIndex construction and symbol/section lookups.
"""

from docdrift.graph import ReferenceIndex
from docdrift.models import DocumentationSection, DocumentationSnapshot


def _doc(path, *sections):
    return DocumentationSnapshot(path=path, sections=tuple(sections))


class TestReferenceIndex:
    """Tests for the ReferenceIndex class."""

    def test_empty_index(self):
        """Test an index with no documentation."""
        index = ReferenceIndex.from_documentation({})

        assert index.symbol_count == 0
        assert index.section_count == 0
        assert index.is_referenced("anything") is False
        assert index.sections_referencing("anything") == []
        assert index.reference_count("anything") == 0

    def test_sections_referencing(self):
        """Test lookup of sections by function, class and type names."""
        doc = _doc(
            "docs/api.md",
            DocumentationSection(title="Intro"),
            DocumentationSection(title="process()", referenced_functions=("process",)),
            DocumentationSection(title="Client", referenced_classes=("Client",), referenced_types=("Mode",)),
        )
        index = ReferenceIndex.from_documentation({doc.path: doc})

        refs = index.sections_referencing("process")
        assert [(r.doc_path, r.index, r.title) for r in refs] == [("docs/api.md", 1, "process()")]
        assert index.is_referenced("Client")
        assert index.is_referenced("Mode")
        assert index.symbol_count == 3
        assert index.section_count == 3

    def test_reference_count_spans_documents(self):
        """Test that references are counted per section across documents."""
        a = _doc("docs/a.md", DocumentationSection(title="A", referenced_functions=("connect",)))
        b = _doc(
            "docs/b.md",
            DocumentationSection(title="B1", referenced_functions=("connect",)),
            DocumentationSection(title="B2", referenced_functions=("connect", "close")),
        )
        index = ReferenceIndex.from_documentation({b.path: b, a.path: a})

        assert index.reference_count("connect") == 3
        assert index.reference_count("close") == 1
        refs = index.sections_referencing("connect")
        assert [(r.doc_path, r.index) for r in refs] == [("docs/a.md", 0), ("docs/b.md", 0), ("docs/b.md", 1)]

    def test_union_lookups(self):
        """Test multi-name lookups deduplicate sections and documents."""
        a = _doc("docs/a.md", DocumentationSection(title="A", referenced_functions=("connect", "close")))
        b = _doc("docs/b.md", DocumentationSection(title="B", referenced_functions=("close",)))
        index = ReferenceIndex.from_documentation({a.path: a, b.path: b})

        refs = index.sections_referencing_any(["connect", "close", "missing"])
        assert [r.doc_path for r in refs] == ["docs/a.md", "docs/b.md"]
        assert index.documents_referencing(["close"]) == ("docs/a.md", "docs/b.md")
        assert index.documents_referencing(["missing"]) == ()

    def test_readding_document_replaces_sections(self):
        """Test that re-adding a document drops its stale symbols."""
        index = ReferenceIndex()
        index.add_document(_doc("docs/a.md", DocumentationSection(title="A", referenced_functions=("old",))))
        index.add_document(_doc("docs/a.md", DocumentationSection(title="A", referenced_functions=("new",))))

        assert not index.is_referenced("old")
        assert index.is_referenced("new")
        assert index.section_count == 1

    def test_remove_and_clear(self):
        """Test removing a document and clearing the index."""
        doc = _doc("docs/a.md", DocumentationSection(title="A", referenced_functions=("f",)))
        index = ReferenceIndex.from_documentation({doc.path: doc})

        assert sorted(index.referenced_symbols()) == ["f"]
        index.remove_document("docs/a.md")
        assert index.symbol_count == 0

        index.add_document(doc)
        index.clear()
        assert index.graph.number_of_nodes() == 0
