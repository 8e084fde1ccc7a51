"""
Tests for the documentation extractor.

Tests section splitting, symbol recovery, example classification and
dependency extraction.
"""

from docdrift.docs import (
    extract_code_references,
    extract_dependencies,
    extract_documentation,
    extract_symbols_from_code,
    is_documentation_file,
    normalize_content_type,
    parse_front_matter,
    resolve_content_type,
    validation_hints,
)
from docdrift.models import ContentType
from tests.fixtures import DOC_WITH_FRONT_MATTER, PROCESS_DOC, UNRELATED_DOC


class TestSections:
    """Tests for heading-delimited section splitting."""

    def test_one_section_per_heading(self):
        """Test that each ATX heading starts a section."""
        doc = extract_documentation(PROCESS_DOC, "docs/api.md")

        assert [s.title for s in doc.sections] == ["API", "process(a)"]
        assert doc.path == "docs/api.md"
        assert doc.content_hash

    def test_preamble_and_fenced_headings(self):
        """Test untitled preamble and that `#` lines inside fences are not headings."""
        doc = extract_documentation(DOC_WITH_FRONT_MATTER, "docs/connect.md")

        assert [s.title for s in doc.sections] == ["", "Connecting to the service", "Options"]
        assert doc.sections[0].content == "Intro paragraph before the first heading."
        assert "# not a heading inside a fence" in doc.sections[1].content

    def test_line_ranges(self):
        """Test that sections record 1-indexed heading lines."""
        doc = extract_documentation(PROCESS_DOC, "docs/api.md")

        assert doc.sections[0].start_line == 1
        assert doc.sections[1].start_line == 3
        assert doc.sections[1].end_line >= doc.sections[1].start_line

    def test_empty_document(self):
        """Test that an empty file has no sections."""
        doc = extract_documentation("", "docs/empty.md")

        assert doc.sections == ()


class TestSymbols:
    """Tests for recovering referenced code symbols."""

    def test_call_syntax_is_a_function(self):
        """Test headings, inline code and examples contributing function names."""
        doc = extract_documentation(PROCESS_DOC, "docs/api.md")

        section = doc.sections[1]
        assert section.referenced_functions == ("process",)
        assert "process" in section.referenced_symbols

    def test_keywords_are_not_symbols(self):
        """Test that common acronyms like API are never symbols."""
        doc = extract_documentation(PROCESS_DOC, "docs/api.md")

        assert doc.sections[0].referenced_symbols == frozenset()

    def test_qualified_names(self):
        """Test that `Client.connect()` yields the class, method and full name."""
        doc = extract_documentation(DOC_WITH_FRONT_MATTER, "docs/connect.md")

        section = doc.sections[1]
        assert "Client" in section.referenced_classes
        assert "connect" in section.referenced_functions
        assert "Client.connect" in section.referenced_functions

    def test_capitalised_identifier_is_a_class(self):
        """Test that a bare capitalized inline-code identifier is a class."""
        doc = extract_documentation(DOC_WITH_FRONT_MATTER, "docs/connect.md")

        assert doc.sections[2].referenced_classes == ("Options",)

    def test_prose_without_references(self):
        """Test plain prose yields nothing."""
        doc = extract_documentation(UNRELATED_DOC, "docs/overview.md")

        assert doc.sections[0].referenced_symbols == frozenset()

    def test_plain_word_headings_are_not_symbols(self):
        """Test that headings like Usage name nothing unless code-formatted or CamelCase."""
        doc = extract_documentation(
            "# Usage\n\n# Installation\n\n# `Client`\n\n# HttpClient\n\n# load_config\n", "h.md"
        )

        assert [s.referenced_symbols for s in doc.sections] == [
            frozenset(),
            frozenset(),
            frozenset({"Client"}),
            frozenset({"HttpClient"}),
            frozenset({"load_config"}),
        ]

    def test_prose_call_needs_parenthesis(self):
        """Test that ordinary words followed by a parenthetical are ignored."""
        doc = extract_documentation("# Notes\n\nRetries happen (sometimes) quickly.\n", "n.md")

        assert doc.sections[0].referenced_functions == ()

    def test_symbols_from_code(self):
        """Test that example code contributes call targets and capitalized names."""
        symbols = extract_symbols_from_code('client = Client()\nclient.connect("x")\nprint(1)')

        assert symbols == ("Client", "connect")


class TestExamples:
    """Tests for fenced code examples and their classification."""

    def test_example_language_and_description(self):
        """Test info-string language and nearest prose description."""
        doc = extract_documentation(PROCESS_DOC, "docs/api.md")

        example = doc.sections[1].code_examples[0]
        assert example.language == "python"
        assert example.description == "Call `process(a)` to process one item."
        assert "process(1)" in example.code

    def test_bare_fence_language(self):
        """Test that a fence without an info string is 'text'."""
        doc = extract_documentation(DOC_WITH_FRONT_MATTER, "docs/connect.md")

        languages = [e.language for e in doc.sections[1].code_examples]
        assert languages == ["python", "text"]

    def test_front_matter_classification(self):
        """Test front matter content_type wins and drives the hints."""
        doc = extract_documentation(DOC_WITH_FRONT_MATTER, "docs/reference/connect.md")

        example = doc.sections[1].code_examples[0]
        assert example.content_type is ContentType.HOW_TO
        assert example.hints is not None
        assert example.hints.requires_context is True
        assert example.hints.expected_behavior == "practical outcome achievable"
        assert example.hints.dependencies == ("requests",)

    def test_path_classification(self):
        """Test the directory convention when no front matter is present."""
        doc = extract_documentation(PROCESS_DOC, "docs/reference/api.md")

        example = doc.sections[1].code_examples[0]
        assert example.content_type is ContentType.REFERENCE
        assert example.hints.dependencies == ("mylib",)

    def test_unresolved_classification(self):
        """Test that unclassifiable examples have no hints."""
        doc = extract_documentation(PROCESS_DOC, "docs/api.md")

        example = doc.sections[1].code_examples[0]
        assert example.content_type is None
        assert example.hints is None


class TestClassification:
    """Tests for content type resolution helpers."""

    def test_normalize(self):
        """Test free-form aliases."""
        assert normalize_content_type("How To") is ContentType.HOW_TO
        assert normalize_content_type("concepts") is ContentType.EXPLANATION
        assert normalize_content_type("api_reference") is ContentType.REFERENCE
        assert normalize_content_type("misc") is None
        assert normalize_content_type(3) is None

    def test_precedence(self):
        """Test front matter, then path, then keywords."""
        prose = "A tutorial: step one, step two."

        assert resolve_content_type({"diataxis": "explanation"}, "docs/tutorials/x.md", prose) is ContentType.EXPLANATION
        assert resolve_content_type({}, "docs/tutorials/x.md", "Design rationale") is ContentType.TUTORIAL
        assert resolve_content_type({}, "docs/x.md", prose) is ContentType.TUTORIAL

    def test_keyword_tie_is_unresolved(self):
        """Test that tied keyword counts resolve to nothing."""
        assert resolve_content_type({}, "docs/x.md", "tutorial reference") is None

    def test_hints_per_type(self):
        """Test the fixed hint table."""
        assert validation_hints(None) is None
        assert validation_hints(ContentType.REFERENCE).expected_behavior == "signatures match implementation"
        assert validation_hints(ContentType.TUTORIAL).requires_context is False
        assert validation_hints(ContentType.EXPLANATION).requires_context is True


class TestDependencies:
    """Tests for per-language dependency extraction."""

    def test_python_imports_and_installs(self):
        """Test Python imports plus pip installs."""
        code = "pip install httpx==0.27\nimport os.path\nfrom yaml import safe_load\nfrom . import local"

        assert extract_dependencies("python", code) == ("os", "yaml", "httpx")

    def test_javascript_packages(self):
        """Test scoped and plain npm packages; relative imports are dropped."""
        code = 'import x from "@scope/pkg/sub";\nconst y = require("lodash/fp");\nimport "./local";'

        assert extract_dependencies("js", code) == ("@scope/pkg", "lodash")

    def test_shell_source_and_install(self):
        """Test shell `source` and package installs."""
        code = "source env.sh\n$ npm install --save left-pad"

        assert extract_dependencies("bash", code) == ("env.sh", "left-pad")


class TestHelpers:
    """Tests for front matter and reference helpers."""

    def test_front_matter(self):
        """Test the parsed mapping and consumed line count."""
        data, consumed = parse_front_matter(DOC_WITH_FRONT_MATTER)

        assert data == {"content_type": "how-to", "title": "Connecting"}
        assert consumed == 4

    def test_malformed_front_matter_is_ignored(self):
        """Test that invalid YAML yields an empty mapping but is still skipped."""
        data, consumed = parse_front_matter("---\n: [unclosed\n---\n# Title\n")

        assert data == {}
        assert consumed == 3

    def test_code_references(self):
        """Test link and inline-code source paths."""
        refs = extract_code_references("See [x](src/a.py#L3) and `lib/b.ts`, not [y](https://e.com/c.py).")

        assert refs == ("src/a.py", "lib/b.ts")

    def test_front_matter_document_references(self):
        """Test referenced_code on a full document."""
        doc = extract_documentation(DOC_WITH_FRONT_MATTER, "docs/connect.md")

        assert doc.referenced_code == ("src/client.py",)

    def test_is_documentation_file(self):
        assert is_documentation_file("docs/README.MD")
        assert is_documentation_file("guide.mdx")
        assert not is_documentation_file("src/app.py")
