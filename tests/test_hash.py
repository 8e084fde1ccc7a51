"""
Tests for the content hashing module.

Tests digest stability across line endings and sensitivity to any other edit.
"""

from docdrift.hash import compute_content_hash
from tests.fixtures import PROCESS_COMMENT_ONLY, PROCESS_V1


class TestContentHash:
    """Tests for compute_content_hash."""

    def test_hash_is_hex_digest(self):
        """Test that the digest is a 32-character hex string."""
        digest = compute_content_hash(PROCESS_V1)

        assert len(digest) == 32
        int(digest, 16)

    def test_hash_is_stable(self):
        """Test that the same content always hashes the same."""
        assert compute_content_hash(PROCESS_V1) == compute_content_hash(PROCESS_V1)

    def test_hash_ignores_line_endings(self):
        """Test that CRLF and CR checkouts hash like LF."""
        lf = "def f():\n    return 1\n"
        crlf = lf.replace("\n", "\r\n")
        cr = lf.replace("\n", "\r")

        assert compute_content_hash(lf) == compute_content_hash(crlf)
        assert compute_content_hash(lf) == compute_content_hash(cr)

    def test_comment_changes_the_hash(self):
        """Test that the hash is not semantic: comment edits change it."""
        assert compute_content_hash(PROCESS_V1) != compute_content_hash(PROCESS_COMMENT_ONLY)

    def test_whitespace_changes_the_hash(self):
        """Test that a single extra blank line changes the digest."""
        assert compute_content_hash("a\n") != compute_content_hash("a\n\n")

    def test_empty_content(self):
        """Test the digest of empty content is well defined."""
        assert compute_content_hash("") == "d41d8cd98f00b204e9800998ecf8427e"
