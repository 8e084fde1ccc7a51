"""
Content Hashing for DocDrift

Fingerprints and documentation snapshots carry a digest of the raw file
content. The digest answers one question only: "is this file byte-for-byte
the same as last time?" Two fingerprints with equal digests are treated as
identical and never re-diffed.

Design Decisions:
    - MD5 with usedforsecurity=False: fast, stable across platforms and
      Python versions, and explicitly flagged as a non-security digest
    - Line endings are normalised so a CRLF checkout does not look changed
    - No semantic normalisation: comment-only edits DO change the digest;
      the diff engine is what turns them into an empty change list

Hash Stability Guarantees:
    - Same text, different line endings -> same digest
    - Any other character change -> different digest
"""

import hashlib


def compute_content_hash(content: str) -> str:
    """
    Compute the equality digest of a file's text.

    Args:
        content: Decoded file content

    Returns:
        32-character hexadecimal digest

    Example:
        >>> compute_content_hash("a\\r\\nb") == compute_content_hash("a\\nb")
        True
    """
    normalized = content.replace("\r\n", "\n").replace("\r", "\n")
    return hashlib.md5(normalized.encode("utf-8"), usedforsecurity=False).hexdigest()
