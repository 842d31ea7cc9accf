"""
Tests for the path resolver.

- Traversal in any spelling is rejected
- Redundant segments and backslashes are normalised
- Symlinks leaving the root are rejected
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from src.components.paths import PathResolver, normalize_relative_path
from src.core.errors import InvalidPathError, ValidationError


class TestNormalizeRelativePath:
    """Lexical canonicalisation."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("public/a.png", "public/a.png"),
            ("public//a.png", "public/a.png"),
            ("./public/./a.png", "public/a.png"),
            ("public/x/../a.png", "public/a.png"),
            ("public\\2025\\a.png", "public/2025/a.png"),
            ("  public/a.png ", "public/a.png"),
        ],
    )
    def test_normalises(self, raw: str, expected: str) -> None:
        assert normalize_relative_path(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            "../etc/passwd",
            "public/../../etc/passwd",
            "..\\..\\secret",
            "..",
            ".",
            "/etc/passwd",
            "C:\\Windows\\win.ini",
            "public/a\x00.png",
        ],
    )
    def test_rejects_escape(self, raw: str) -> None:
        with pytest.raises(InvalidPathError):
            normalize_relative_path(raw)

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_rejects_missing(self, raw: str | None) -> None:
        with pytest.raises(InvalidPathError) as exc:
            normalize_relative_path(raw)
        assert exc.value.public_message == "Missing path"

    def test_invalid_path_is_validation_error(self) -> None:
        """Maps to 400 at the HTTP layer."""
        with pytest.raises(ValidationError) as exc:
            normalize_relative_path("../x")
        assert exc.value.status_code == 400


class TestPathResolver:
    """Resolution against a real directory tree."""

    def test_resolves_inside_root(self, storage_root: Path) -> None:
        resolver = PathResolver(storage_root)
        resolved = resolver.resolve("public/2025/a.png")

        assert resolved.relative == "public/2025/a.png"
        assert resolved.absolute == storage_root.resolve() / "public" / "2025" / "a.png"
        assert resolved.bucket == "public"

    def test_nonexistent_file_still_resolves(self, storage_root: Path) -> None:
        """Existence is the caller's concern, not the resolver's."""
        resolved = PathResolver(storage_root).resolve("private/missing.pdf")
        assert not resolved.absolute.exists()

    def test_rejects_root_itself(self, storage_root: Path) -> None:
        with pytest.raises(InvalidPathError):
            PathResolver(storage_root).resolve("public/..")

    def test_traversal_never_reaches_sibling(self, storage_root: Path) -> None:
        secret = storage_root.parent / "secret.txt"
        secret.write_text("top secret")

        with pytest.raises(InvalidPathError):
            PathResolver(storage_root).resolve("public/../../secret.txt")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_rejects_symlink_out_of_root(self, storage_root: Path) -> None:
        outside = storage_root.parent / "outside"
        outside.mkdir()
        (outside / "x.txt").write_text("x")
        (storage_root / "public" / "link").symlink_to(outside, target_is_directory=True)

        with pytest.raises(InvalidPathError):
            PathResolver(storage_root).resolve("public/link/x.txt")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_rejects_symlink_across_buckets(self, storage_root: Path) -> None:
        (storage_root / "private" / "a.pdf").write_bytes(b"%PDF")
        (storage_root / "public" / "a.pdf").symlink_to(storage_root / "private" / "a.pdf")

        with pytest.raises(InvalidPathError):
            PathResolver(storage_root).resolve("public/a.pdf")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_within_bucket_allowed(self, storage_root: Path) -> None:
        (storage_root / "public" / "real.png").write_bytes(b"x")
        (storage_root / "public" / "alias.png").symlink_to(storage_root / "public" / "real.png")

        resolved = PathResolver(storage_root).resolve("public/alias.png")

        assert resolved.absolute == (storage_root / "public" / "real.png").resolve()
        assert resolved.bucket == "public"

    def test_normalize_touches_no_filesystem(self, tmp_path: Path) -> None:
        resolver = PathResolver(tmp_path / "does-not-exist")
        assert resolver.normalize("private/a.pdf") == "private/a.pdf"
