"""
Unit tests for path resolution and the containment check.
"""

import os
from pathlib import Path

import pytest

from fileserver.handlers.paths import (
    PathForbiddenError,
    PathNotFoundError,
    PathResolutionError,
    PathResolver,
)
from fileserver.http.status_codes import HTTPStatus


class TestResolve:

    def test_root(self, doc_root: Path):
        assert PathResolver(doc_root).resolve("") == doc_root

    def test_file(self, doc_root: Path):
        assert PathResolver(doc_root).resolve("a.txt") == doc_root / "a.txt"

    def test_redundant_segments(self, doc_root: Path):
        resolver = PathResolver(doc_root)
        assert resolver.resolve("sub/./../sub//nested.txt") == doc_root / "sub" / "nested.txt"

    def test_missing(self, doc_root: Path):
        with pytest.raises(PathNotFoundError) as exc_info:
            PathResolver(doc_root).resolve("missing.txt")

        assert exc_info.value.status == HTTPStatus.NOT_FOUND

    def test_dot_dot_outside_root(self, doc_root: Path, outside_file: Path):
        with pytest.raises(PathForbiddenError) as exc_info:
            PathResolver(doc_root).resolve("../secret.txt")

        assert exc_info.value.status == HTTPStatus.FORBIDDEN

    def test_dot_dot_to_missing_is_not_found(self, doc_root: Path):
        with pytest.raises(PathNotFoundError):
            PathResolver(doc_root).resolve("../../../no/such/file")

    def test_absolute_path_outside_root(self, doc_root: Path, outside_file: Path):
        with pytest.raises(PathForbiddenError):
            PathResolver(doc_root).resolve(str(outside_file))

    def test_symlink_outside_root(self, doc_root: Path, outside_file: Path):
        (doc_root / "link.txt").symlink_to(outside_file)

        with pytest.raises(PathForbiddenError):
            PathResolver(doc_root).resolve("link.txt")

    def test_symlink_inside_root(self, doc_root: Path):
        (doc_root / "alias.txt").symlink_to(doc_root / "a.txt")
        assert PathResolver(doc_root).resolve("alias.txt") == doc_root / "a.txt"

    def test_sibling_with_common_prefix(self, tmp_path: Path):
        """/x/pub must not contain /x/public."""
        base = Path(os.path.realpath(tmp_path))
        (base / "pub").mkdir()
        (base / "public").mkdir()
        (base / "public" / "secret.txt").write_text("nope")
        (base / "pub" / "escape").symlink_to(base / "public" / "secret.txt")

        resolver = PathResolver(base / "pub")

        with pytest.raises(PathForbiddenError):
            resolver.resolve("../public/secret.txt")
        with pytest.raises(PathForbiddenError):
            resolver.resolve("escape")

    def test_symlink_loop_is_server_error(self, doc_root: Path):
        (doc_root / "loop").symlink_to(doc_root / "loop")

        with pytest.raises(PathResolutionError) as exc_info:
            PathResolver(doc_root).resolve("loop")

        assert exc_info.value.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_nul_byte_is_server_error(self, doc_root: Path):
        with pytest.raises(PathResolutionError) as exc_info:
            PathResolver(doc_root).resolve("a\x00.txt")

        assert exc_info.value.status == HTTPStatus.INTERNAL_SERVER_ERROR


class TestContains:

    def test_contains(self, doc_root: Path):
        resolver = PathResolver(doc_root)

        assert resolver.contains(doc_root)
        assert resolver.contains(doc_root / "sub" / "nested.txt")
        assert not resolver.contains(doc_root.parent)
        assert not resolver.contains(Path(str(doc_root) + "-other"))
