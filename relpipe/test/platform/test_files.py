"""Tests for relpipe.platform.files module."""

from __future__ import annotations

import os
import stat
import sys
from pathlib import Path

import pytest

from relpipe.platform.files import atomic_write_text, read_text_exact


class TestReadTextExact:
    def test_keeps_crlf(self, tmp_path: Path) -> None:
        path = tmp_path / "f.txt"
        path.write_bytes(b"a=1\r\nb=2\r\n")
        assert read_text_exact(path) == "a=1\r\nb=2\r\n"


class TestAtomicWriteText:
    def test_creates_parents(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "notes.md"
        atomic_write_text(path, "hello\n")
        assert path.read_bytes() == b"hello\n"

    def test_replaces_content_without_newline_translation(self, tmp_path: Path) -> None:
        path = tmp_path / "v.properties"
        path.write_text("old")
        atomic_write_text(path, "x\r\ny\n")
        assert path.read_bytes() == b"x\r\ny\n"

    def test_leaves_no_temp_files(self, tmp_path: Path) -> None:
        atomic_write_text(tmp_path / "f.txt", "data")
        assert [p.name for p in tmp_path.iterdir()] == ["f.txt"]

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
    def test_preserves_mode(self, tmp_path: Path) -> None:
        path = tmp_path / "script.sh"
        path.write_text("#!/bin/sh\n")
        os.chmod(path, 0o755)

        atomic_write_text(path, "#!/bin/sh\necho hi\n")

        assert stat.S_IMODE(path.stat().st_mode) == 0o755
