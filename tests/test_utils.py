"""
tests/test_utils.py
Unit tests for crudgen.utils.
"""

from __future__ import annotations

import pathlib

import pytest

from crudgen.utils import (
    build_import_block,
    build_import_sections,
    clean_directory,
    count_lines,
    make_docstring,
    normalise_route_prefix,
    to_snake_case,
    write_file,
)


class TestNaming:
    """to_snake_case and normalise_route_prefix."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("UnitParams", "unit_params"),
            ("HTTPHeader", "http_header"),
            ("already_snake", "already_snake"),
            ("Unit2Query", "unit2_query"),
            ("", ""),
        ],
    )
    def test_snake_case(self, name: str, expected: str) -> None:
        assert to_snake_case(name) == expected

    @pytest.mark.parametrize(
        "path,expected",
        [("/", ""), ("", ""), ("units", "/units"), ("/units/", "/units"), ("/a/b", "/a/b")],
    )
    def test_route_prefix(self, path: str, expected: str) -> None:
        assert normalise_route_prefix(path) == expected


class TestFormatting:
    """Docstrings and import blocks."""

    def test_single_line_docstring(self) -> None:
        assert make_docstring("Short.", 1, 4) == '    """Short."""'

    def test_multi_line_docstring(self) -> None:
        assert make_docstring("First.\n\nSecond.", 0) == '"""\nFirst.\n\nSecond.\n"""'

    def test_import_block(self) -> None:
        block = build_import_block({"typing": {"Optional", "Annotated"}, "asyncio": set()})
        assert block == "import asyncio\nfrom typing import Annotated, Optional"

    def test_import_sections_skip_empty(self) -> None:
        sections = build_import_sections([{"os": set()}, {}, {"yaml": set()}])
        assert sections == "import os\n\nimport yaml"


class TestFiles:
    """write_file, clean_directory, count_lines."""

    @pytest.mark.parametrize("atomic", [True, False])
    def test_write_file(self, tmp_path: pathlib.Path, atomic: bool) -> None:
        target = tmp_path / "deep" / "dir" / "mod.py"
        written = write_file(target, "x = 'é'\n", atomic=atomic)
        assert target.read_text(encoding="utf-8") == "x = 'é'\n"
        assert written == len("x = 'é'\n".encode("utf-8"))
        assert [p.name for p in target.parent.iterdir()] == ["mod.py"]

    def test_clean_directory_keeps_listed(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "f.txt").write_text("x", encoding="utf-8")
        (tmp_path / ".git").mkdir()
        clean_directory(tmp_path)
        assert [p.name for p in tmp_path.iterdir()] == [".git"]

    @pytest.mark.parametrize(
        "content,expected", [("", 0), ("a", 1), ("a\n", 1), ("a\nb", 2), ("a\nb\n", 2)]
    )
    def test_count_lines(self, content: str, expected: int) -> None:
        assert count_lines(content) == expected
