"""Tests for Go and proto import maintenance."""

from stitchkit.imports import GO, PROTO, ensure_import
from stitchkit.scanner import classify


class TestGoImports:
    """Test Go import handling."""

    def test_appends_to_group(self) -> None:
        """Test new entries follow the last grouped entry with its indentation."""
        text = 'package biz\n\nimport (\n\t"context"\n\n\t"example.com/app/store"\n)\n'
        result = ensure_import(text, "example.com/app/biz/v1/post", "postv1")
        assert result.changed
        assert result.text == (
            "package biz\n\nimport (\n"
            '\t"context"\n\n'
            '\t"example.com/app/store"\n'
            '\tpostv1 "example.com/app/biz/v1/post"\n'
            ")\n"
        )

    def test_existing_path_is_noop(self) -> None:
        """Test an aliased existing import counts as present."""
        text = 'package biz\n\nimport (\n\tpostv1 "example.com/app/biz/v1/post"\n)\n'
        result = ensure_import(text, "example.com/app/biz/v1/post", "postv1")
        assert not result.changed
        assert result.text is text

    def test_single_import_declaration(self) -> None:
        """Test ungrouped imports get a full import statement."""
        text = 'package main\n\nimport "fmt"\n\nfunc main() {}\n'
        result = ensure_import(text, "os")
        assert result.text == 'package main\n\nimport "fmt"\nimport "os"\n\nfunc main() {}\n'

    def test_no_imports_goes_after_package(self) -> None:
        """Test the package clause anchors the first import, set off by a blank line."""
        text = "// Package store.\npackage store\n\ntype IStore interface{}\n"
        result = ensure_import(text, "context")
        assert result.text == (
            '// Package store.\npackage store\n\nimport "context"\n\ntype IStore interface{}\n'
        )

    def test_first_import_blank_lines(self) -> None:
        """Test the first import is separated from crowded neighbors."""
        crowded = ensure_import("package x\ntype T int\n", "os", "sys")
        assert crowded.text == 'package x\n\nimport sys "os"\n\ntype T int\n'

        bare = ensure_import("package x", "os")
        assert bare.text == 'package x\n\nimport "os"\n'

    def test_commented_import_ignored(self) -> None:
        """Test imports inside comments are not counted as present."""
        text = 'package x\n\nimport (\n\t// "os"\n\t"fmt"\n)\n'
        result = ensure_import(text, "os")
        assert result.changed
        assert result.text.count('\t"os"\n') == 1

    def test_dedup_on_repeat(self) -> None:
        """Test calling twice yields a single entry."""
        text = 'package x\n\nimport (\n\t"fmt"\n)\n'
        once = ensure_import(text, "example.com/a", "a")
        twice = ensure_import(once.text, "example.com/a", "a")
        assert not twice.changed
        assert twice.text.count('"example.com/a"') == 1

    def test_entries(self) -> None:
        """Test entry discovery for mixed declarations."""
        text = 'package x\n\nimport "fmt"\n\nimport (\n\t_ "embed"\n\t. "strings"\n)\n'
        entries = GO.entries(text, classify(text))
        assert [(entry.path, entry.alias, entry.grouped) for entry in entries] == [
            ("fmt", None, False),
            ("embed", "_", True),
            ("strings", ".", True),
        ]

    def test_crlf(self) -> None:
        """Test CRLF documents get CRLF lines."""
        text = 'package x\r\n\r\nimport (\r\n\t"fmt"\r\n)\r\n'
        result = ensure_import(text, "os")
        assert result.text == 'package x\r\n\r\nimport (\r\n\t"fmt"\r\n\t"os"\r\n)\r\n'


class TestProtoImports:
    """Test proto import handling."""

    def test_appends_after_last_import(self) -> None:
        """Test new imports follow the existing ones."""
        text = (
            'syntax = "proto3";\n\npackage v1;\n\n'
            'import "google/api/annotations.proto";\n'
            'import "apiserver/v1/post.proto";\n\n'
            "service APIServer {\n}\n"
        )
        result = ensure_import(text, "apiserver/v1/comment.proto", dialect=PROTO)
        assert result.text == (
            'syntax = "proto3";\n\npackage v1;\n\n'
            'import "google/api/annotations.proto";\n'
            'import "apiserver/v1/post.proto";\n'
            'import "apiserver/v1/comment.proto";\n\n'
            "service APIServer {\n}\n"
        )

    def test_public_import_counts(self) -> None:
        """Test public imports are recognized."""
        text = 'syntax = "proto3";\nimport public "a.proto";\n'
        assert not ensure_import(text, "a.proto", dialect=PROTO).changed

    def test_anchor_package_then_syntax(self) -> None:
        """Test placement without imports."""
        with_package = 'syntax = "proto3";\npackage v1;\n'
        assert ensure_import(with_package, "a.proto", dialect=PROTO).text == (
            'syntax = "proto3";\npackage v1;\nimport "a.proto";\n'
        )
        syntax_only = 'syntax = "proto3";\n'
        assert ensure_import(syntax_only, "a.proto", dialect=PROTO).text == (
            'syntax = "proto3";\nimport "a.proto";\n'
        )

    def test_top_of_file(self) -> None:
        """Test documents without anchors get the import first."""
        text = "service A {\n}\n"
        assert ensure_import(text, "a.proto", dialect=PROTO).text == 'import "a.proto";\nservice A {\n}\n'

    def test_missing_trailing_newline(self) -> None:
        """Test an anchor on the last line without newline."""
        text = 'syntax = "proto3";'
        assert ensure_import(text, "a.proto", dialect=PROTO).text == 'syntax = "proto3";\nimport "a.proto";\n'

    def test_commented_import_ignored(self) -> None:
        """Test commented imports do not count."""
        text = 'syntax = "proto3";\n// import "a.proto";\n'
        result = ensure_import(text, "a.proto", dialect=PROTO)
        assert result.changed
        assert 'import "a.proto";\n// import' in result.text
