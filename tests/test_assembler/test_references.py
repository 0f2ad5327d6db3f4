"""Tests for import reference scanning (stackforge.assembler.references)."""

from __future__ import annotations

import pytest

from stackforge.assembler.references import (
    ReferenceKind,
    classify_reference,
    relative_reference,
    rewrite_references,
    scan_references,
)
from stackforge.config import DEFAULT_EXTERNAL_PACKAGES

pytestmark = pytest.mark.unit


class TestClassifyReference:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("./App", ReferenceKind.RELATIVE),
            ("../services/task.service", ReferenceKind.RELATIVE),
            (".catalog.routes", ReferenceKind.RELATIVE),
            ("react", ReferenceKind.EXTERNAL),
            ("express", ReferenceKind.EXTERNAL),
            ("@testing-library/react", ReferenceKind.EXTERNAL),
            ("node:fs/promises", ReferenceKind.EXTERNAL),
            ("react-dom/client", ReferenceKind.EXTERNAL),
            ("services/task.service", ReferenceKind.INTERNAL),
            ("@/components/TaskList", ReferenceKind.INTERNAL),
            ("NonExistentModule/x", ReferenceKind.INTERNAL),
        ],
    )
    def test_classify(self, path, expected):
        assert classify_reference(path, DEFAULT_EXTERNAL_PACKAGES) is expected

    def test_subpath_is_internal_without_package_list(self):
        assert classify_reference("react-dom/client") is ReferenceKind.INTERNAL


class TestScanReferences:
    def test_spans_and_lines(self):
        content = (
            "import express from 'express';\n"
            "\n"
            'import { TaskService } from "services/task.service";\n'
            "export * from './types';\n"
        )
        spans = scan_references(content, DEFAULT_EXTERNAL_PACKAGES)

        assert [s.path for s in spans] == ["express", "services/task.service", "./types"]
        assert [s.line for s in spans] == [1, 3, 4]
        assert [s.kind for s in spans] == [
            ReferenceKind.EXTERNAL,
            ReferenceKind.INTERNAL,
            ReferenceKind.RELATIVE,
        ]
        for span in spans:
            assert content[span.start:span.end] == span.path

    def test_side_effect_imports_are_not_references(self):
        assert scan_references("import './index.css';\n") == []

    def test_empty_content(self):
        assert scan_references("") == []


class TestRewriteReferences:
    def test_single_pass(self):
        content = "import a from 'x/a';\nimport b from 'x/b';\n"
        spans = scan_references(content)
        new, count = rewrite_references(content, spans, lambda s: "./" + s.path)

        assert new == "import a from './x/a';\nimport b from './x/b';\n"
        assert count == 2

    def test_none_keeps_span(self):
        content = "import a from 'x/a';\n"
        new, count = rewrite_references(content, scan_references(content), lambda s: None)
        assert new == content
        assert count == 0

    def test_replacement_is_not_rescanned(self):
        # A replacement that itself looks like a rewritable path stays put.
        content = "import a from 'a/a';\n"
        new, count = rewrite_references(content, scan_references(content), lambda s: "a/a/a")
        assert new == "import a from 'a/a/a';\n"
        assert count == 1


class TestRelativeReference:
    @pytest.mark.parametrize(
        "target, directory, expected",
        [
            ("backend/src/services/task.service", "backend/src/controllers", "../services/task.service"),
            ("frontend/src/App", "frontend/src", "./App"),
            ("frontend/src/components/TaskList", "frontend/src/pages", "../components/TaskList"),
            ("backend/src/config/index", "backend/src", "./config/index"),
            ("shared/util", "", "./shared/util"),
            ("frontend/.env", "frontend", "./.env"),
        ],
    )
    def test_relative(self, target, directory, expected):
        assert relative_reference(target, directory) == expected
