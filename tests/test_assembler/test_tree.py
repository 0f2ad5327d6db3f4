"""Tests for the virtual project tree (stackforge.assembler.tree)."""

from __future__ import annotations

import pytest

from stackforge.assembler.tree import VirtualProjectTree, build_structure


class TestVirtualProjectTree:
    @pytest.mark.unit
    def test_add_preserves_order(self, make_file):
        tree = VirtualProjectTree()
        tree.add(make_file("backend/src", "server.ts"))
        tree.add(make_file("frontend/src", "App.tsx"))
        assert [f.path for f in tree] == ["backend/src/server.ts", "frontend/src/App.tsx"]
        assert len(tree) == 2

    @pytest.mark.unit
    def test_last_write_wins_in_place(self, make_file):
        tree = VirtualProjectTree([
            make_file("backend/src/services", "TaskService.ts", "old", "server"),
            make_file("backend/src", "app.ts", "app", "server"),
        ])
        collision = tree.add(make_file("backend/src/services", "TaskService.ts", "new", "tests"))

        assert collision is not None
        assert collision.previous_stage == "server"
        assert collision.winning_stage == "tests"
        assert tree.get("backend/src/services/TaskService.ts").content == "new"
        # Replacement keeps the original position.
        assert [f.file_name for f in tree] == ["TaskService.ts", "app.ts"]
        assert tree.collisions == [collision]

    @pytest.mark.unit
    def test_paths_are_unique(self, make_file):
        tree = VirtualProjectTree()
        for stage in ("a", "b", "c"):
            tree.add(make_file("src", "index.ts", stage, stage))
        assert len(tree) == 1
        assert len(tree.collisions) == 2

    @pytest.mark.unit
    def test_extend_returns_new_collisions(self, make_file):
        tree = VirtualProjectTree([make_file("src", "a.ts")])
        found = tree.extend([make_file("src", "a.ts"), make_file("src", "b.ts")])
        assert [c.file_name for c in found] == ["a.ts"]

    @pytest.mark.unit
    def test_contains_and_get(self, make_file):
        tree = VirtualProjectTree([make_file("", "package.json", is_root_artifact=True)])
        assert "package.json" in tree
        assert "frontend/package.json" not in tree
        assert 42 not in tree
        assert tree.get("/package.json") is not None

    @pytest.mark.unit
    def test_snapshot_is_immutable_copy(self, make_file):
        tree = VirtualProjectTree([make_file("src", "a.ts")])
        snap = tree.snapshot()
        tree.add(make_file("src", "b.ts"))
        assert isinstance(snap, tuple)
        assert len(snap) == 1

    @pytest.mark.unit
    def test_metrics(self, make_file):
        tree = VirtualProjectTree([
            make_file("src", "a.ts", "1\n2\n3"),
            make_file("src", "b.tsx", "1"),
            make_file("src", "c.ts", ""),
        ])
        assert tree.files_by_type() == {"tsx": 1, "typescript": 2}


class TestBuildStructure:
    @pytest.mark.unit
    def test_nested(self, make_file):
        structure = build_structure([
            make_file("", "package.json", "{}"),
            make_file("backend/src", "app.ts", "abc"),
            make_file("backend/src/routes", "task.routes.ts", ""),
        ])
        assert structure["package.json"] == {"type": "json", "size": 2}
        assert structure["backend"]["src"]["app.ts"] == {"type": "typescript", "size": 3}
        assert "task.routes.ts" in structure["backend"]["src"]["routes"]
