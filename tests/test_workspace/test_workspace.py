"""
Tests for WorkspaceIndexer over a real temporary workspace.

Covers:
- Startup scan (inclusion, exclusion, directory prefixes)
- Incremental create / change / delete
- Unreadable documents
- refresh() and dispose()
- Document state transitions
"""

from pathlib import Path

import pytest

from hydralink.indexer.events import DocumentEvent, EventKind
from hydralink.indexer.host import FileSystemHost, document_id_for
from hydralink.indexer.models import DocumentState
from hydralink.indexer.workspace import WorkspaceIndexer


# ── Fixtures ─────────────────────────────────────────────────────────────


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    write(root / "config.yaml", "defaults:\n  - model: resnet\nlr: ${model.resnet.optim.lr}\n")
    write(root / "model" / "resnet.yaml", "optim:\n  lr: 0.1\n  momentum: 0.9\n")
    write(root / "model" / "vit.yml", "optim:\n  lr: 0.001\n")
    write(root / "node_modules" / "pkg" / "x.yaml", "optim:\n  lr: 5\n")
    write(root / "outputs" / "2024" / "config.yaml", "optim:\n  lr: 7\n")
    write(root / "notes.txt", "optim: {lr: 1}\n")
    return root


@pytest.fixture
def indexer(workspace: Path) -> WorkspaceIndexer:
    indexer = WorkspaceIndexer(FileSystemHost([workspace]))
    indexer.initialize()
    return indexer


def docs_for(indexer: WorkspaceIndexer, *query: str) -> set[str]:
    return {m.document_id for m in indexer.query(list(query))}


# ── Startup scan ─────────────────────────────────────────────────────────


class TestInitialize:
    """The startup scan indexes every included, non-excluded document."""

    def test_stats(self, workspace: Path) -> None:
        indexer = WorkspaceIndexer(FileSystemHost([workspace]))
        stats = indexer.initialize()
        assert stats.documents == 3
        assert stats.failed == []
        assert stats.definitions == len(indexer.index)
        assert indexer.initialized

    def test_directory_prefix_is_part_of_the_path(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        paths = {d.dotted for d in indexer.definitions_for(workspace / "model" / "resnet.yaml")}
        assert paths == {"model.resnet.optim", "model.resnet.optim.lr", "model.resnet.optim.momentum"}

    def test_excluded_directories_are_not_indexed(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        found = docs_for(indexer, "optim", "lr")
        assert document_id_for(workspace / "node_modules" / "pkg" / "x.yaml") not in found
        assert document_id_for(workspace / "outputs" / "2024" / "config.yaml") not in found

    def test_non_yaml_files_are_ignored(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        assert document_id_for(workspace / "notes.txt") not in indexer.scanned_documents()

    def test_full_path_query(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        matches = indexer.query(["model", "resnet", "optim", "lr"])
        top = [m for m in matches if m.match_level == 4]
        assert len(top) == 1
        assert top[0].document_id == document_id_for(workspace / "model" / "resnet.yaml")

    def test_unreadable_document_does_not_abort_scan(self, workspace: Path) -> None:
        bad = workspace / "broken.yaml"
        bad.write_bytes(b"key: \xff\xfe\x00 invalid utf-8\n")
        indexer = WorkspaceIndexer(FileSystemHost([workspace]))
        stats = indexer.initialize()
        assert stats.failed == [document_id_for(bad)]
        assert stats.documents == 4
        assert indexer.definitions_for(bad) == []
        assert indexer.state_of(bad) is DocumentState.UNINDEXED
        assert docs_for(indexer, "optim", "lr")

    def test_missing_root_is_skipped(self, tmp_path: Path, workspace: Path) -> None:
        indexer = WorkspaceIndexer(FileSystemHost([tmp_path / "missing", workspace]))
        assert indexer.initialize().documents == 3


# ── Incremental updates ──────────────────────────────────────────────────


class TestIncremental:
    """Updates replace a document's whole contribution."""

    def test_change_replaces_definitions(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        doc = workspace / "model" / "resnet.yaml"
        doc.write_text("scheduler:\n  step: 10\n", encoding="utf-8")
        indexer.document_changed(doc)

        assert document_id_for(doc) not in docs_for(indexer, "optim", "lr")
        assert document_id_for(doc) in docs_for(indexer, "scheduler", "step")
        assert indexer.state_of(doc) is DocumentState.REINDEXED

    def test_change_leaves_other_documents_alone(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        vit = workspace / "model" / "vit.yml"
        before = indexer.definitions_for(vit)
        doc = workspace / "model" / "resnet.yaml"
        doc.write_text("other: 1\n", encoding="utf-8")
        indexer.document_changed(doc)
        assert indexer.definitions_for(vit) == before

    def test_delete_removes_every_definition(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        doc = workspace / "model" / "resnet.yaml"
        definitions = indexer.definitions_for(doc)
        doc.unlink()
        indexer.document_deleted(doc)

        assert indexer.definitions_for(doc) == []
        assert all(indexer.index.registration_count(d) == 0 for d in definitions)
        assert indexer.state_of(doc) is DocumentState.REMOVED
        assert document_id_for(doc) not in indexer.scanned_documents()

    def test_delete_unknown_document_is_noop(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        size = len(indexer.index)
        indexer.document_deleted(workspace / "never.yaml")
        assert len(indexer.index) == size
        assert indexer.state_of(workspace / "never.yaml") is DocumentState.UNINDEXED

    def test_create_indexes_new_document(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        doc = write(workspace / "optimizer" / "adam.yaml", "lr: 0.0003\nbetas: [0.9, 0.999]\n")
        indexer.document_created(doc)
        assert document_id_for(doc) in docs_for(indexer, "optimizer", "adam", "lr")
        assert indexer.state_of(doc) is DocumentState.INDEXED

    def test_create_after_delete(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        doc = workspace / "model" / "resnet.yaml"
        indexer.document_deleted(doc)
        indexer.document_created(doc)
        assert indexer.state_of(doc) is DocumentState.INDEXED
        assert len(indexer.definitions_for(doc)) == 3

    def test_repeated_create_does_not_duplicate(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        doc = workspace / "model" / "resnet.yaml"
        indexer.document_created(doc)
        indexer.document_created(doc)
        assert len(indexer.definitions_for(doc)) == 3

    def test_change_of_vanished_document_leaves_no_definitions(
        self, indexer: WorkspaceIndexer, workspace: Path
    ) -> None:
        doc = workspace / "model" / "resnet.yaml"
        doc.unlink()
        indexer.document_changed(doc)
        assert indexer.definitions_for(doc) == []
        assert indexer.state_of(doc) is DocumentState.UNINDEXED

    def test_excluded_notification_is_ignored(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        doc = workspace / "node_modules" / "pkg" / "x.yaml"
        indexer.document_created(doc)
        assert indexer.definitions_for(doc) == []

    def test_apply_dispatches_by_kind(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        doc = workspace / "model" / "vit.yml"
        indexer.apply(DocumentEvent(EventKind.DELETED, doc))
        assert indexer.definitions_for(doc) == []
        indexer.apply(DocumentEvent(EventKind.CREATED, doc))
        assert indexer.definitions_for(doc)

    def test_document_outside_every_root_gets_no_prefix(self, indexer: WorkspaceIndexer, tmp_path: Path) -> None:
        outside = write(tmp_path / "elsewhere" / "extra.yaml", "optim:\n  lr: 3\n")
        indexer.document_created(outside)
        assert {d.dotted for d in indexer.definitions_for(outside)} == {"optim", "optim.lr"}


# ── Rebuild and lifecycle ────────────────────────────────────────────────


class TestLifecycle:
    def test_refresh_picks_up_unnotified_changes(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        write(workspace / "silent.yaml", "hidden: 1\n")
        assert not indexer.query(["silent", "hidden"])
        stats = indexer.refresh()
        assert stats.documents == 4
        assert docs_for(indexer, "silent", "hidden") == {document_id_for(workspace / "silent.yaml")}

    def test_refresh_forgets_deleted_documents(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        (workspace / "model" / "vit.yml").unlink()
        indexer.refresh()
        assert document_id_for(workspace / "model" / "vit.yml") not in indexer.scanned_documents()

    def test_create_delete_churn_keeps_bookkeeping_bounded(
        self, indexer: WorkspaceIndexer, workspace: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(WorkspaceIndexer, "removed_history", 10)
        before = indexer.scanned_documents()
        docs = []
        for i in range(50):
            doc = write(workspace / "tmp" / f"run_{i}.yaml", "x: 1\n")
            indexer.document_created(doc)
            doc.unlink()
            indexer.document_deleted(doc)
            docs.append(doc)

        assert indexer.scanned_documents() == before
        assert len(indexer._states) == len(before)
        assert len(indexer._removed) == 10
        assert indexer.state_of(docs[-1]) is DocumentState.REMOVED
        assert indexer.state_of(docs[0]) is DocumentState.UNINDEXED

    def test_recreated_document_leaves_removed_history(self, indexer: WorkspaceIndexer, workspace: Path) -> None:
        doc = workspace / "model" / "resnet.yaml"
        indexer.document_deleted(doc)
        indexer.document_created(doc)
        assert document_id_for(doc) not in indexer._removed
        assert document_id_for(doc) in indexer.scanned_documents()

    def test_dispose_empties_the_index(self, indexer: WorkspaceIndexer) -> None:
        indexer.dispose()
        assert len(indexer.index) == 0
        assert indexer.scanned_documents() == []
        assert not indexer.initialized

    def test_custom_exclusions(self, workspace: Path) -> None:
        indexer = WorkspaceIndexer(FileSystemHost([workspace]), exclude_patterns=["model/*"])
        indexer.initialize()
        resnet = document_id_for(workspace / "model" / "resnet.yaml")
        assert resnet not in docs_for(indexer, "resnet", "optim", "lr")
        assert indexer.is_excluded(workspace / "model" / "resnet.yaml")
        assert not indexer.is_excluded(workspace / "config.yaml")
