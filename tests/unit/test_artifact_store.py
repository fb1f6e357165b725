"""
Unit tests for ArtifactStore and working copies.
"""

import pytest

from strata.hashing import TreeHasher
from strata.storage import ArtifactStore

FP = "ab" * 32


@pytest.fixture
def store(tmp_path):
    with ArtifactStore(tmp_path / "store", hasher=TreeHasher("sha256")) as s:
        yield s


class TestImportTree:
    """Tests for ArtifactStore.import_tree."""

    def test_import_directory(self, store, context_dir):
        """Importing copies the tree and records its digest."""
        artifact = store.import_tree(context_dir)

        assert (artifact.path / "app" / "pom.xml").read_text().startswith("<project>")
        assert artifact.fingerprint == artifact.content_digest
        assert artifact.stage is None
        assert artifact.workdir == "/"

    def test_import_empty_tree(self, store):
        """None imports an empty tree."""
        artifact = store.import_tree(None)

        assert list(artifact.path.iterdir()) == []

    def test_equal_trees_share_digest(self, store, context_dir):
        """Two imports of the same tree are distinct artifacts with equal content."""
        first = store.import_tree(context_dir)
        second = store.import_tree(context_dir)

        assert first.id != second.id
        assert first.path != second.path
        assert first.content_digest == second.content_digest

    def test_import_is_a_copy(self, store, context_dir):
        """Later edits to the source do not reach the artifact."""
        artifact = store.import_tree(context_dir)

        (context_dir / "app" / "pom.xml").write_text("<changed/>")

        assert store.hasher.digest_tree(artifact.path) == artifact.content_digest

    def test_not_a_directory(self, store, tmp_path):
        """Importing a file is rejected."""
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")

        with pytest.raises(NotADirectoryError):
            store.import_tree(file_path)

    def test_store_inside_source_is_skipped(self, tmp_path):
        """A store living inside the imported tree is not copied into itself."""
        (tmp_path / "pom.xml").write_text("<project/>")
        with ArtifactStore(tmp_path / ".strata" / "store") as nested:
            artifact = nested.import_tree(tmp_path)

            assert (artifact.path / "pom.xml").exists()
            assert not (artifact.path / ".strata" / "store").exists()


class TestWorkingCopy:
    """Tests for working copy ownership and commit."""

    def test_commit_creates_new_artifact(self, store):
        """Committed changes form a new artifact; the input is untouched."""
        base = store.import_tree(None)

        with store.working_copy(base) as wc:
            (wc.cwd / "out.txt").write_text("hello")
            wc.env["JAVA_HOME"] = "/opt/jdk"
            wc.change_workdir("/app")
            artifact = wc.commit(stage="build", fingerprint=FP)

        assert artifact.stage == "build"
        assert artifact.fingerprint == FP
        assert (artifact.path / "out.txt").read_text() == "hello"
        assert artifact.env == {"JAVA_HOME": "/opt/jdk"}
        assert artifact.workdir == "/app"
        assert (artifact.path / "app").is_dir()
        assert list(base.path.iterdir()) == []
        assert base.env == {}

    def test_uncommitted_copy_is_discarded(self, store):
        """Leaving the block without commit leaves no artifact behind."""
        base = store.import_tree(None)
        before = set((store.root / "artifacts").iterdir())

        with store.working_copy(base) as wc:
            (wc.cwd / "partial.txt").write_text("partial")
            scratch_tree = wc.tree

        assert not scratch_tree.exists()
        assert set((store.root / "artifacts").iterdir()) == before

    def test_exception_discards_copy(self, store):
        """An error inside the block discards the working copy."""
        base = store.import_tree(None)
        before = set((store.root / "artifacts").iterdir())

        with pytest.raises(RuntimeError):
            with store.working_copy(base) as wc:
                (wc.cwd / "partial.txt").write_text("partial")
                raise RuntimeError("boom")

        assert set((store.root / "artifacts").iterdir()) == before
        assert list((store.root / "work").iterdir()) == []

    def test_double_commit_rejected(self, store):
        """A working copy commits at most once."""
        base = store.import_tree(None)

        with store.working_copy(base) as wc:
            wc.commit(stage="build", fingerprint=FP)
            with pytest.raises(RuntimeError):
                wc.commit(stage="build", fingerprint=FP)

    def test_relative_workdir(self, store):
        """Relative WORKDIR paths resolve against the current directory."""
        base = store.import_tree(None)

        with store.working_copy(base) as wc:
            wc.change_workdir("/app")
            wc.change_workdir("target")

            assert wc.workdir == "/app/target"
            assert wc.cwd == wc.tree / "app" / "target"

    def test_paths_stay_inside_snapshot(self, store):
        """Parent references above the snapshot root clamp to the root."""
        base = store.import_tree(None)

        with store.working_copy(base) as wc:
            assert wc.resolve("../../etc/passwd") == wc.tree / "etc" / "passwd"


class TestTemporaryStore:
    """Tests for store lifecycle."""

    def test_temporary_store_removed_on_close(self):
        """A store without root lives in a temp dir removed on close."""
        store = ArtifactStore()
        root = store.root
        assert root.is_dir()

        store.close()

        assert not root.exists()

    def test_keep_preserves_temporary_store(self):
        """keep=True leaves the temp dir in place."""
        import shutil

        store = ArtifactStore(keep=True)
        store.close()

        assert store.root.is_dir()
        shutil.rmtree(store.root)

    def test_explicit_root_is_never_removed(self, tmp_path):
        """Stores with an explicit root are left on disk."""
        store = ArtifactStore(tmp_path / "store")
        store.close()

        assert (tmp_path / "store" / "artifacts").is_dir()
