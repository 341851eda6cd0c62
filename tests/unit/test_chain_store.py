"""Tests for ChainStore - JSON persistence and the commit index."""

import json

import pytest

from gitpromptchain.chain_metrics import compute_chain_metrics
from gitpromptchain.chain_store import ChainStore
from gitpromptchain.models import ChangeType, FileDiff


def build_chain(lifecycle, summary="demo", commit_sha=None, branch=None, steps=1):
    """Helper: start, add steps, end."""
    lifecycle.start_chain(summary)
    for i in range(steps):
        lifecycle.add_step(
            f"Add feature {i}?",
            "done",
            [FileDiff(
                file_path="a.ts",
                change_type=ChangeType.MODIFIED,
                diff="",
                lines_added=3,
                lines_deleted=1,
            )],
        )
    return lifecycle.end_chain(commit_sha, branch)


class TestChainStore:
    """Test suite for ChainStore."""

    def test_initialize_creates_directory(self, tmp_path):
        store = ChainStore(storage_dir=tmp_path / "nested" / "store", repo_path=tmp_path)
        store.initialize()
        assert store.storage_dir.is_dir()

    def test_save_writes_chain_file(self, store, lifecycle):
        chain = build_chain(lifecycle)
        path = store.save(chain)

        assert path == store.storage_dir / f"chain-{chain.chain_id}.json"
        assert path.exists()

    def test_saved_json_layout(self, store, lifecycle, tmp_path):
        chain = build_chain(lifecycle, commit_sha="sha1", branch="main")
        data = json.loads(store.save(chain).read_text())

        assert data["metadata"]["version"] == "1.0.0"
        assert data["metadata"]["repository"] == {"name": tmp_path.resolve().name, "path": str(tmp_path.resolve())}
        assert data["metadata"]["metrics"]["totalLinesAdded"] == 3
        assert data["chain"]["chainId"] == chain.chain_id
        assert data["chain"]["commitSha"] == "sha1"
        step = data["chain"]["steps"][0]
        assert set(step) == {"id", "timestamp", "prompt", "response", "fileDiffs"}
        assert step["fileDiffs"][0] == {
            "filePath": "a.ts",
            "changeType": "modified",
            "diff": "",
            "linesAdded": 3,
            "linesDeleted": 1,
        }

    def test_unset_optionals_are_omitted(self, store, lifecycle):
        lifecycle.start_chain()
        chain = lifecycle.end_chain()
        data = json.loads(store.save(chain).read_text())

        assert "commitSha" not in data["chain"]
        assert "branch" not in data["chain"]
        assert "summary" not in data["chain"]

    def test_round_trip(self, store, lifecycle):
        """load(save(chain)) reproduces the chain with matching metrics."""
        chain = build_chain(lifecycle, commit_sha="abc123", branch="main", steps=2)
        store.save(chain)

        document = store.load(chain.chain_id)

        assert document is not None
        assert document.chain == chain
        assert document.metadata.version == "1.0.0"
        assert document.metadata.metrics == compute_chain_metrics(chain)

    def test_load_missing_returns_none(self, store):
        assert store.load("non-existent-id") is None

    def test_load_corrupt_returns_none(self, store):
        store.chain_path("broken").write_text("{not json")
        assert store.load("broken") is None

    def test_load_wrong_shape_returns_none(self, store):
        store.chain_path("odd").write_text(json.dumps({"metadata": {}}))
        assert store.load("odd") is None

    def test_list_all(self, store, lifecycle):
        first = build_chain(lifecycle, "Chain 1")
        second = build_chain(lifecycle, "Chain 2", commit_sha="sha1")
        store.save(first)
        store.save(second)
        (store.storage_dir / "notes.txt").write_text("ignored")

        chain_ids = store.list_all()

        assert sorted(chain_ids) == sorted([first.chain_id, second.chain_id])

    def test_list_all_missing_directory(self, tmp_path):
        store = ChainStore(storage_dir=tmp_path / "missing", repo_path=tmp_path)
        assert store.list_all() == []

    def test_no_commit_no_index(self, store, lifecycle):
        store.save(build_chain(lifecycle))
        assert not store.index_path.exists()
        assert not (store.storage_dir / "commits").exists()

    def test_commit_copy_and_index(self, store, lifecycle):
        chain = build_chain(lifecycle, commit_sha="sha1", branch="main")
        store.save(chain)

        copy = store.storage_dir / "commits" / "sha1" / f"chain-{chain.chain_id}.json"
        assert copy.exists()
        assert json.loads(store.index_path.read_text()) == {"sha1": [chain.chain_id]}

    def test_demo_scenario(self, store, lifecycle):
        lifecycle.start_chain("demo")
        lifecycle.add_step("Add X?", "done", [FileDiff(
            file_path="a.ts",
            change_type=ChangeType.MODIFIED,
            lines_added=3,
            lines_deleted=1,
        )])
        chain = lifecycle.end_chain("sha1", "main")
        store.save(chain)

        metrics = store.load(chain.chain_id).metadata.metrics
        assert metrics.modification_steps == 1
        assert metrics.unique_files_changed == 1
        assert metrics.total_lines_added == 3
        assert metrics.prompts.style_counts.interrogative == 1
        assert chain.chain_id in store.list_by_commit("sha1")

    def test_saving_twice_does_not_duplicate_index(self, store, lifecycle):
        chain = build_chain(lifecycle, commit_sha="sha1")
        store.save(chain)
        store.save(chain)

        assert store.list_by_commit("sha1") == [chain.chain_id]

    def test_multiple_chains_per_commit(self, store, lifecycle):
        """N chains saved under one SHA give N distinct IDs in insertion order."""
        chains = [build_chain(lifecycle, f"chain {i}", commit_sha="sha1") for i in range(3)]
        for chain in chains:
            store.save(chain)

        expected = [c.chain_id for c in chains]
        assert store.list_by_commit("sha1") == expected
        assert [d.chain.chain_id for d in store.load_by_commit("sha1")] == expected

    def test_index_keeps_commits_separate(self, store, lifecycle):
        a = build_chain(lifecycle, commit_sha="sha-a")
        b = build_chain(lifecycle, commit_sha="sha-b")
        store.save(a)
        store.save(b)

        assert store.list_by_commit("sha-a") == [a.chain_id]
        assert store.list_by_commit("sha-b") == [b.chain_id]

    def test_list_by_unknown_commit(self, store):
        assert store.list_by_commit("nope") == []
        assert store.load_by_commit("nope") == []

    def test_load_by_commit_skips_missing_documents(self, store, lifecycle):
        kept = build_chain(lifecycle, commit_sha="sha1")
        lost = build_chain(lifecycle, commit_sha="sha1")
        store.save(kept)
        store.save(lost)
        store.chain_path(lost.chain_id).unlink()

        documents = store.load_by_commit("sha1")

        assert [d.chain.chain_id for d in documents] == [kept.chain_id]

    def test_corrupt_index_reads_as_empty(self, store, lifecycle):
        store.index_path.write_text("[not an object")
        assert store.list_by_commit("sha1") == []

        chain = build_chain(lifecycle, commit_sha="sha1")
        store.save(chain)
        assert store.list_by_commit("sha1") == [chain.chain_id]

    def test_write_failure_propagates(self, tmp_path, lifecycle):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = ChainStore(storage_dir=blocker / "store", repo_path=tmp_path)

        with pytest.raises(OSError):
            store.save(build_chain(lifecycle))

    def test_reads_documents_written_by_other_implementations(self, store):
        """Millisecond 'Z' timestamps and missing fileDiffs load fine."""
        raw = {
            "metadata": {
                "version": "1.0.0",
                "created": "2024-05-01T12:00:05.000Z",
                "repository": {"name": "repo", "path": "/tmp/repo"},
            },
            "chain": {
                "chainId": "legacy",
                "startTime": "2024-05-01T12:00:00.000Z",
                "endTime": "2024-05-01T12:00:04.500Z",
                "steps": [{
                    "id": "s1",
                    "timestamp": "2024-05-01T12:00:01.000Z",
                    "prompt": "hello",
                    "response": "hi",
                }],
            },
        }
        store.chain_path("legacy").write_text(json.dumps(raw))

        document = store.load("legacy")

        assert document is not None
        assert document.metadata.metrics is None
        assert document.chain.steps[0].file_diffs == []
        assert document.chain.end_time.tzinfo is not None

    def test_load_non_utf8_returns_none(self, store, caplog):
        store.chain_path("bad").write_bytes(b'{"x": "\xff\xfe"}')

        assert store.load("bad") is None
        assert "Failed to read" in caplog.text

    def test_non_utf8_index_reads_as_empty(self, store, lifecycle):
        store.index_path.write_bytes(b'{"sha1": ["\xff"]}')
        assert store.list_by_commit("sha1") == []
        assert store.load_by_commit("sha1") == []

        chain = build_chain(lifecycle, commit_sha="sha1")
        store.save(chain)
        assert store.list_by_commit("sha1") == [chain.chain_id]

    def test_load_by_commit_skips_non_utf8_document(self, store, lifecycle):
        chain = build_chain(lifecycle, commit_sha="sha1")
        store.save(chain)
        store.chain_path(chain.chain_id).write_bytes(b"\xff\xfe\x00")

        assert store.load_by_commit("sha1") == []

    @pytest.mark.parametrize("chain_id", ["../outside", "a/b", "..\\x", ""])
    def test_load_rejects_ids_with_path_separators(self, store, chain_id):
        assert store.load(chain_id) is None

    def test_save_rejects_commit_sha_with_path_separators(self, store, lifecycle):
        chain = build_chain(lifecycle, commit_sha="../escape")

        with pytest.raises(ValueError, match="commit SHA"):
            store.save(chain)
        assert store.list_all() == []

    def test_saved_counts_follow_diff(self, store, lifecycle):
        lifecycle.start_chain()
        lifecycle.add_step("Fix it", "done", [FileDiff(
            file_path="a.ts",
            change_type=ChangeType.MODIFIED,
            diff="+x\n+y\n-z",
            lines_added=50,
            lines_deleted=0,
        )])
        chain = lifecycle.end_chain()
        store.save(chain)

        raw = json.loads(store.chain_path(chain.chain_id).read_text())
        file_diff = raw["chain"]["steps"][0]["fileDiffs"][0]
        assert (file_diff["linesAdded"], file_diff["linesDeleted"]) == (2, 1)
        assert raw["metadata"]["metrics"]["totalLinesAdded"] == 2
