"""Tests for the task store backends."""

import json

import pytest

from pattern_probe.schemas import ExtractionTask, TaskStatus
from pattern_probe.storage import FileTaskStore, InMemoryTaskStore, TaskStore, create_store


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    """Each backend in turn."""
    if request.param == "memory":
        return InMemoryTaskStore()
    return FileTaskStore(tmp_path / "store")


def make_task(task_id="task_abc", **kwargs):
    return ExtractionTask(id=task_id, pattern_tree_id="products", target="https://x", **kwargs)


class TestTaskStoreContract:
    """Behaviour shared by every backend."""

    def test_satisfies_protocol(self, store):
        """Test backends satisfy the runtime-checkable protocol."""
        assert isinstance(store, TaskStore)

    def test_pattern_round_trip(self, store, products_tree):
        """Test saved patterns read back equal."""
        store.save_pattern("products", products_tree)
        assert store.get_pattern("products") == products_tree
        assert store.get_pattern("other") is None
        assert store.list_pattern_ids() == ["products"]

    def test_task_round_trip(self, store):
        """Test saved tasks read back equal and overwrite in place."""
        task = make_task()
        store.save_task(task)
        assert store.get_task(task.id) == task
        store.save_task(task.model_copy(update={"status": TaskStatus.RUNNING}))
        assert store.get_task(task.id).status == TaskStatus.RUNNING
        assert len(store.list_tasks()) == 1

    def test_missing_task(self, store):
        """Test unknown tasks read as None."""
        assert store.get_task("task_nope") is None

    def test_records_append_only(self, store, make_record):
        """Test records accumulate in submission order."""
        a = make_record("items.item.title", [0], "a", task_id="task_abc")
        b = make_record("items.item.title", [1], "b", task_id="task_abc")
        store.append_records("task_abc", [a])
        store.append_records("task_abc", [b])
        store.append_records("task_abc", [])
        assert store.read_records("task_abc") == [a, b]
        assert store.read_records("task_abc", limit=1) == [a]
        assert store.count_records("task_abc") == 2
        assert store.read_records("task_other") == []
        assert store.count_records("task_other") == 0

    def test_returned_models_are_copies(self, store, products_tree):
        """Test mutating a returned pattern does not change the stored one."""
        store.save_pattern("products", products_tree)
        loaded = store.get_pattern("products")
        loaded.nodes.clear()
        assert len(store.get_pattern("products").nodes) == len(products_tree.nodes)


class TestFileTaskStore:
    """Tests specific to the file backend."""

    def test_layout(self, tmp_path, products_tree, make_record):
        """Test files land in patterns/, tasks/ and records/."""
        store = FileTaskStore(tmp_path)
        store.save_pattern("products", products_tree)
        store.save_task(make_task())
        store.append_records("task_abc", [make_record("items.item.title", [0], "a", task_id="task_abc")])

        assert (tmp_path / "patterns" / "products.json").exists()
        assert (tmp_path / "tasks" / "task_abc.json").exists()
        lines = (tmp_path / "records" / "task_abc.jsonl").read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["value"] == "a"

    def test_no_temp_files_left(self, tmp_path):
        """Test atomic writes leave no .tmp files behind."""
        store = FileTaskStore(tmp_path)
        store.save_task(make_task())
        assert list(tmp_path.rglob("*.tmp")) == []

    def test_unsafe_id_rejected(self, tmp_path):
        """Test ids that would escape the store directory."""
        store = FileTaskStore(tmp_path)
        with pytest.raises(ValueError):
            store.get_task("../etc/passwd")

    def test_unreadable_task_skipped(self, tmp_path, caplog):
        """Test corrupt task files are skipped with a warning."""
        store = FileTaskStore(tmp_path)
        store.save_task(make_task())
        (tmp_path / "tasks" / "task_bad.json").write_text("{not json")
        with caplog.at_level("WARNING"):
            tasks = store.list_tasks()
        assert [t.id for t in tasks] == ["task_abc"]
        assert "task_bad.json" in caplog.text


class TestCreateStore:
    """Tests for create_store."""

    def test_default_is_memory(self):
        """Test no directory means in-memory."""
        assert isinstance(create_store(), InMemoryTaskStore)

    def test_directory_means_files(self, tmp_path):
        """Test a directory selects the file store."""
        assert isinstance(create_store(tmp_path), FileTaskStore)
