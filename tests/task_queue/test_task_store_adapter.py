import unittest

from task_queue import LocalCacheReconciler, TaskStoreAdapter
from tasks import (
    InMemoryTaskStore,
    Task,
    TaskNotFoundError,
    TaskStoreUnavailableError,
    TaskValidationError,
)


class _UnavailableStore(InMemoryTaskStore):
    def list(self):
        raise TaskStoreUnavailableError("offline")


class _PairingStore(InMemoryTaskStore):
    """Store that adds its own break after every work task."""

    def create(self, name, duration=25, *, is_interval=False, parent_task_id=None):
        task = super().create(
            name, duration, is_interval=is_interval, parent_task_id=parent_task_id
        )
        if not is_interval:
            super().create("Break", 5, is_interval=True, parent_task_id=task.id)
        return task


def _adapter(store=None, **kwargs) -> TaskStoreAdapter:
    return TaskStoreAdapter(store or InMemoryTaskStore(), LocalCacheReconciler(), **kwargs)


class TaskStoreAdapterTests(unittest.TestCase):
    def test_create_task_queues_task_and_break(self) -> None:
        adapter = _adapter()
        queue = adapter.create_task("Write", 30)

        self.assertEqual(["Write", "Break"], [task.name for task in queue])
        self.assertEqual(queue[0].id, queue[1].parent_task_id)

    def test_create_task_uses_default_duration(self) -> None:
        adapter = _adapter(default_duration_minutes=45, auto_break=False)
        queue = adapter.create_task("Write")

        self.assertEqual((Task(id=1, name="Write", duration=45),), queue)

    def test_create_task_with_pairing_store_does_not_double_breaks(self) -> None:
        adapter = _adapter(_PairingStore(), store_pairs_breaks=True)
        queue = adapter.create_task("Write", 25)

        self.assertEqual(2, len(queue))
        self.assertEqual(1, sum(task.is_interval for task in queue))

    def test_validation_errors_propagate(self) -> None:
        adapter = _adapter()
        with self.assertRaises(TaskValidationError):
            adapter.create_task("   ", 25)
        self.assertEqual((), adapter.queue)

    def test_update_and_delete_mirror_into_queue(self) -> None:
        adapter = _adapter(auto_break=False)
        adapter.create_task("One", 10)
        adapter.create_task("Two", 10)

        adapter.update_task(1, name="Uno")
        queue = adapter.delete_task(2)

        self.assertEqual((Task(id=1, name="Uno", duration=10),), queue)

    def test_delete_unknown_task_raises(self) -> None:
        with self.assertRaises(TaskNotFoundError):
            _adapter().delete_task(5)

    def test_refresh_keeps_last_queue_when_store_unavailable(self) -> None:
        store = _UnavailableStore()
        adapter = _adapter(store, auto_break=False)
        adapter.create_task("Offline task", 10)

        self.assertEqual(1, len(adapter.refresh()))

    def test_refresh_picks_up_external_changes(self) -> None:
        store = InMemoryTaskStore()
        adapter = _adapter(store)
        store.create("From API", 20)

        self.assertEqual(["From API"], [task.name for task in adapter.refresh()])

    def test_clear_tasks_empties_store_and_queue(self) -> None:
        store = InMemoryTaskStore()
        adapter = _adapter(store)
        adapter.create_task("One", 10)

        self.assertEqual(2, adapter.clear_tasks())
        self.assertEqual((), adapter.queue)
        self.assertEqual([], store.list())

    def test_reorder_changes_queue_order(self) -> None:
        adapter = _adapter(auto_break=False)
        adapter.create_task("One", 10)
        adapter.create_task("Two", 10)

        queue = adapter.reorder([2, 1])

        self.assertEqual(["Two", "One"], [task.name for task in queue])
        self.assertEqual(queue, adapter.queue)


if __name__ == "__main__":
    unittest.main()
