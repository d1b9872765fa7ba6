import json
import tempfile
import unittest
from pathlib import Path

from session import JsonFileSessionCache, MemorySessionCache


class MemorySessionCacheTests(unittest.TestCase):
    def test_values_are_copied_on_read_and_write(self) -> None:
        cache = MemorySessionCache()
        value = {"tasks": [1, 2]}
        cache.set("key", value)
        value["tasks"].append(3)

        loaded = cache.get("key")
        loaded["tasks"].append(4)

        self.assertEqual({"tasks": [1, 2]}, cache.get("key"))

    def test_setting_none_removes_key(self) -> None:
        cache = MemorySessionCache()
        cache.set("key", 1)
        cache.set("key", None)

        self.assertIsNone(cache.get("key"))


class JsonFileSessionCacheTests(unittest.TestCase):
    def test_values_survive_new_instance(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "nested" / "session.json"
            JsonFileSessionCache(path).set("pomodoro_tasks", [{"id": 1}])

            self.assertEqual([{"id": 1}], JsonFileSessionCache(path).get("pomodoro_tasks"))
            self.assertFalse(path.with_suffix(".json.tmp").exists())

    def test_keys_are_stored_side_by_side(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "session.json"
            cache = JsonFileSessionCache(path)
            cache.set("a", 1)
            cache.set("b", 2)
            cache.set("a", None)

            self.assertEqual({"b": 2}, json.loads(path.read_text(encoding="utf-8")))

    def test_missing_file_reads_as_empty(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            cache = JsonFileSessionCache(Path(temp_dir) / "absent.json")

            self.assertIsNone(cache.get("anything"))

    def test_corrupt_file_raises_on_read(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "session.json"
            path.write_text("[1, 2]", encoding="utf-8")

            with self.assertRaises(ValueError):
                JsonFileSessionCache(path).get("key")

    def test_corrupt_file_is_replaced_on_next_write(self) -> None:
        for content in ("{not json", "[1, 2]"):
            with self.subTest(content=content):
                with tempfile.TemporaryDirectory() as temp_dir:
                    path = Path(temp_dir) / "session.json"
                    path.write_text(content, encoding="utf-8")
                    cache = JsonFileSessionCache(path)

                    with self.assertLogs("session.cache", level="WARNING"):
                        cache.set("k", {"v": 1})

                    self.assertEqual({"v": 1}, cache.get("k"))
                    self.assertEqual(
                        {"k": {"v": 1}},
                        json.loads(path.read_text(encoding="utf-8")),
                    )


if __name__ == "__main__":
    unittest.main()
