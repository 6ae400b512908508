import json
import tempfile
import unittest
from pathlib import Path

from goblin.errors import CorruptLockFileError
from goblin.lockfile import InstalledPackage, LockFile, LockStore


def _entry(name: str, version: str = "v1.0.0") -> InstalledPackage:
    return InstalledPackage(
        name=name,
        version=version,
        resolved_from=version,
        install_date="2024-01-01T00:00:00Z",
        os="linux",
        arch="amd64",
        path=f"/opt/goblin/bin/{name}",
    )


class TestLockFile(unittest.TestCase):
    def test_upsert_replaces_existing_entry(self) -> None:
        lock = LockFile()
        lock.upsert(_entry("rg", "v1.0.0"))
        lock.upsert(_entry("fd", "v8.0.0"))
        lock.upsert(_entry("rg", "v2.0.0"))

        self.assertEqual(lock.names(), ["rg", "fd"])
        self.assertEqual(lock.get("rg").version, "v2.0.0")

    def test_upsert_matches_names_case_insensitively(self) -> None:
        lock = LockFile([_entry("rg")])
        lock.upsert(_entry("RG", "v3.0.0"))
        self.assertEqual(len(lock.packages), 1)
        self.assertEqual(lock.packages[0].version, "v3.0.0")

    def test_remove_reports_whether_found(self) -> None:
        lock = LockFile([_entry("rg")])
        self.assertTrue(lock.remove("rg"))
        self.assertFalse(lock.remove("rg"))
        self.assertEqual(lock.packages, [])


class TestLockStore(unittest.TestCase):
    def test_missing_file_loads_empty(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            lock = LockStore(Path(td) / "goblin.lock").load()
            self.assertEqual(lock.packages, [])

    def test_save_writes_readable_json_and_no_temp_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "goblin.lock"
            store = LockStore(path)
            store.save(LockFile([_entry("rg"), _entry("fd", "v8.7.0")]))

            raw = json.loads(path.read_text(encoding="utf-8"))
            self.assertEqual([p["name"] for p in raw["packages"]], ["rg", "fd"])
            self.assertEqual(
                set(raw["packages"][0]),
                {"name", "version", "resolved_from", "install_date", "os", "arch", "path"},
            )
            self.assertFalse(path.with_suffix(".lock.tmp").exists())
            self.assertEqual(store.load().get("fd").version, "v8.7.0")

    def test_unparseable_file_is_corrupt_not_empty(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "goblin.lock"
            path.write_text('{"packages": [', encoding="utf-8")
            with self.assertRaises(CorruptLockFileError):
                LockStore(path).load()

    def test_entry_missing_fields_is_corrupt(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "goblin.lock"
            path.write_text(json.dumps({"packages": [{"name": "rg"}]}), encoding="utf-8")
            with self.assertRaises(CorruptLockFileError):
                LockStore(path).load()

    def test_duplicate_names_are_corrupt(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "goblin.lock"
            store = LockStore(path)
            store.save(LockFile([_entry("rg")]))
            raw = json.loads(path.read_text(encoding="utf-8"))
            raw["packages"].append(dict(raw["packages"][0]))
            path.write_text(json.dumps(raw), encoding="utf-8")
            with self.assertRaises(CorruptLockFileError):
                store.load()


if __name__ == "__main__":
    unittest.main()
