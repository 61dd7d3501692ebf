"""Tests for the key-value stores."""

import json

from trade_ledger.storage.kv import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore


class TestMemoryStore:
    def test_protocol(self):
        assert isinstance(MemoryKeyValueStore(), KeyValueStore)

    def test_save_load_remove(self):
        kv = MemoryKeyValueStore()
        kv.save("a", "1")
        assert kv.load("a") == "1"
        kv.remove("a")
        kv.remove("a")  # Missing key is fine
        assert kv.load("a") is None


class TestJsonFileStore:
    def test_protocol(self, tmp_path):
        assert isinstance(JsonFileKeyValueStore(tmp_path / "s.json"), KeyValueStore)

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "s.json"
        JsonFileKeyValueStore(path).save("cryptoTrades", "[]")
        assert JsonFileKeyValueStore(path).load("cryptoTrades") == "[]"

    def test_remove_persists(self, tmp_path):
        path = tmp_path / "s.json"
        kv = JsonFileKeyValueStore(path)
        kv.save("k", "v")
        kv.remove("k")
        assert json.loads(path.read_text()) == {}

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("{not json")
        kv = JsonFileKeyValueStore(path)
        assert kv.load("k") is None
        kv.save("k", "v")
        assert json.loads(path.read_text()) == {"k": "v"}

    def test_non_object_file_loads_empty(self, tmp_path):
        path = tmp_path / "s.json"
        path.write_text("[1, 2]")
        assert JsonFileKeyValueStore(path).load("0") is None
