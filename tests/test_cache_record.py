"""
Test cases for cache records, their sidecar format and the dependency hash table.
"""

import pytest
from histgen.cache.dependency_hashes import DependencyHashTable
from histgen.cache.hash_function import HashFunction
from histgen.cache.record import CacheRecord
from histgen.config.resources import RESOURCE_LAYOUT
from histgen.core.exceptions import ConfigurationError


@pytest.fixture
def sidecar(tmp_path):
    return tmp_path / "artifact.jar.cache"


class TestCacheRecordEquality:
    """Record equality ignores insertion order"""

    def test_insertion_order_is_irrelevant(self):
        first = CacheRecord().put("client", "aa").put("server", "bb").put("map", "cc")
        second = CacheRecord().put("map", "cc").put("client", "aa").put("server", "bb")

        assert first == second

    def test_different_values_are_not_equal(self):
        first = CacheRecord().put("client", "aa")
        second = CacheRecord().put("client", "ab")

        assert first != second

    def test_comment_does_not_affect_equality(self):
        first = CacheRecord().comment("Header").put("key", "value")
        second = CacheRecord().put("key", "value")

        assert first == second

    def test_round_trip_through_sidecar(self, sidecar):
        record = (CacheRecord()
                  .comment("Generated by a test", "Second line")
                  .put("zeta", "1")
                  .put("alpha", "2"))
        record.write(sidecar)

        assert CacheRecord.read(sidecar) == record

    def test_serialization_preserves_insertion_order(self):
        record = CacheRecord().put("zeta", "1").put("alpha", "2")

        assert record.serialize() == "zeta: 1\nalpha: 2\n"

    def test_serialization_with_comment(self):
        record = CacheRecord().comment("Header").put("key", "value")

        assert record.serialize() == "Header\n\nkey: value\n"


class TestCacheRecordValidity:
    """is_valid compares the persisted mapping with the in-memory one"""

    def test_missing_sidecar_is_invalid(self, sidecar):
        assert not CacheRecord().put("key", "value").is_valid(sidecar)

    def test_identical_record_is_valid(self, sidecar):
        CacheRecord().put("a", "1").put("b", "2").write(sidecar)

        assert CacheRecord().put("b", "2").put("a", "1").is_valid(sidecar)

    def test_extra_persisted_key_invalidates(self, sidecar):
        CacheRecord().put("a", "1").put("b", "2").write(sidecar)

        assert not CacheRecord().put("a", "1").is_valid(sidecar)

    def test_missing_persisted_key_invalidates(self, sidecar):
        CacheRecord().put("a", "1").write(sidecar)

        assert not CacheRecord().put("a", "1").put("b", "2").is_valid(sidecar)

    def test_changed_value_invalidates(self, sidecar):
        CacheRecord().put("a", "1").write(sidecar)

        assert not CacheRecord().put("a", "2").is_valid(sidecar)

    def test_predicate_excludes_persisted_keys(self, sidecar):
        CacheRecord().put("client", "1").put("server", "2").write(sidecar)
        current = CacheRecord().put("client", "1")

        assert not current.is_valid(sidecar)
        assert current.is_valid(sidecar, should_consider=lambda key: key != "server")

    def test_malformed_lines_are_ignored(self, sidecar):
        sidecar.write_text(
            "Some header text\n"
            "\n"
            "no_colon value\n"
            ": leading\n"
            "key: value\n"
            "trailing:\n"
        )

        assert CacheRecord().put("key", "value").is_valid(sidecar)

    def test_value_may_contain_separator(self, sidecar):
        CacheRecord().put("command", "java -jar tool.jar --out: x").write(sidecar)

        assert CacheRecord.read(sidecar).get("command") == "java -jar tool.jar --out: x"


class TestCacheRecordPut:
    """Values can come from strings, files and the dependency table"""

    def test_put_file_stores_sha1(self, tmp_path):
        path = tmp_path / "input.bin"
        path.write_bytes(b"payload")

        record = CacheRecord().put_file("input", path)

        assert record.get("input") == HashFunction.SHA1.hash_bytes(b"payload")

    def test_put_dependency_uses_same_key(self):
        table = DependencyHashTable({"renamer": "abc123"})

        assert CacheRecord().put_dependency("renamer", table).get("renamer") == "abc123"

    def test_put_dependency_unknown_key(self):
        with pytest.raises(ConfigurationError):
            CacheRecord().put_dependency("missing", DependencyHashTable())


class TestDependencyHashTable:
    """Parsing of the key=value dependency hash resource"""

    def test_parse_rules(self):
        table = DependencyHashTable.parse(
            "# full line comment\n"
            "\n"
            "mergetool=abc\n"
            "renamer=def # trailing comment\n"
            "no separator here\n"
            "decompiler=a=b\n"
        )

        assert table.get("mergetool") == "abc"
        assert table.get("renamer") == "def"
        assert table.get("decompiler") == "a=b"
        assert len(table) == 3

    def test_require_missing_key(self):
        with pytest.raises(ConfigurationError):
            DependencyHashTable.parse("a=b").require("c")

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            DependencyHashTable.load(tmp_path / "missing.txt")

    def test_packaged_resource_has_every_tool(self):
        table = DependencyHashTable.load(RESOURCE_LAYOUT.dependency_hashes)

        for key in ("mergetool", "renamer", "decompiler", "bundler"):
            assert key in table


class TestHashFunction:

    def test_file_and_bytes_agree(self, tmp_path):
        path = tmp_path / "data"
        path.write_bytes(b"x" * 3_000_000)

        assert HashFunction.MD5.hash_file(path) == HashFunction.MD5.hash_bytes(b"x" * 3_000_000)

    def test_digest_lengths(self):
        for function in HashFunction:
            assert len(function.hash_string("abc")) == function.length
