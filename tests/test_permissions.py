"""
Permission and file record store tests.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from tokenfs.hardening import (
    CryptoUtils,
    FileNotFound,
    InvalidAddress,
    InvalidPath,
    ValidationError,
)
from tokenfs.permissions import (
    PermissionKey,
    PermissionRecordStore,
    canonicalize_prefix_set,
)

NFT = "0x" + "11" * 20


class TestPermissionKey:
    """Composite key construction."""

    def test_address_is_normalized(self):
        key = PermissionKey.of("0x" + "AB" * 20, 7)
        assert key.nft_contract == "0x" + "ab" * 20
        assert key == PermissionKey.of("0x" + "ab" * 20, 7)

    def test_stream_id(self):
        assert PermissionKey.of(NFT, 3).stream_id == f"{NFT}:3"

    def test_malformed_address(self):
        with pytest.raises(InvalidAddress):
            PermissionKey.of("0x1234", 1)

    def test_token_id_range(self):
        with pytest.raises(ValidationError):
            PermissionKey.of(NFT, -1)
        with pytest.raises(ValidationError):
            PermissionKey.of(NFT, 1 << 256)
        with pytest.raises(ValidationError):
            PermissionKey.of(NFT, True)
        assert PermissionKey.of(NFT, (1 << 256) - 1).token_id == (1 << 256) - 1


class TestPrefixSet:
    """Canonicalization and deduplication of prefix lists."""

    def test_dedupe_preserves_first_seen_order(self):
        assert canonicalize_prefix_set(["/b", "/a", "/b", "/a", "/c"]) == ("/b", "/a", "/c")

    def test_one_bad_entry_rejects_all(self):
        with pytest.raises(InvalidPath):
            canonicalize_prefix_set(["/ok", "/bad/", "/also-ok"])

    def test_empty_list(self):
        assert canonicalize_prefix_set([]) == ()


class TestPermissionRecordStore:
    """Replace-only prefix sets and an independent revocation flag."""

    def test_unknown_key_is_empty_and_not_revoked(self):
        store = PermissionRecordStore()
        key = PermissionKey.of(NFT, 1)
        assert store.prefixes(key) == ()
        assert store.is_revoked(key) is False
        assert not store.authorizes(key, "/anything")

    def test_replace_is_wholesale(self):
        store = PermissionRecordStore()
        key = PermissionKey.of(NFT, 1)
        store.replace_prefixes(key, ["/a", "/b"])
        store.replace_prefixes(key, ["/c"])
        assert store.prefixes(key) == ("/c",)

    def test_failed_replace_leaves_previous_set(self):
        store = PermissionRecordStore()
        key = PermissionKey.of(NFT, 1)
        store.replace_prefixes(key, ["/a"])
        with pytest.raises(InvalidPath):
            store.replace_prefixes(key, ["/b", "b"])
        assert store.prefixes(key) == ("/a",)

    def test_revocation_does_not_touch_prefixes(self):
        store = PermissionRecordStore()
        key = PermissionKey.of(NFT, 1)
        store.replace_prefixes(key, ["/a"])
        assert store.set_revoked(key, True) is True
        assert store.prefixes(key) == ("/a",)
        store.replace_prefixes(key, ["/b"])
        assert store.is_revoked(key) is True

    def test_set_revoked_reports_change_only(self):
        store = PermissionRecordStore()
        key = PermissionKey.of(NFT, 1)
        assert store.set_revoked(key, False) is False
        assert store.set_revoked(key, True) is True
        assert store.set_revoked(key, True) is False

    def test_has_prefix_is_exact_membership(self):
        store = PermissionRecordStore()
        key = PermissionKey.of(NFT, 1)
        store.replace_prefixes(key, ["/shared/data"])
        assert store.has_prefix(key, "/shared/data")
        assert not store.has_prefix(key, "/shared")
        assert store.authorizes(key, "/shared/data/x.json")

    def test_keys_are_independent(self):
        store = PermissionRecordStore()
        store.replace_prefixes(PermissionKey.of(NFT, 1), ["/a"])
        assert store.prefixes(PermissionKey.of(NFT, 2)) == ()
        assert store.prefixes(PermissionKey.of("0x" + "22" * 20, 1)) == ()

    def test_cleared_records_are_dropped(self):
        store = PermissionRecordStore()
        key = PermissionKey.of(NFT, 1)
        store.replace_prefixes(key, ["/a"])
        assert len(store) == 1
        store.replace_prefixes(key, [])
        assert len(store) == 0


class TestFileRecordStore:
    """Latest-value store keyed by the keccak-256 path hash."""

    def test_upsert_overwrites(self):
        from tokenfs.files import FileRecordStore

        store = FileRecordStore()
        store.upsert("/agent1/a.json", "v1")
        record = store.upsert("/agent1/a.json", "v2")
        assert store.get("/agent1/a.json").cid == "v2"
        assert record.path_hash == CryptoUtils.path_hash("/agent1/a.json")
        assert len(store) == 1

    def test_missing_record(self):
        from tokenfs.files import FileRecordStore

        store = FileRecordStore()
        assert store.exists("/nope") is False
        with pytest.raises(FileNotFound):
            store.get("/nope")

    def test_path_hash_is_raw_keccak(self):
        """keccak256("") and keccak256("abc") reference values."""
        assert CryptoUtils.keccak256_hex(b"") == (
            "0xc5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
        )
        assert CryptoUtils.keccak256_hex("abc") == (
            "0x4e03657aea45a94fc7d47ba826c8d667c0d1e6e33a64a036ec44f58fa12d6c45"
        )
        assert CryptoUtils.path_hash("abc") == CryptoUtils.keccak256_hex(b"abc")

    def test_case_distinct_paths_are_distinct_records(self):
        from tokenfs.files import FileRecordStore

        store = FileRecordStore()
        store.upsert("/A", "upper")
        store.upsert("/a", "lower")
        assert store.get("/A").cid == "upper"
        assert store.get("/a").cid == "lower"
