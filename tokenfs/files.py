"""
TokenFS File Record Store

Upsert-only map from keccak-256(canonical path) to the latest CID.
No history is kept here; the event log is the only history source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from tokenfs.hardening import CryptoUtils, FileNotFound


@dataclass(frozen=True)
class FileRecord:
    """Latest value stored at a canonical path."""
    path_hash: str
    path: str
    cid: str


class FileRecordStore:
    """Latest-value store keyed by path hash."""

    def __init__(self):
        self._records: Dict[str, FileRecord] = {}

    def upsert(self, canonical_path: str, cid: str) -> FileRecord:
        record = FileRecord(
            path_hash=CryptoUtils.path_hash(canonical_path),
            path=canonical_path,
            cid=cid,
        )
        self._records[record.path_hash] = record
        return record

    def get(self, canonical_path: str) -> FileRecord:
        record = self._records.get(CryptoUtils.path_hash(canonical_path))
        if record is None:
            raise FileNotFound(canonical_path)
        return record

    def exists(self, canonical_path: str) -> bool:
        return CryptoUtils.path_hash(canonical_path) in self._records

    def __len__(self) -> int:
        return len(self._records)
