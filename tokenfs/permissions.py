"""
TokenFS Permission Record Store

Maps a PermissionKey (ownership contract, token id) to its prefix set and
revocation flag. Prefix sets are only ever replaced wholesale; revocation is
an independent flag and never touches the prefixes.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from tokenfs.hardening import Validators
from tokenfs.paths import PathMode, canonicalize, matches_any


@dataclass(frozen=True)
class PermissionKey:
    """Composite key scoping a prefix set and a revocation flag."""
    nft_contract: str
    token_id: int

    @classmethod
    def of(cls, nft_contract: Any, token_id: Any) -> "PermissionKey":
        """Build a key from untrusted input, normalizing the contract address."""
        return cls(
            nft_contract=Validators.validate_address(nft_contract, "nft_contract"),
            token_id=Validators.validate_token_id(token_id),
        )

    @property
    def stream_id(self) -> str:
        """Event-log stream id for this key."""
        return f"{self.nft_contract}:{self.token_id}"

    def __str__(self) -> str:
        return f"PermissionKey({self.nft_contract}, {self.token_id})"


@dataclass(frozen=True)
class PermissionRecord:
    """Snapshot of one key's authorization state."""
    prefixes: Tuple[str, ...] = ()
    revoked: bool = False


_EMPTY = PermissionRecord()


def canonicalize_prefix_set(raw_prefixes: Iterable[Any]) -> Tuple[str, ...]:
    """
    Canonicalize and deduplicate a prefix list, preserving first-seen order.

    Raises InvalidPath on the first bad entry; nothing is returned partially.
    """
    canonical: List[str] = []
    seen = set()
    for raw in raw_prefixes:
        prefix = canonicalize(raw, PathMode.PREFIX).unwrap()
        if prefix in seen:
            continue
        seen.add(prefix)
        canonical.append(prefix)
    return tuple(canonical)


class PermissionRecordStore:
    """
    Authoritative permission state.

    Records are immutable snapshots swapped in whole, so readers always see
    either the old or the new record, never a mix. Mutations are expected to
    run inside the ledger's transaction lock.
    """

    def __init__(self):
        self._records: Dict[PermissionKey, PermissionRecord] = {}

    def get(self, key: PermissionKey) -> PermissionRecord:
        return self._records.get(key, _EMPTY)

    def prefixes(self, key: PermissionKey) -> Tuple[str, ...]:
        return self.get(key).prefixes

    def is_revoked(self, key: PermissionKey) -> bool:
        return self.get(key).revoked

    def replace_prefixes(self, key: PermissionKey, raw_prefixes: Iterable[Any]) -> Tuple[str, ...]:
        """Replace the whole prefix set; an empty list clears it."""
        prefixes = canonicalize_prefix_set(raw_prefixes)
        current = self.get(key)
        self._store(key, PermissionRecord(prefixes=prefixes, revoked=current.revoked))
        return prefixes

    def set_revoked(self, key: PermissionKey, revoked: bool) -> bool:
        """Set the revocation flag. Returns True only when the value changed."""
        current = self.get(key)
        if current.revoked == bool(revoked):
            return False
        self._store(key, PermissionRecord(prefixes=current.prefixes, revoked=bool(revoked)))
        return True

    def has_prefix(self, key: PermissionKey, canonical_prefix: str) -> bool:
        """Exact membership of an already-canonical prefix."""
        return canonical_prefix in self.get(key).prefixes

    def authorizes(self, key: PermissionKey, canonical_path: str) -> bool:
        return matches_any(canonical_path, self.get(key).prefixes)

    def _store(self, key: PermissionKey, record: PermissionRecord) -> None:
        if record == _EMPTY:
            self._records.pop(key, None)
        else:
            self._records[key] = record

    def __len__(self) -> int:
        return len(self._records)
