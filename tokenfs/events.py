"""
TokenFS Audit Event Log

Append-only log of immutable events emitted by the filesystem and the
permission NFT. This is the only history mechanism: the stores hold the
latest state, and indexers rebuild history by replaying the log.

Architecture
────────────

    ┌──────────────────────┐        ┌───────────────────────────────┐
    │  Ledger transaction  │ commit │           EventLog            │
    │  emit(event) ... ok  ├───────►│  seq │ block │ emitter │ topics│
    └──────────────────────┘        └───────────────┬───────────────┘
                                                    │ replay
                                    ┌───────────────▼───────────────┐
                                    │  Projection (e.g. file history)│
                                    └───────────────────────────────┘

Every record is indexed by the permission-key stream (``contract:token``)
and, for file events, by the keccak-256 path hash.

Usage
─────

    log = ledger.events
    history = FileHistoryProjection()
    history.rebuild(log)
    history.versions("/agent1/manifest.json")

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import hashlib
import json
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type


def _canonical_bytes(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


# ════════════════════════════════════════════════════════════════════════════
# EVENT BASE
# ════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Event:
    """
    Base class for all audit events.

    Events are immutable facts. Subclasses declare their payload fields
    with defaults so they can follow the metadata fields below.
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    @property
    def stream_id(self) -> Optional[str]:
        """Permission-key stream, when the event is scoped to one."""
        nft_contract = getattr(self, "nft_contract", None)
        token_id = getattr(self, "token_id", None)
        if nft_contract is None or token_id is None:
            return None
        return f"{nft_contract}:{token_id}"

    @property
    def path_hash_topic(self) -> Optional[str]:
        return getattr(self, "path_hash", None)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        return data

    def to_json(self) -> str:
        """JSON for display/transport (not for digest computation)."""
        return json.dumps(self.to_dict(), default=str, sort_keys=True)

    def digest(self) -> str:
        return hashlib.sha256(_canonical_bytes(self.to_dict())).hexdigest()


# ════════════════════════════════════════════════════════════════════════════
# FILESYSTEM EVENTS
# ════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TokenPrefixesReplaced(Event):
    """Administrator replaced a key's prefix set."""
    nft_contract: str = ""
    token_id: int = 0
    prefixes: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class TokenWriteRevocationSet(Event):
    """Administrator changed a key's revocation flag."""
    nft_contract: str = ""
    token_id: int = 0
    revoked: bool = False


@dataclass(frozen=True)
class FileUpserted(Event):
    """A write created or overwrote the record at a path."""
    path_hash: str = ""
    nft_contract: str = ""
    token_id: int = 0
    path: str = ""
    cid: str = ""
    writer: str = ""


@dataclass(frozen=True)
class OwnershipTransferred(Event):
    """Contract administrator changed; the zero address means disabled."""
    previous_owner: str = ""
    new_owner: str = ""


# ════════════════════════════════════════════════════════════════════════════
# PERMISSION NFT EVENTS
# ════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Transfer(Event):
    """Token moved between holders (mint has the zero address as sender)."""
    from_address: str = ""
    to_address: str = ""
    token_id: int = 0


@dataclass(frozen=True)
class AccessTokenMinted(Event):
    """A permission token was minted."""
    token_id: int = 0
    to_address: str = ""
    transferable: bool = True


# ════════════════════════════════════════════════════════════════════════════
# EVENT LOG
# ════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EventRecord:
    """A committed event with its ledger position."""
    sequence_number: int
    event: Event
    emitter: str
    block_number: int

    @property
    def stream_id(self) -> Optional[str]:
        return self.event.stream_id

    @property
    def path_hash(self) -> Optional[str]:
        return self.event.path_hash_topic

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_number": self.sequence_number,
            "emitter": self.emitter,
            "block_number": self.block_number,
            "stream_id": self.stream_id,
            "path_hash": self.path_hash,
            "event": self.event.to_dict(),
        }


class EventLog:
    """
    Append-only event log.

    Records are never modified or removed. Appends happen only from a
    committing ledger transaction, so a batch from one transaction is
    contiguous in the log.
    """

    def __init__(self):
        self._records: List[EventRecord] = []
        self._streams: Dict[str, List[EventRecord]] = {}
        self._by_path: Dict[str, List[EventRecord]] = {}
        self._lock = threading.RLock()

    def append(self, emitter: str, block_number: int, events: List[Event]) -> List[EventRecord]:
        with self._lock:
            records = []
            for event in events:
                record = EventRecord(
                    sequence_number=len(self._records) + 1,
                    event=event,
                    emitter=emitter,
                    block_number=block_number,
                )
                self._records.append(record)
                if record.stream_id is not None:
                    self._streams.setdefault(record.stream_id, []).append(record)
                if record.path_hash:
                    self._by_path.setdefault(record.path_hash, []).append(record)
                records.append(record)
            return records

    def read_all(self, from_position: int = 0, max_count: Optional[int] = None) -> List[EventRecord]:
        with self._lock:
            end = None if max_count is None else from_position + max_count
            return self._records[from_position:end]

    def read_stream(self, stream_id: str) -> List[EventRecord]:
        with self._lock:
            return list(self._streams.get(stream_id, []))

    def read_path(self, path_hash: str) -> List[EventRecord]:
        with self._lock:
            return list(self._by_path.get(path_hash, []))

    def query(
        self,
        event_type: Optional[Type[Event]] = None,
        emitter: Optional[str] = None,
        stream_id: Optional[str] = None,
        path_hash: Optional[str] = None,
    ) -> List[EventRecord]:
        with self._lock:
            if stream_id is not None:
                records = list(self._streams.get(stream_id, []))
            elif path_hash is not None:
                records = list(self._by_path.get(path_hash, []))
            else:
                records = list(self._records)

        if event_type is not None:
            records = [r for r in records if isinstance(r.event, event_type)]
        if emitter is not None:
            records = [r for r in records if r.emitter == emitter]
        if path_hash is not None:
            records = [r for r in records if r.path_hash == path_hash]
        return records

    def export(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [r.to_dict() for r in self._records]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


# ════════════════════════════════════════════════════════════════════════════
# PROJECTIONS
# ════════════════════════════════════════════════════════════════════════════


class Projection(ABC):
    """
    Read model built by replaying the event log.

    Projections can be rebuilt from the log at any time.
    """

    def __init__(self):
        self._position = 0

    @property
    def position(self) -> int:
        """Last processed sequence number."""
        return self._position

    @abstractmethod
    def handle_record(self, record: EventRecord) -> None:
        """Apply one committed event."""

    def process_events(self, records: List[EventRecord]) -> None:
        for record in records:
            if record.sequence_number <= self._position:
                continue
            self.handle_record(record)
            self._position = record.sequence_number

    def catch_up(self, log: EventLog) -> None:
        self.process_events(log.read_all(from_position=self._position))

    def rebuild(self, log: EventLog) -> None:
        self._position = 0
        self.reset()
        self.process_events(log.read_all())

    def reset(self) -> None:
        """Drop derived state before a rebuild."""


@dataclass(frozen=True)
class FileVersion:
    """One historical value of a path."""
    cid: str
    writer: str
    nft_contract: str
    token_id: int
    block_number: int
    sequence_number: int


class FileHistoryProjection(Projection):
    """Per-path write history reconstructed from FileUpserted events."""

    def __init__(self, emitter: Optional[str] = None):
        super().__init__()
        self._emitter = emitter
        self._history: Dict[str, List[FileVersion]] = {}

    def reset(self) -> None:
        self._history = {}

    def handle_record(self, record: EventRecord) -> None:
        event = record.event
        if not isinstance(event, FileUpserted):
            return
        if self._emitter is not None and record.emitter != self._emitter:
            return
        self._history.setdefault(event.path, []).append(FileVersion(
            cid=event.cid,
            writer=event.writer,
            nft_contract=event.nft_contract,
            token_id=event.token_id,
            block_number=record.block_number,
            sequence_number=record.sequence_number,
        ))

    def versions(self, path: str) -> List[FileVersion]:
        """Oldest first."""
        return list(self._history.get(path, []))

    def latest(self, path: str) -> Optional[FileVersion]:
        versions = self._history.get(path)
        return versions[-1] if versions else None

    def paths(self) -> List[str]:
        return sorted(self._history)
