"""
TokenFS Ledger Environment

In-process model of the ledger the filesystem runs on: a registry of
deployed contracts, a single global mutual-exclusion domain for mutating
calls, the append-only event log, and the Ownership Oracle lookup.

Transactions
────────────

    with ledger.transaction(emitter=self.address) as tx:
        ...check every precondition, raise on failure...
        ...mutate state...
        tx.emit(SomeEvent(...))

Events are buffered and reach the log only when the body completes, so a
failed precondition leaves neither state nor log changed. Each committed
transaction advances the block number.

Ownership Oracle
────────────────

Any registered object exposing ``owner_of(token_id)`` can serve as a
permission key's ownership source. No allowlist is applied. Lookups that
cannot produce an address (not deployed, no capability, call raised,
malformed return) resolve to ``None``.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol

from tokenfs.events import Event, EventLog
from tokenfs.hardening import CryptoUtils, InvalidAddress, is_zero_address, normalize_address
from tokenfs.observability import TokenFSLayer, get_logger

logger = get_logger("ledger", TokenFSLayer.LEDGER)


class OwnershipOracle(Protocol):
    """The one capability consumed from an ownership contract."""

    def owner_of(self, token_id: int) -> str:
        ...


class Transaction:
    """Event buffer for one atomic ledger call."""

    def __init__(self, emitter: str, sender: Optional[str]):
        self.emitter = emitter
        self.sender = sender
        self._pending: List[Event] = []

    def emit(self, event: Event) -> None:
        self._pending.append(event)

    @property
    def pending(self) -> List[Event]:
        return list(self._pending)


class Ledger:
    """Contract registry, global serialization, and event log."""

    def __init__(self):
        self._contracts: Dict[str, Any] = {}
        self._deploy_nonce = 0
        self._block_number = 0
        self._lock = threading.RLock()
        self.events = EventLog()

    @property
    def block_number(self) -> int:
        return self._block_number

    def register(self, contract: Any, deployer: str) -> str:
        """Deploy ``contract`` and return its address (deterministic per deployer and nonce)."""
        deployer = normalize_address(deployer, "deployer")
        with self._lock:
            self._deploy_nonce += 1
            digest = CryptoUtils.keccak256(f"{deployer}:{self._deploy_nonce}")
            address = "0x" + digest[-20:].hex()
            self._contracts[address] = contract
            self._block_number += 1
        logger.info("Contract deployed", operation="deploy",
                    address=address, deployer=deployer,
                    contract_type=type(contract).__name__)
        return address

    def is_contract(self, address: str) -> bool:
        return address in self._contracts

    def get_contract(self, address: str) -> Optional[Any]:
        return self._contracts.get(address)

    @contextmanager
    def transaction(self, emitter: str, sender: Optional[str] = None) -> Iterator[Transaction]:
        with self._lock:
            tx = Transaction(emitter, sender)
            yield tx
            self._block_number += 1
            pending = tx.pending
            if pending:
                self.events.append(emitter, self._block_number, pending)

    def resolve_owner(self, contract_address: str, token_id: int) -> Optional[str]:
        """Current holder of ``token_id``, or None when unresolvable."""
        contract = self._contracts.get(contract_address)
        if contract is None:
            return None
        owner_of = getattr(contract, "owner_of", None)
        if not callable(owner_of):
            return None
        try:
            owner = owner_of(token_id)
        except Exception as e:
            logger.debug("Owner lookup reverted", operation="resolve_owner",
                         contract=contract_address, token_id=token_id,
                         reason=type(e).__name__)
            return None
        try:
            owner = normalize_address(owner, "owner")
        except InvalidAddress:
            return None
        # zero address means "no owner"
        if is_zero_address(owner):
            return None
        return owner


class Contract:
    """Base for objects deployed on a Ledger."""

    def __init__(self, ledger: Ledger, deployer: str):
        self.ledger = ledger
        self.address = ledger.register(self, deployer)

    def _transaction(self, sender: Optional[str] = None):
        return self.ledger.transaction(emitter=self.address, sender=sender)
