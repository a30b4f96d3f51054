"""
TokenFS Permission NFT

Reference ownership source for permission keys: a minimal non-fungible
token with an administrator-only mint and an optional soulbound flag.

Only ``owner_of`` matters to the filesystem. Approvals and operators are
implemented so transfers behave like the token standard, but the
filesystem never consults them: holding an approval grants no write
capability.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from typing import Dict, Optional, Set, Tuple

from tokenfs.events import AccessTokenMinted, OwnershipTransferred, Transfer
from tokenfs.hardening import (
    ZERO_ADDRESS,
    IncorrectOwner,
    NotAuthorized,
    NotOwner,
    TokenDoesNotExist,
    TokenSoulbound,
    Validators,
    ZeroAddress,
    normalize_address,
)
from tokenfs.ledger import Contract, Ledger
from tokenfs.observability import TokenFSLayer, get_logger

logger = get_logger("permission_nft", TokenFSLayer.NFT)


class PermissionNFT(Contract):
    """Permission token contract deployed on a Ledger."""

    def __init__(self, ledger: Ledger, deployer: str, name: str = "TokenFS Access", symbol: str = "TFSA"):
        self.name = name
        self.symbol = symbol
        self._owner = normalize_address(deployer, "deployer")
        self._next_token_id = 1
        self._owners: Dict[int, str] = {}
        self._balances: Dict[str, int] = {}
        self._transferable: Dict[int, bool] = {}
        self._token_approvals: Dict[int, str] = {}
        self._operator_approvals: Set[Tuple[str, str]] = set()
        super().__init__(ledger, deployer)

    @property
    def owner(self) -> str:
        return self._owner

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def owner_of(self, token_id: int) -> str:
        holder = self._owners.get(token_id)
        if holder is None:
            raise TokenDoesNotExist(token_id)
        return holder

    def balance_of(self, account: str) -> int:
        account = normalize_address(account, "account")
        if account == ZERO_ADDRESS:
            raise ZeroAddress("account")
        return self._balances.get(account, 0)

    def token_transferable(self, token_id: int) -> bool:
        self.owner_of(token_id)
        return self._transferable[token_id]

    def get_approved(self, token_id: int) -> Optional[str]:
        self.owner_of(token_id)
        return self._token_approvals.get(token_id)

    def is_approved_for_all(self, holder: str, operator: str) -> bool:
        return (normalize_address(holder, "holder"), normalize_address(operator, "operator")) in self._operator_approvals

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def mint_access_token(self, caller: str, to: str, transferable: bool = True) -> int:
        caller = normalize_address(caller, "caller")
        to = normalize_address(to, "to")
        with self._transaction(sender=caller) as tx:
            if caller != self._owner:
                raise NotOwner(caller)
            if to == ZERO_ADDRESS:
                raise ZeroAddress("to")
            token_id = self._next_token_id
            self._next_token_id += 1
            self._owners[token_id] = to
            self._balances[to] = self._balances.get(to, 0) + 1
            self._transferable[token_id] = bool(transferable)
            tx.emit(Transfer(from_address=ZERO_ADDRESS, to_address=to, token_id=token_id))
            tx.emit(AccessTokenMinted(token_id=token_id, to_address=to, transferable=bool(transferable)))
        logger.info("Access token minted", operation="mint", token_id=token_id,
                    to=to, transferable=bool(transferable))
        return token_id

    def approve(self, caller: str, spender: str, token_id: int) -> None:
        caller = normalize_address(caller, "caller")
        spender = normalize_address(spender, "spender")
        with self._transaction(sender=caller):
            holder = self.owner_of(token_id)
            if caller != holder and (holder, caller) not in self._operator_approvals:
                raise NotAuthorized(caller, token_id)
            self._token_approvals[token_id] = spender

    def set_approval_for_all(self, caller: str, operator: str, approved: bool) -> None:
        caller = normalize_address(caller, "caller")
        operator = normalize_address(operator, "operator")
        with self._transaction(sender=caller):
            if approved:
                self._operator_approvals.add((caller, operator))
            else:
                self._operator_approvals.discard((caller, operator))

    def transfer_from(self, caller: str, from_address: str, to: str, token_id: int) -> None:
        caller = normalize_address(caller, "caller")
        from_address = normalize_address(from_address, "from")
        to = normalize_address(to, "to")
        Validators.validate_token_id(token_id)
        with self._transaction(sender=caller) as tx:
            holder = self.owner_of(token_id)
            if holder != from_address:
                raise IncorrectOwner(token_id, from_address)
            if to == ZERO_ADDRESS:
                raise ZeroAddress("to")
            if not self._transferable[token_id]:
                raise TokenSoulbound(token_id)
            if not (
                caller == holder
                or self._token_approvals.get(token_id) == caller
                or (holder, caller) in self._operator_approvals
            ):
                raise NotAuthorized(caller, token_id)

            self._token_approvals.pop(token_id, None)
            self._balances[holder] -= 1
            self._balances[to] = self._balances.get(to, 0) + 1
            self._owners[token_id] = to
            tx.emit(Transfer(from_address=holder, to_address=to, token_id=token_id))
        logger.info("Access token transferred", operation="transfer",
                    token_id=token_id, from_address=holder, to=to)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        caller = normalize_address(caller, "caller")
        new_owner = normalize_address(new_owner, "new_owner")
        with self._transaction(sender=caller) as tx:
            if caller != self._owner:
                raise NotOwner(caller)
            if new_owner == ZERO_ADDRESS:
                raise ZeroAddress("new_owner")
            previous = self._owner
            self._owner = new_owner
            tx.emit(OwnershipTransferred(previous_owner=previous, new_owner=new_owner))
