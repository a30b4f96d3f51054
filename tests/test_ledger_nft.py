"""
Ledger environment and reference permission NFT tests.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from tokenfs.events import AccessTokenMinted, Transfer
from tokenfs.hardening import (
    ZERO_ADDRESS,
    IncorrectOwner,
    NotAuthorized,
    NotOwner,
    TokenDoesNotExist,
    TokenSoulbound,
    ZeroAddress,
)
from tokenfs.ledger import Ledger

ADMIN = "0x" + "ad" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20


class TestLedger:
    """Contract registry, transactions and owner resolution."""

    def test_deploy_assigns_distinct_addresses(self, ledger, nft, fs):
        assert nft.address != fs.address
        assert ledger.is_contract(nft.address)
        assert ledger.is_contract(fs.address)
        assert ledger.get_contract(fs.address) is fs
        assert not ledger.is_contract(ALICE)

    def test_addresses_are_deterministic(self):
        from tokenfs.permission_nft import PermissionNFT

        a = PermissionNFT(Ledger(), ADMIN)
        b = PermissionNFT(Ledger(), ADMIN)
        assert a.address == b.address
        assert a.address.startswith("0x") and len(a.address) == 42

    def test_transaction_commits_events_on_success(self, ledger, nft):
        block = ledger.block_number
        nft.mint_access_token(ADMIN, ALICE)
        assert ledger.block_number == block + 1
        types = [type(r.event) for r in ledger.events.read_all()]
        assert types == [Transfer, AccessTokenMinted]

    def test_transaction_discards_events_on_failure(self, ledger):
        with pytest.raises(RuntimeError):
            with ledger.transaction(emitter="0xabc") as tx:
                tx.emit(Transfer(token_id=1))
                raise RuntimeError("abort")
        assert len(ledger.events) == 0

    def test_resolve_owner(self, ledger, nft):
        token_id = nft.mint_access_token(ADMIN, ALICE)
        assert ledger.resolve_owner(nft.address, token_id) == ALICE
        assert ledger.resolve_owner(nft.address, 999) is None
        assert ledger.resolve_owner(BOB, token_id) is None


class TestPermissionNFT:
    """Reference ownership token."""

    def test_mint_is_admin_only(self, nft):
        with pytest.raises(NotOwner):
            nft.mint_access_token(ALICE, ALICE)

    def test_ids_start_at_one(self, nft):
        assert nft.mint_access_token(ADMIN, ALICE) == 1
        assert nft.mint_access_token(ADMIN, BOB) == 2
        assert nft.balance_of(ALICE) == 1

    def test_cannot_mint_to_zero(self, nft):
        with pytest.raises(ZeroAddress):
            nft.mint_access_token(ADMIN, ZERO_ADDRESS)

    def test_owner_of_unminted(self, nft):
        with pytest.raises(TokenDoesNotExist):
            nft.owner_of(1)

    def test_transfer_by_holder(self, nft, alice_token):
        nft.transfer_from(ALICE, ALICE, BOB, alice_token)
        assert nft.owner_of(alice_token) == BOB
        assert nft.balance_of(ALICE) == 0
        assert nft.balance_of(BOB) == 1

    def test_transfer_by_approved_clears_approval(self, nft, alice_token):
        nft.approve(ALICE, CAROL, alice_token)
        nft.transfer_from(CAROL, ALICE, BOB, alice_token)
        assert nft.owner_of(alice_token) == BOB
        assert nft.get_approved(alice_token) is None

    def test_transfer_by_operator(self, nft, alice_token):
        nft.set_approval_for_all(ALICE, CAROL, True)
        nft.transfer_from(CAROL, ALICE, BOB, alice_token)
        assert nft.owner_of(alice_token) == BOB

    def test_transfer_by_stranger(self, nft, alice_token):
        with pytest.raises(NotAuthorized):
            nft.transfer_from(CAROL, ALICE, BOB, alice_token)

    def test_transfer_with_wrong_from(self, nft, alice_token):
        with pytest.raises(IncorrectOwner):
            nft.transfer_from(ALICE, BOB, CAROL, alice_token)

    def test_soulbound_token(self, nft):
        token_id = nft.mint_access_token(ADMIN, ALICE, transferable=False)
        assert nft.token_transferable(token_id) is False
        with pytest.raises(TokenSoulbound):
            nft.transfer_from(ALICE, ALICE, BOB, token_id)

    def test_admin_transfer(self, nft):
        nft.transfer_ownership(ADMIN, BOB)
        assert nft.owner == BOB
        with pytest.raises(ZeroAddress):
            nft.transfer_ownership(BOB, ZERO_ADDRESS)
        with pytest.raises(NotOwner):
            nft.mint_access_token(ADMIN, ALICE)
