"""
TokenFS Filesystem

Authoritative path-addressed pointer store. Callers write the latest CID at
a canonical path; write authority comes from directly owning the permission
token named by a PermissionKey, and from the administrator having granted
that key a prefix covering the path.

Write Authorization
───────────────────

    write_file(caller, key, path, cid)
        1. cid non-empty                          EmptyCid
        2. key.nft_contract is deployed           InvalidNftContract
        3. caller == owner_of(key.token_id)       NotTokenOwner
        4. key not revoked                        TokenWritesRevoked
        5. path canonicalizes (file mode)         InvalidPath
        6. some granted prefix covers path        UnauthorizedPath
        7. upsert record, emit FileUpserted

    Ownership is resolved on every call; a token transfer takes effect on
    the next write with no migration step. Approved spenders and operators
    are never honored. can_write_path() runs steps 2-6 through the same
    code path and reports the outcome as a bool.

Administration
──────────────

    ACTIVE(owner) ──transfer_ownership(new)──► ACTIVE(new)
         │
         └──transfer_ownership(0x0) / renounce_ownership──► DISABLED (terminal)

    All prefix and revocation changes require ACTIVE and caller == owner.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional

from tokenfs.config import get_config
from tokenfs.events import (
    FileUpserted,
    OwnershipTransferred,
    TokenPrefixesReplaced,
    TokenWriteRevocationSet,
)
from tokenfs.files import FileRecordStore
from tokenfs.hardening import (
    ZERO_ADDRESS,
    EmptyCid,
    InvalidNftContract,
    NotOwner,
    NotTokenOwner,
    TokenFSError,
    TokenWritesRevoked,
    UnauthorizedPath,
    Validators,
    normalize_address,
)
from tokenfs.ledger import Contract, Ledger
from tokenfs.observability import TokenFSLayer, get_logger
from tokenfs.paths import PathMode, canonicalize
from tokenfs.permissions import PermissionKey, PermissionRecordStore

logger = get_logger("filesystem", TokenFSLayer.FILESYSTEM)


class AdminStatus(Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


@dataclass(frozen=True)
class AdminState:
    """Administrator of the filesystem. DISABLED is terminal."""
    status: AdminStatus
    owner: Optional[str] = None

    @classmethod
    def active(cls, owner: str) -> "AdminState":
        return cls(status=AdminStatus.ACTIVE, owner=owner)

    @classmethod
    def disabled(cls) -> "AdminState":
        return cls(status=AdminStatus.DISABLED)

    @property
    def is_disabled(self) -> bool:
        return self.status is AdminStatus.DISABLED

    def require(self, caller: str) -> None:
        if self.is_disabled or caller != self.owner:
            raise NotOwner(caller)

    def transferred_to(self, new_owner: str) -> "AdminState":
        if new_owner == ZERO_ADDRESS:
            return AdminState.disabled()
        return AdminState.active(new_owner)


class TokenFilesystem(Contract):
    """Permissioned, path-addressed CID store deployed on a Ledger."""

    def __init__(self, ledger: Ledger, deployer: str, emit_prefix_list: Optional[bool] = None):
        self._admin = AdminState.active(normalize_address(deployer, "deployer"))
        self._permissions = PermissionRecordStore()
        self._files = FileRecordStore()
        self._emit_prefix_list = emit_prefix_list
        super().__init__(ledger, deployer)

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    @property
    def owner(self) -> str:
        """Current administrator, or the zero address once disabled."""
        return ZERO_ADDRESS if self._admin.is_disabled else self._admin.owner

    @property
    def admin_state(self) -> AdminState:
        return self._admin

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        caller = normalize_address(caller, "caller")
        new_owner = normalize_address(new_owner, "new_owner")
        with self._transaction(sender=caller) as tx:
            self._admin.require(caller)
            previous = self._admin.owner
            self._admin = self._admin.transferred_to(new_owner)
            tx.emit(OwnershipTransferred(previous_owner=previous, new_owner=new_owner))
        if self._admin.is_disabled:
            logger.warning("Administration permanently disabled", operation="transfer_ownership",
                           previous_owner=previous)
        else:
            logger.info("Administrator changed", operation="transfer_ownership",
                        previous_owner=previous, new_owner=new_owner)

    def renounce_ownership(self, caller: str) -> None:
        self.transfer_ownership(caller, ZERO_ADDRESS)

    def replace_token_prefixes(
        self,
        caller: str,
        nft_contract: str,
        token_id: int,
        prefixes: Iterable[Any],
    ) -> List[str]:
        """
        Atomically replace the key's prefix set.

        Every prefix is canonicalized and deduplicated first; one bad entry
        aborts the whole replacement. An empty list revokes all prefixes.
        """
        caller = normalize_address(caller, "caller")
        prefixes = list(prefixes)
        with self._transaction(sender=caller) as tx:
            self._admin.require(caller)
            key = self._deployed_key(nft_contract, token_id)
            stored = self._permissions.replace_prefixes(key, prefixes)
            tx.emit(TokenPrefixesReplaced(
                nft_contract=key.nft_contract,
                token_id=key.token_id,
                prefixes=stored if self._emits_prefix_list() else None,
            ))
        logger.info("Token prefixes replaced", operation="replace_token_prefixes",
                    key=key.stream_id, prefix_count=len(stored))
        return list(stored)

    def set_token_write_revoked(self, caller: str, nft_contract: str, token_id: int, revoked: bool) -> bool:
        """Set the revocation flag. Returns True when it changed; repeats emit nothing."""
        caller = normalize_address(caller, "caller")
        revoked = Validators.validate_bool(revoked, "revoked")
        with self._transaction(sender=caller) as tx:
            self._admin.require(caller)
            key = self._deployed_key(nft_contract, token_id)
            changed = self._permissions.set_revoked(key, revoked)
            if changed:
                tx.emit(TokenWriteRevocationSet(
                    nft_contract=key.nft_contract,
                    token_id=key.token_id,
                    revoked=revoked,
                ))
        if changed:
            logger.info("Token write revocation changed", operation="set_token_write_revoked",
                        key=key.stream_id, revoked=revoked)
        return changed

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def write_file(self, caller: str, nft_contract: str, token_id: int, path: str, cid: str) -> FileUpserted:
        """Upsert the CID at ``path`` on behalf of the permission key's owner."""
        caller = normalize_address(caller, "caller")
        try:
            with self._transaction(sender=caller) as tx:
                if not isinstance(cid, str) or cid == "":
                    raise EmptyCid()
                key = self._deployed_key(nft_contract, token_id)
                canonical = self._authorize_write(key, caller, path)
                record = self._files.upsert(canonical, cid)
                event = FileUpserted(
                    path_hash=record.path_hash,
                    nft_contract=key.nft_contract,
                    token_id=key.token_id,
                    path=canonical,
                    cid=cid,
                    writer=caller,
                )
                tx.emit(event)
        except TokenFSError as e:
            logger.warning("Write denied", operation="write_file", error_code=e.error_code,
                           caller=caller, token_id=token_id, reason=str(e))
            raise
        logger.info("File upserted", operation="write_file", path=canonical,
                    path_hash=record.path_hash, key=key.stream_id, writer=caller)
        return event

    def can_write_path(self, nft_contract: str, token_id: int, account: str, path: str) -> bool:
        """Dry run of the write authorization steps; never mutates, never raises for denials."""
        try:
            account = normalize_address(account, "account")
            key = self._deployed_key(nft_contract, token_id)
            self._authorize_write(key, account, path)
        except TokenFSError as e:
            logger.debug("Write check failed", operation="can_write_path",
                         error_code=e.error_code, account=account, token_id=token_id)
            return False
        return True

    def _deployed_key(self, nft_contract: Any, token_id: Any) -> PermissionKey:
        key = PermissionKey.of(nft_contract, token_id)
        if not self.ledger.is_contract(key.nft_contract):
            raise InvalidNftContract(key.nft_contract)
        return key

    def _authorize_write(self, key: PermissionKey, account: str, raw_path: Any) -> str:
        """Steps 3-6 of write authorization. Returns the canonical path."""
        owner = self.ledger.resolve_owner(key.nft_contract, key.token_id)
        if owner is None or owner != account:
            raise NotTokenOwner(key, account)
        if self._permissions.is_revoked(key):
            raise TokenWritesRevoked(key)
        canonical = canonicalize(raw_path, PathMode.FILE_PATH).unwrap()
        if not self._permissions.authorizes(key, canonical):
            raise UnauthorizedPath(key, canonical)
        return canonical

    def _emits_prefix_list(self) -> bool:
        if self._emit_prefix_list is not None:
            return self._emit_prefix_list
        return get_config().filesystem.emit_prefix_list.get()

    # -------------------------------------------------------------------------
    # Reads (public, no authorization)
    # -------------------------------------------------------------------------

    def get_file(self, path: str) -> str:
        canonical = canonicalize(path, PathMode.FILE_PATH).unwrap()
        return self._files.get(canonical).cid

    def file_exists(self, path: str) -> bool:
        canonical = canonicalize(path, PathMode.FILE_PATH).unwrap()
        return self._files.exists(canonical)

    def get_token_prefixes(self, nft_contract: str, token_id: int) -> List[str]:
        return list(self._permissions.prefixes(PermissionKey.of(nft_contract, token_id)))

    def token_write_revoked(self, nft_contract: str, token_id: int) -> bool:
        return self._permissions.is_revoked(PermissionKey.of(nft_contract, token_id))

    def token_has_prefix(self, nft_contract: str, token_id: int, prefix: str) -> bool:
        canonical = canonicalize(prefix, PathMode.PREFIX).unwrap()
        return self._permissions.has_prefix(PermissionKey.of(nft_contract, token_id), canonical)

    @staticmethod
    def normalize_prefix_path(prefix: str) -> str:
        return canonicalize(prefix, PathMode.PREFIX).unwrap()

    @staticmethod
    def normalize_file_path(path: str) -> str:
        return canonicalize(path, PathMode.FILE_PATH).unwrap()
