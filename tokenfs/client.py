"""
TokenFS Client Helper Library

Caller-side wrapper around a deployed TokenFilesystem. Every path is checked
with the same canonicalizer the filesystem uses before anything is submitted,
so malformed input fails fast with the grammar's message instead of a denied
transaction.

Usage
─────

    client = FilesystemClient(fs, account=alice)
    client.replace_token_prefixes(nft.address, 1, parse_prefixes("/agent1, /shared"))
    result = client.write_file_with_auto_token(
        nft.address, "/agent1/manifest.json", "bafy...", candidate_token_ids=[1, 2, 3],
    )
    build_ipfs_gateway_url("gateway.example.com", client.read_file(result.path))

Token discovery (log scans, indexing services) is the caller's concern:
auto-selection only checks the candidate ids it is given.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from tokenfs.config import get_config
from tokenfs.events import FileUpserted
from tokenfs.filesystem import TokenFilesystem
from tokenfs.hardening import TokenFSError, ValidationError, normalize_address
from tokenfs.observability import TokenFSLayer, get_logger
from tokenfs.paths import normalize_file_path, normalize_prefix_path
from tokenfs.paths import is_valid_file_path as _is_valid_file_path
from tokenfs.paths import is_valid_prefix_path as _is_valid_prefix_path
from tokenfs.permission_nft import PermissionNFT

logger = get_logger("client", TokenFSLayer.CLIENT)

MAX_BATCH_SIZE = 500

_PREFIX_SEPARATORS = re.compile(r"\r?\n|,")


class NoWritableToken(TokenFSError):
    """None of the candidate tokens authorizes the account for the path."""

    error_code = "no_writable_token"

    def __init__(self, nft_contract: str, owner: str, path: str):
        self.nft_contract = nft_contract
        self.owner = owner
        self.path = path
        super().__init__("No writable token found for this account and path.")


class MissingAccount(TokenFSError):
    """A mutating call had no account to act as."""

    error_code = "missing_account"

    def __init__(self):
        super().__init__("No account is configured. Pass `account` explicitly.")


# =============================================================================
# VALIDATION
# =============================================================================

def validate_prefix_path(prefix: Any) -> None:
    """Raise InvalidPath unless ``prefix`` is a canonical prefix."""
    normalize_prefix_path(prefix)


def validate_file_path(path: Any) -> None:
    """Raise InvalidPath unless ``path`` is a canonical file path."""
    normalize_file_path(path)


def is_valid_prefix_path(prefix: Any) -> bool:
    return _is_valid_prefix_path(prefix)


def is_valid_file_path(path: Any) -> bool:
    return _is_valid_file_path(path)


# =============================================================================
# INPUT HELPERS
# =============================================================================

def parse_prefixes(text: str) -> List[str]:
    """
    Split a newline- or comma-separated prefix list.

    Entries are trimmed and empties dropped; every remaining entry must be a
    canonical prefix. Duplicates are kept, the filesystem collapses them.
    """
    prefixes = [p.strip() for p in _PREFIX_SEPARATORS.split(text)]
    prefixes = [p for p in prefixes if p]
    for prefix in prefixes:
        validate_prefix_path(prefix)
    return prefixes


def dedupe_prefixes(prefixes: Iterable[Any]) -> List[str]:
    """Validate and deduplicate, keeping first-seen order."""
    result: List[str] = []
    seen = set()
    for prefix in prefixes:
        validate_prefix_path(prefix)
        if prefix in seen:
            continue
        seen.add(prefix)
        result.append(prefix)
    return result


def plan_prefix_replacement(current: Iterable[str], desired: Iterable[Any]) -> Optional[List[str]]:
    """
    Prefix list to submit, or None when ``desired`` already equals ``current`` as a set.
    """
    current_set = set(current)
    planned = dedupe_prefixes(desired)
    if set(planned) == current_set:
        return None
    return planned


def build_ipfs_gateway_url(gateway: Optional[str], cid: str) -> str:
    """
    ``<gateway>/ipfs/<cid>``; ``https://`` is assumed when the gateway has no scheme.

    A ``None`` gateway falls back to ``client.default_gateway``.
    """
    if gateway is None:
        gateway = get_config().client.default_gateway.get()
    gateway = (gateway or "").strip()
    if not gateway:
        raise ValidationError("gateway", "Gateway value is required.")
    cid = (cid or "").strip()
    if not cid:
        raise ValidationError("cid", "CID value is required.")

    if not (gateway.startswith("http://") or gateway.startswith("https://")):
        gateway = f"https://{gateway}"
    return f"{gateway.rstrip('/')}/ipfs/{cid}"


def resolve_batch_size(batch_size: Optional[int] = None) -> int:
    """Explicit size clamped to 1..500; missing or non-positive means the configured default."""
    if not batch_size or batch_size < 1:
        batch_size = get_config().client.batch_size.get()
    return max(1, min(batch_size, MAX_BATCH_SIZE))


def is_token_transferable(nft: PermissionNFT, token_id: int) -> Optional[bool]:
    """Transferability flag, or None when the lookup fails."""
    try:
        return bool(nft.token_transferable(token_id))
    except TokenFSError:
        return None


# =============================================================================
# CLIENT
# =============================================================================

@dataclass(frozen=True)
class AutoWriteResult:
    """Outcome of write_file_with_auto_token."""
    token_id: int
    path: str
    event: FileUpserted


class FilesystemClient:
    """Validating facade over a TokenFilesystem with an optional default account."""

    def __init__(
        self,
        filesystem: TokenFilesystem,
        account: Optional[str] = None,
        batch_size: Optional[int] = None,
    ):
        self.filesystem = filesystem
        self.account = normalize_address(account, "account") if account is not None else None
        self.batch_size = batch_size

    def _resolve_account(self, account: Optional[str]) -> str:
        if account is not None:
            return normalize_address(account, "account")
        if self.account is None:
            raise MissingAccount()
        return self.account

    # Reads

    def read_file(self, path: str) -> str:
        validate_file_path(path)
        return self.filesystem.get_file(path)

    def file_exists(self, path: str) -> bool:
        validate_file_path(path)
        return self.filesystem.file_exists(path)

    def can_write_path(self, nft_contract: str, token_id: int, account: str, path: str) -> bool:
        validate_file_path(path)
        return self.filesystem.can_write_path(nft_contract, token_id, account, path)

    def get_token_prefixes(self, nft_contract: str, token_id: int) -> List[str]:
        return self.filesystem.get_token_prefixes(nft_contract, token_id)

    def is_token_write_revoked(self, nft_contract: str, token_id: int) -> bool:
        return self.filesystem.token_write_revoked(nft_contract, token_id)

    def token_has_prefix(self, nft_contract: str, token_id: int, prefix: str) -> bool:
        validate_prefix_path(prefix)
        return self.filesystem.token_has_prefix(nft_contract, token_id, prefix)

    # Administrator calls

    def replace_token_prefixes(
        self,
        nft_contract: str,
        token_id: int,
        prefixes: Iterable[Any],
        account: Optional[str] = None,
    ) -> List[str]:
        caller = self._resolve_account(account)
        return self.filesystem.replace_token_prefixes(caller, nft_contract, token_id, dedupe_prefixes(prefixes))

    def sync_token_prefixes(
        self,
        nft_contract: str,
        token_id: int,
        desired: Iterable[Any],
        account: Optional[str] = None,
    ) -> bool:
        """Replace the prefix set only when it differs; returns True when a replacement was submitted."""
        caller = self._resolve_account(account)
        planned = plan_prefix_replacement(self.get_token_prefixes(nft_contract, token_id), desired)
        if planned is None:
            logger.info("No prefix changes to submit", operation="sync_token_prefixes",
                        token_id=token_id)
            return False
        self.filesystem.replace_token_prefixes(caller, nft_contract, token_id, planned)
        return True

    def set_token_write_revoked(
        self,
        nft_contract: str,
        token_id: int,
        revoked: bool,
        account: Optional[str] = None,
    ) -> bool:
        caller = self._resolve_account(account)
        return self.filesystem.set_token_write_revoked(caller, nft_contract, token_id, revoked)

    # Writes

    def write_file(
        self,
        nft_contract: str,
        token_id: int,
        path: str,
        cid: str,
        account: Optional[str] = None,
    ) -> FileUpserted:
        validate_file_path(path)
        caller = self._resolve_account(account)
        return self.filesystem.write_file(caller, nft_contract, token_id, path, cid)

    def find_writable_token_id(
        self,
        nft_contract: str,
        owner: str,
        path: str,
        candidate_token_ids: Iterable[int],
        batch_size: Optional[int] = None,
    ) -> Optional[int]:
        """
        Lowest candidate token id that lets ``owner`` write ``path``.

        Candidates are checked in ascending order, in batches; a candidate
        whose check raises is skipped.
        """
        validate_file_path(path)
        owner = normalize_address(owner, "owner")
        token_ids = sorted(set(candidate_token_ids))
        if not token_ids:
            return None

        size = resolve_batch_size(batch_size if batch_size is not None else self.batch_size)
        for start in range(0, len(token_ids), size):
            chunk = token_ids[start:start + size]
            logger.debug("Checking candidate batch", operation="find_writable_token_id",
                         batch_start=start, batch_len=len(chunk))
            for token_id in chunk:
                try:
                    if self.filesystem.can_write_path(nft_contract, token_id, owner, path):
                        return token_id
                except TokenFSError as e:
                    logger.debug("Skipping candidate", operation="find_writable_token_id",
                                 error_code=e.error_code, token_id=token_id)
        return None

    def write_file_with_auto_token(
        self,
        nft_contract: str,
        path: str,
        cid: str,
        candidate_token_ids: Iterable[int],
        account: Optional[str] = None,
        batch_size: Optional[int] = None,
    ) -> AutoWriteResult:
        validate_file_path(path)
        owner = self._resolve_account(account)
        token_id = self.find_writable_token_id(nft_contract, owner, path, candidate_token_ids, batch_size)
        if token_id is None:
            raise NoWritableToken(nft_contract, owner, path)
        event = self.filesystem.write_file(owner, nft_contract, token_id, path, cid)
        return AutoWriteResult(token_id=token_id, path=path, event=event)

    # Permission NFT

    def mint_permission_nft(
        self,
        nft: PermissionNFT,
        to: str,
        transferable: bool = True,
        account: Optional[str] = None,
    ) -> int:
        caller = self._resolve_account(account)
        return nft.mint_access_token(caller, to, transferable)
