"""
TokenFS Validation and Hardening Module

Error taxonomy, input validators, and hashing utilities shared by the
authoritative filesystem and the client helper library.

Security Model:
    - All inputs are untrusted until validated
    - Addresses are compared in normalized (lowercase) form only
    - Path keys are derived with keccak-256 over the raw canonical bytes,
      bit-compatible with the on-chain contract

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import re
from typing import Any, Optional, Union

from Crypto.Hash import keccak


# =============================================================================
# ERROR TYPES
# =============================================================================

class TokenFSError(Exception):
    """Base exception for all TokenFS failures."""

    error_code = "tokenfs_error"


class ValidationError(TokenFSError):
    """Base exception for malformed input."""

    error_code = "validation_error"

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class InvalidAddress(ValidationError):
    """Address is not a 20-byte hex string."""

    error_code = "invalid_address"


class InvalidPath(TokenFSError):
    """A path or prefix failed the canonical grammar."""

    error_code = "invalid_path"

    def __init__(
        self,
        label: str,
        rule: Any,
        message: str,
        position: Optional[int] = None,
        char: Optional[str] = None,
    ):
        self.label = label
        self.rule = rule
        self.position = position
        self.char = char
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "rule": getattr(self.rule, "value", self.rule),
            "position": self.position,
            "char": self.char,
            "message": str(self),
        }


class InvalidNftContract(TokenFSError):
    """The ownership contract id is not a deployed contract."""

    error_code = "invalid_nft_contract"

    def __init__(self, nft_contract: str):
        self.nft_contract = nft_contract
        super().__init__(f"Not a deployed contract: {nft_contract}")


class NotTokenOwner(TokenFSError):
    """Caller is not the current direct owner of the permission token."""

    error_code = "not_token_owner"

    def __init__(self, key: Any, account: str):
        self.key = key
        self.account = account
        super().__init__(f"{account} does not own {key}")


class TokenWritesRevoked(TokenFSError):
    """Writes for the permission key were revoked by the administrator."""

    error_code = "token_writes_revoked"

    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"Writes revoked for {key}")


class UnauthorizedPath(TokenFSError):
    """No granted prefix covers the path."""

    error_code = "unauthorized_path"

    def __init__(self, key: Any, path: str):
        self.key = key
        self.path = path
        super().__init__(f"{path} is not covered by any prefix of {key}")


class EmptyCid(TokenFSError):
    """Write attempted with an empty content identifier."""

    error_code = "empty_cid"

    def __init__(self):
        super().__init__("CID must be non-empty")


class FileNotFound(TokenFSError):
    """No record exists at the path."""

    error_code = "file_not_found"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class NotOwner(TokenFSError):
    """Caller is not the contract administrator, or administration is disabled."""

    error_code = "not_owner"

    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"{caller} is not the contract owner")


class ZeroAddress(TokenFSError):
    """The zero address is not a legal recipient."""

    error_code = "zero_address"

    def __init__(self, field: str = "address"):
        self.field = field
        super().__init__(f"{field} cannot be the zero address")


class TokenDoesNotExist(TokenFSError):
    """Token id was never minted."""

    error_code = "token_does_not_exist"

    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(f"Token {token_id} does not exist")


class NotAuthorized(TokenFSError):
    """Caller may not move or approve the token."""

    error_code = "not_authorized"

    def __init__(self, caller: str, token_id: int):
        self.caller = caller
        self.token_id = token_id
        super().__init__(f"{caller} is not authorized for token {token_id}")


class IncorrectOwner(TokenFSError):
    """Transfer named a `from` address that does not own the token."""

    error_code = "incorrect_owner"

    def __init__(self, token_id: int, claimed: str):
        self.token_id = token_id
        self.claimed = claimed
        super().__init__(f"{claimed} does not own token {token_id}")


class TokenSoulbound(TokenFSError):
    """Token was minted non-transferable."""

    error_code = "token_soulbound"

    def __init__(self, token_id: int):
        self.token_id = token_id
        super().__init__(f"Token {token_id} is soulbound")


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

ZERO_ADDRESS = "0x" + "0" * 40

UINT256_MAX = (1 << 256) - 1


class Validators:
    """Collection of input validators."""

    HEX40_PATTERN = re.compile(r'^0x[a-f0-9]{40}$')

    @classmethod
    def validate_address(cls, value: Any, field_name: str = "address") -> str:
        """Return the lowercase form of a 20-byte hex address."""
        if not isinstance(value, str):
            raise InvalidAddress(field_name, "must be a string", value)
        normalized = value.strip().lower()
        if not cls.HEX40_PATTERN.match(normalized):
            raise InvalidAddress(field_name, "must be a 0x-prefixed 20-byte hex string", value)
        return normalized

    @classmethod
    def validate_token_id(cls, value: Any, field_name: str = "token_id") -> int:
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(field_name, "must be an integer", value)
        if value < 0 or value > UINT256_MAX:
            raise ValidationError(field_name, "must fit in uint256", value)
        return value

    @classmethod
    def validate_bool(cls, value: Any, field_name: str) -> bool:
        if not isinstance(value, bool):
            raise ValidationError(field_name, "must be a boolean", value)
        return value


def normalize_address(value: Any, field_name: str = "address") -> str:
    return Validators.validate_address(value, field_name)


def is_zero_address(value: str) -> bool:
    return value == ZERO_ADDRESS


# =============================================================================
# CRYPTOGRAPHIC UTILITIES
# =============================================================================

class CryptoUtils:
    """Hashing helpers matching the on-chain encoding."""

    @staticmethod
    def keccak256(data: Union[str, bytes]) -> bytes:
        """Compute Ethereum-flavoured Keccak-256 (not NIST SHA3-256)."""
        if isinstance(data, str):
            data = data.encode('utf-8')
        digest = keccak.new(digest_bits=256)
        digest.update(data)
        return digest.digest()

    @staticmethod
    def keccak256_hex(data: Union[str, bytes]) -> str:
        return "0x" + CryptoUtils.keccak256(data).hex()

    @staticmethod
    def path_hash(canonical_path: str) -> str:
        """
        Key for the file record store.

        Raw UTF-8 bytes of the canonical string, no length prefix or
        separator. Canonical paths are pure ASCII, so this equals
        keccak256(bytes(path)) on-chain.
        """
        return CryptoUtils.keccak256_hex(canonical_path.encode('utf-8'))
