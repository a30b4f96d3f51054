"""
TokenFS: Token-Gated Path Filesystem

A permissioned, path-addressed pointer store. Each canonical path holds the
latest content identifier (CID) written to it; the content itself lives
off-ledger. Write authority is granted per permission token: the
administrator assigns a token a set of path prefixes, and whoever currently
owns the token may write anywhere inside those subtrees.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                          TOKEN-GATED FILESYSTEM                          │
    │                                                                          │
    │  CALLER SIDE                                                             │
    │    client.py          Validate-before-submit, token auto-selection       │
    │    vectors.py         Shared grammar vectors for both implementations    │
    │    cli.py             Command line tooling                               │
    │                                                                          │
    │  AUTHORITATIVE STATE                                                     │
    │    filesystem.py      Admin state machine, write authorization           │
    │    permissions.py     PermissionKey -> (prefix set, revoked flag)        │
    │    files.py           keccak256(path) -> latest CID                      │
    │                                                                          │
    │  FOUNDATIONS                                                             │
    │    paths.py           Canonical grammar and strict-subtree matcher       │
    │    ledger.py          Contract registry, transactions, owner lookup      │
    │    events.py          Append-only audit log and projections              │
    │    permission_nft.py  Reference ownership token                          │
    │    hardening.py       Errors, validators, hashing                        │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Core Concepts
─────────────

    PermissionKey: (ownership contract, token id). Scopes one prefix set and
    one revocation flag. Only the token's current direct owner may write
    with it; approvals and operators are never honored.

    Canonical path: a validated, unmodified path. "/agent1/manifest.json"
    is a file path, "/agent1" a prefix, "/" the prefix covering everything.

    Strict-subtree matching: "/agent1" covers "/agent1/x" but never
    "/agent10/x".

    Event log: the only history. Stores keep the latest value; indexers
    replay the log for everything else.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

__version__ = "0.3.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name):
    """Lazy import TokenFS modules on first access."""

    if name in ("PathMode", "PathRule", "PathResult", "canonicalize", "matches", "matches_any",
                "normalize_prefix_path", "normalize_file_path",
                "is_valid_prefix_path", "is_valid_file_path"):
        from tokenfs import paths
        return getattr(paths, name)

    if name in ("TokenFSError", "InvalidPath", "InvalidNftContract", "NotTokenOwner",
                "TokenWritesRevoked", "UnauthorizedPath", "EmptyCid", "FileNotFound",
                "NotOwner", "InvalidAddress", "ZERO_ADDRESS"):
        from tokenfs import hardening
        return getattr(hardening, name)

    if name in ("PermissionKey", "PermissionRecord", "PermissionRecordStore"):
        from tokenfs import permissions
        return getattr(permissions, name)

    if name in ("FileRecord", "FileRecordStore"):
        from tokenfs import files
        return getattr(files, name)

    if name in ("Ledger", "Contract", "OwnershipOracle"):
        from tokenfs import ledger
        return getattr(ledger, name)

    if name in ("EventLog", "EventRecord", "FileHistoryProjection",
                "TokenPrefixesReplaced", "TokenWriteRevocationSet", "FileUpserted",
                "OwnershipTransferred"):
        from tokenfs import events
        return getattr(events, name)

    if name in ("TokenFilesystem", "AdminState", "AdminStatus"):
        from tokenfs import filesystem
        return getattr(filesystem, name)

    if name == "PermissionNFT":
        from tokenfs.permission_nft import PermissionNFT
        return PermissionNFT

    if name in ("FilesystemClient", "NoWritableToken", "parse_prefixes",
                "build_ipfs_gateway_url", "plan_prefix_replacement"):
        from tokenfs import client
        return getattr(client, name)

    if name in ("get_config", "get_config_manager"):
        from tokenfs import config
        return getattr(config, name)

    raise AttributeError(f"module 'tokenfs' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Paths
    "PathMode",
    "PathRule",
    "PathResult",
    "canonicalize",
    "matches",
    "matches_any",
    "normalize_prefix_path",
    "normalize_file_path",
    "is_valid_prefix_path",
    "is_valid_file_path",
    # Errors
    "TokenFSError",
    "InvalidPath",
    "InvalidNftContract",
    "NotTokenOwner",
    "TokenWritesRevoked",
    "UnauthorizedPath",
    "EmptyCid",
    "FileNotFound",
    "NotOwner",
    "InvalidAddress",
    "ZERO_ADDRESS",
    # Stores
    "PermissionKey",
    "PermissionRecord",
    "PermissionRecordStore",
    "FileRecord",
    "FileRecordStore",
    # Ledger and events
    "Ledger",
    "Contract",
    "OwnershipOracle",
    "EventLog",
    "EventRecord",
    "FileHistoryProjection",
    "TokenPrefixesReplaced",
    "TokenWriteRevocationSet",
    "FileUpserted",
    "OwnershipTransferred",
    # Contracts
    "TokenFilesystem",
    "AdminState",
    "AdminStatus",
    "PermissionNFT",
    # Client
    "FilesystemClient",
    "NoWritableToken",
    "parse_prefixes",
    "build_ipfs_gateway_url",
    "plan_prefix_replacement",
    # Config
    "get_config",
    "get_config_manager",
]
