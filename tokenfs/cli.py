#!/usr/bin/env python3
"""
TokenFS CLI

Command-line access to the path grammar, the shared vector set, the client
input helpers and configuration.

Usage:
    tokenfs <command> [subcommand] [options]

Commands:
    path        Canonicalize, match and hash paths; verify the vector set
    prefixes    Parse newline/comma separated prefix lists
    gateway-url Build an IPFS gateway URL for a CID
    config      Configuration management

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from typing import Any, List, Optional

from tokenfs import __version__
from tokenfs.config import ConfigError
from tokenfs.hardening import TokenFSError


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        import yaml
        return yaml.dump(data, default_flow_style=False, allow_unicode=True)
    return _format_text(data)


def _format_text(data: Any) -> str:
    if isinstance(data, dict):
        return "\n".join(f"{k}: {_format_text(v) if isinstance(v, (dict, list)) else v}"
                         for k, v in data.items())
    if isinstance(data, list):
        return "\n".join(json.dumps(item, default=str) if isinstance(item, dict) else str(item)
                         for item in data)
    return str(data)


def _succeeded(result: Any) -> bool:
    return not (isinstance(result, dict) and result.get("valid") is False)


class TokenFSCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="tokenfs",
            description="TokenFS path grammar and client tooling",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"tokenfs {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="Configuration file to load after the default locations",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress error messages",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        self._register_path_commands()
        self._register_prefixes_commands()
        self._register_gateway_commands()
        self._register_config_commands()

    def _register_path_commands(self) -> None:
        path = self.subparsers.add_parser("path", help="Path grammar operations")
        path_sub = path.add_subparsers(dest="subcommand")

        # path check
        check = path_sub.add_parser("check", help="Canonicalize one or more paths")
        check.add_argument("--mode", "-m", choices=["file", "prefix"], default="file",
                           help="Grammar variant (default: file)")
        check.add_argument("paths", nargs="+", help="Paths to check")

        # path match
        match = path_sub.add_parser("match", help="Test whether a prefix covers a file path")
        match.add_argument("--prefix", "-p", required=True, help="Permission prefix")
        match.add_argument("path", help="File path")

        # path hash
        hash_cmd = path_sub.add_parser("hash", help="Record-store key of a file path")
        hash_cmd.add_argument("path", help="File path")

        # path verify-vectors
        verify = path_sub.add_parser(
            "verify-vectors", help="Check the filesystem and client path entry points against a vector file")
        verify.add_argument("file", nargs="?", help="Vector file (default: bundled set)")

    def _register_prefixes_commands(self) -> None:
        prefixes = self.subparsers.add_parser("prefixes", help="Prefix list helpers")
        prefixes_sub = prefixes.add_subparsers(dest="subcommand")

        parse = prefixes_sub.add_parser("parse", help="Parse a newline/comma separated list")
        parse.add_argument("text", help="Prefix list")

    def _register_gateway_commands(self) -> None:
        gateway = self.subparsers.add_parser("gateway-url", help="Build an IPFS gateway URL")
        gateway.add_argument("--gateway", "-g", help="Gateway host or URL (default: client.default_gateway)")
        gateway.add_argument("cid", help="Content identifier")

    def _register_config_commands(self) -> None:
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        # config get
        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., client.batch_size)")

        config_sub.add_parser("show", help="Show all configuration")
        config_sub.add_parser("validate", help="Validate configuration")
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            self._configure(parsed)
            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return 0 if _succeeded(result) else 1

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except TokenFSError as e:
            if not parsed.quiet:
                print(f"Error [{e.error_code}]: {e}", file=sys.stderr)
            return 1

        except ConfigError as e:
            if not parsed.quiet:
                print(f"Error [config]: {e}", file=sys.stderr)
            return 1

    def _configure(self, args: argparse.Namespace) -> None:
        from tokenfs.config import get_config_manager
        from tokenfs.observability import configure_from_config

        mgr = get_config_manager()
        try:
            mgr.load_defaults()
            if args.config:
                mgr.load_from_file(args.config)
            configure_from_config()
        except ValueError as e:
            raise CLIError(str(e)) from e

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command.replace("-", "_")
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd.replace('-', '_')}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {args.command} {subcmd or ''}")

        return handler(args)

    # Path handlers
    def _handle_path_check(self, args: argparse.Namespace) -> Any:
        from tokenfs.paths import PathMode, canonicalize

        mode = PathMode(args.mode)
        results = []
        for raw in args.paths:
            outcome = canonicalize(raw, mode)
            entry = {"input": raw, "valid": outcome.ok}
            if outcome.ok:
                entry["canonical"] = outcome.value
            else:
                entry["error"] = outcome.error.to_dict()
            results.append(entry)
        return {
            "mode": mode.value,
            "valid": all(r["valid"] for r in results),
            "results": results,
        }

    def _handle_path_match(self, args: argparse.Namespace) -> Any:
        from tokenfs.paths import matches, normalize_file_path, normalize_prefix_path

        prefix = normalize_prefix_path(args.prefix)
        path = normalize_file_path(args.path)
        return {"path": path, "prefix": prefix, "matches": matches(path, prefix)}

    def _handle_path_hash(self, args: argparse.Namespace) -> Any:
        from tokenfs.hardening import CryptoUtils
        from tokenfs.paths import normalize_file_path

        path = normalize_file_path(args.path)
        return {"path": path, "path_hash": CryptoUtils.path_hash(path)}

    def _handle_path_verify_vectors(self, args: argparse.Namespace) -> Any:
        from tokenfs.vectors import DEFAULT_VECTORS_PATH, check_vectors, load_vectors

        vectors = load_vectors(args.file)
        mismatches = check_vectors(vectors)
        return {
            "file": str(args.file or DEFAULT_VECTORS_PATH),
            "canonicalize_cases": len(vectors["canonicalize"]),
            "matcher_cases": len(vectors["matcher"]),
            "valid": not mismatches,
            "mismatches": [m.to_dict() for m in mismatches],
        }

    # Prefix handlers
    def _handle_prefixes_parse(self, args: argparse.Namespace) -> Any:
        from tokenfs.client import parse_prefixes

        prefixes = parse_prefixes(args.text)
        return {"prefixes": prefixes, "count": len(prefixes)}

    # Gateway handlers
    def _handle_gateway_url(self, args: argparse.Namespace) -> Any:
        from tokenfs.client import build_ipfs_gateway_url

        return {"url": build_ipfs_gateway_url(args.gateway, args.cid)}

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        from tokenfs.config import get_config_manager
        mgr = get_config_manager()
        value = mgr.get(args.path)
        if not isinstance(value, (str, int, bool)):
            raise CLIError(f"Not a configuration value: {args.path}")
        return {"path": args.path, "value": value}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        from tokenfs.config import get_config_manager
        mgr = get_config_manager()
        return mgr.config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        from tokenfs.config import get_config_manager
        mgr = get_config_manager()
        errors = mgr.validate()
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        from tokenfs.config import get_config_manager
        mgr = get_config_manager()
        return mgr.export_schema()


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    cli = TokenFSCLI()
    return cli.run(argv)


if __name__ == "__main__":
    sys.exit(main())
