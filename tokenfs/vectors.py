"""Shared path grammar vectors.

Loads ``path_vectors.yaml`` (or any file in the same format), validates it
against a JSON Schema, and checks the filesystem's and the client
library's entry points against every case. Both entry points delegate to
``paths.canonicalize``; the check covers their mode wiring and error
translation, not two independent grammars.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from jsonschema import Draft202012Validator

from tokenfs import client
from tokenfs.filesystem import TokenFilesystem
from tokenfs.hardening import InvalidPath, TokenFSError
from tokenfs.paths import matches

DEFAULT_VECTORS_PATH = Path(__file__).with_name("path_vectors.yaml")

_RULES = [
    "must_start_with_slash",
    "root_not_allowed",
    "duplicate_slash",
    "dot_outside_final_segment",
    "dot_not_allowed",
    "segment_starts_with_dot",
    "multiple_dots",
    "invalid_character",
    "trailing_slash",
    "segment_ends_with_dot",
]

VECTORS_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "TokenFS path vectors",
    "type": "object",
    "required": ["version", "canonicalize", "matcher"],
    "properties": {
        "version": {"const": 1},
        "canonicalize": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["input", "mode", "valid"],
                "additionalProperties": False,
                "properties": {
                    "input": {"type": "string"},
                    "mode": {"enum": ["prefix", "file"]},
                    "valid": {"type": "boolean"},
                    "rule": {"enum": _RULES},
                },
                "if": {"properties": {"valid": {"const": False}}},
                "then": {"required": ["rule"]},
            },
        },
        "matcher": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["path", "prefix", "matches"],
                "additionalProperties": False,
                "properties": {
                    "path": {"type": "string"},
                    "prefix": {"type": "string"},
                    "matches": {"type": "boolean"},
                },
            },
        },
    },
}


class VectorFileError(TokenFSError):
    """Vector file is missing, unparsable, or fails its schema."""

    error_code = "vector_file_error"

    def __init__(self, path: Path, errors: List[str]):
        self.path = path
        self.errors = errors
        super().__init__(f"{path}: " + "; ".join(errors))


@dataclass(frozen=True)
class VectorMismatch:
    """One vector case an implementation disagreed with."""
    implementation: str
    case: Dict[str, Any]
    expected: Any
    actual: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            "implementation": self.implementation,
            "case": self.case,
            "expected": self.expected,
            "actual": self.actual,
        }


def load_vectors(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load and schema-check a vector file.

    Args:
        path: Vector file; defaults to the set shipped with the package.

    Returns:
        The parsed document.

    Raises:
        VectorFileError: If the file is missing, not YAML, or invalid.
    """
    path = Path(path) if path is not None else DEFAULT_VECTORS_PATH
    if not path.exists():
        raise VectorFileError(path, ["file not found"])
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise VectorFileError(path, [f"invalid YAML: {e}"]) from e

    validator = Draft202012Validator(VECTORS_SCHEMA)
    errors = [f"{error.json_path}: {error.message}" for error in validator.iter_errors(data)]
    if errors:
        raise VectorFileError(path, errors)
    return data


def _outcome(normalize: Callable[[Any], Any], raw: str) -> Dict[str, Any]:
    try:
        normalize(raw)
    except InvalidPath as e:
        return {"valid": False, "rule": e.rule.value}
    return {"valid": True}


_CANONICALIZERS: Dict[str, Dict[str, Callable[[Any], Any]]] = {
    "filesystem": {
        "prefix": TokenFilesystem.normalize_prefix_path,
        "file": TokenFilesystem.normalize_file_path,
    },
    "client": {
        "prefix": client.validate_prefix_path,
        "file": client.validate_file_path,
    },
}


def check_vectors(vectors: Dict[str, Any]) -> List[VectorMismatch]:
    """Run every case against the filesystem and client entry points.

    Args:
        vectors: A document returned by ``load_vectors``.

    Returns:
        Every disagreement; empty when both entry points pass.
    """
    mismatches: List[VectorMismatch] = []

    for case in vectors.get("canonicalize", []):
        expected = {"valid": case["valid"]}
        if not case["valid"]:
            expected["rule"] = case["rule"]
        for implementation, entry_points in _CANONICALIZERS.items():
            actual = _outcome(entry_points[case["mode"]], case["input"])
            if actual != expected:
                mismatches.append(VectorMismatch(implementation, case, expected, actual))
            if actual["valid"]:
                # canonicalization is the identity on accepted input
                canonical = entry_points[case["mode"]](case["input"])
                if canonical is not None and canonical != case["input"]:
                    mismatches.append(VectorMismatch(implementation, case, case["input"], canonical))

    for case in vectors.get("matcher", []):
        actual = matches(case["path"], case["prefix"])
        if actual != case["matches"]:
            mismatches.append(VectorMismatch("matcher", case, case["matches"], actual))

    return mismatches
