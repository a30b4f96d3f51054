"""
TokenFS Path Canonicalizer and Prefix Matcher

Strict grammar for file paths and permission prefixes, and the
strict-subtree matcher that decides whether a prefix authorizes a path.

Grammar
───────

    path     := "/" segment ( "/" segment )*
    prefix   := "/" | path                      (prefix mode only: bare root)
    segment  := [A-Za-z0-9_-]+
    final    := segment | stem "." stem         (file mode only)

    - no duplicate, leading-empty or trailing slashes
    - a file path's final segment may hold one interior "."
    - prefixes never contain "."
    - case is preserved; canonicalization is a validating copy

Matching
────────

    "/"              matches every canonical path
    "/shared/data"   matches "/shared/data" and "/shared/data/..."
                     does not match "/shared/database/..."

Both the authoritative filesystem and the client helper library call into
this module, and both are checked against the shared vector set in
``path_vectors.yaml``.

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from tokenfs.hardening import InvalidPath


ROOT = "/"


class PathMode(Enum):
    """Which grammar variant to apply."""
    PREFIX = "prefix"
    FILE_PATH = "file"

    @property
    def label(self) -> str:
        return "Prefix path" if self is PathMode.PREFIX else "File path"

    @property
    def allow_dot_in_final_segment(self) -> bool:
        return self is PathMode.FILE_PATH

    @property
    def allow_root_only(self) -> bool:
        return self is PathMode.PREFIX


class PathRule(Enum):
    """Grammar rule that rejected an input."""
    MUST_START_WITH_SLASH = "must_start_with_slash"
    ROOT_NOT_ALLOWED = "root_not_allowed"
    DUPLICATE_SLASH = "duplicate_slash"
    DOT_OUTSIDE_FINAL_SEGMENT = "dot_outside_final_segment"
    DOT_NOT_ALLOWED = "dot_not_allowed"
    SEGMENT_STARTS_WITH_DOT = "segment_starts_with_dot"
    MULTIPLE_DOTS = "multiple_dots"
    INVALID_CHARACTER = "invalid_character"
    TRAILING_SLASH = "trailing_slash"
    SEGMENT_ENDS_WITH_DOT = "segment_ends_with_dot"


@dataclass(frozen=True)
class PathResult:
    """Outcome of canonicalization: a canonical value or the rejecting error."""
    ok: bool
    value: Optional[str] = None
    error: Optional[InvalidPath] = None

    @classmethod
    def success(cls, value: str) -> "PathResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: InvalidPath) -> "PathResult":
        return cls(ok=False, error=error)

    def unwrap(self) -> str:
        """Return the canonical value or raise the carried InvalidPath."""
        if not self.ok:
            raise self.error
        return self.value


def _is_segment_char(char: str) -> bool:
    # ASCII only; str.isalnum() would admit other scripts
    return (
        "A" <= char <= "Z"
        or "a" <= char <= "z"
        or "0" <= char <= "9"
        or char == "-"
        or char == "_"
    )


def canonicalize(raw: Any, mode: PathMode) -> PathResult:
    """
    Validate ``raw`` under the grammar for ``mode``.

    Never raises for bad input; the first violated rule is returned in the
    result. On success the canonical value is identical to the input.
    """
    label = mode.label

    def fail(rule: PathRule, message: str, position: Optional[int] = None,
             char: Optional[str] = None) -> PathResult:
        return PathResult.failure(InvalidPath(label, rule, message, position, char))

    if not isinstance(raw, str) or len(raw) == 0 or raw[0] != "/":
        return fail(PathRule.MUST_START_WITH_SLASH, f'{label} must start with "/".', 0)

    length = len(raw)
    if length == 1:
        if not mode.allow_root_only:
            return fail(PathRule.ROOT_NOT_ALLOWED, f'{label} cannot be root "/".', 0)
        return PathResult.success(raw)

    allow_dot = mode.allow_dot_in_final_segment
    previous_was_slash = True
    segment_length = 0
    segment_dot_count = 0
    segment_ends_with_dot = False

    for i in range(1, length):
        current = raw[i]

        if current == "/":
            if previous_was_slash:
                return fail(PathRule.DUPLICATE_SLASH,
                            f"{label} cannot contain duplicate slashes.", i, current)
            if segment_dot_count > 0:
                return fail(PathRule.DOT_OUTSIDE_FINAL_SEGMENT,
                            f'{label} can only use "." in the final segment.', i, current)
            previous_was_slash = True
            segment_length = 0
            segment_dot_count = 0
            segment_ends_with_dot = False
            continue

        if _is_segment_char(current):
            segment_ends_with_dot = False
        elif current == ".":
            if not allow_dot:
                return fail(PathRule.DOT_NOT_ALLOWED, f'{label} cannot include ".".', i, current)
            if segment_length == 0:
                return fail(PathRule.SEGMENT_STARTS_WITH_DOT,
                            f'{label} segment cannot start with ".".', i, current)
            segment_dot_count += 1
            if segment_dot_count > 1:
                return fail(PathRule.MULTIPLE_DOTS,
                            f'{label} final segment can include at most one ".".', i, current)
            segment_ends_with_dot = True
        else:
            allowed = ', and "." in the final segment.' if allow_dot else "."
            return fail(
                PathRule.INVALID_CHARACTER,
                f'{label} contains invalid character "{current}". '
                f'Allowed: A-Z, a-z, 0-9, "-", "_"{allowed}',
                i,
                current,
            )

        segment_length += 1
        previous_was_slash = False

    if previous_was_slash:
        return fail(PathRule.TRAILING_SLASH, f'{label} cannot end with "/".', length - 1, "/")

    if segment_ends_with_dot:
        return fail(PathRule.SEGMENT_ENDS_WITH_DOT,
                    f'{label} segment cannot end with ".".', length - 1, ".")

    return PathResult.success(raw)


def normalize_prefix_path(prefix: Any) -> str:
    """Canonical prefix, or raise InvalidPath."""
    return canonicalize(prefix, PathMode.PREFIX).unwrap()


def normalize_file_path(path: Any) -> str:
    """Canonical file path, or raise InvalidPath."""
    return canonicalize(path, PathMode.FILE_PATH).unwrap()


def is_valid_prefix_path(prefix: Any) -> bool:
    return canonicalize(prefix, PathMode.PREFIX).ok


def is_valid_file_path(path: Any) -> bool:
    return canonicalize(path, PathMode.FILE_PATH).ok


# =============================================================================
# PREFIX MATCHER
# =============================================================================

def matches(canonical_path: str, canonical_prefix: str) -> bool:
    """Strict-subtree match: the prefix must end on a segment boundary."""
    if canonical_prefix == ROOT:
        return True
    if not canonical_path.startswith(canonical_prefix):
        return False
    if len(canonical_path) == len(canonical_prefix):
        return True
    return canonical_path[len(canonical_prefix)] == "/"


def matches_any(canonical_path: str, canonical_prefixes: Iterable[str]) -> bool:
    """True when at least one prefix covers the path. No precedence among prefixes."""
    return any(matches(canonical_path, prefix) for prefix in canonical_prefixes)
