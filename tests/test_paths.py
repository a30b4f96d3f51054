"""
TokenFS Path Grammar Tests

Covers the canonicalizer in both modes, the rule reported for each kind of
violation, and the strict-subtree prefix matcher.

Copyright (c) 2026 Momentum. All rights reserved.
"""

import pytest

from tokenfs.hardening import InvalidPath
from tokenfs.paths import (
    PathMode,
    PathRule,
    canonicalize,
    is_valid_file_path,
    is_valid_prefix_path,
    matches,
    matches_any,
    normalize_file_path,
    normalize_prefix_path,
)

LEGAL = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


# =============================================================================
# CANONICALIZER
# =============================================================================

class TestCanonicalizePrefix:
    """Prefix-mode grammar."""

    def test_root_is_a_legal_prefix(self):
        """The bare root is accepted only as a prefix."""
        assert normalize_prefix_path("/") == "/"

    def test_simple_prefixes(self):
        assert normalize_prefix_path("/agent1") == "/agent1"
        assert normalize_prefix_path("/shared/data") == "/shared/data"

    def test_case_is_preserved(self):
        assert normalize_prefix_path("/Agent1/Data") == "/Agent1/Data"

    def test_every_legal_character(self):
        assert normalize_prefix_path("/" + LEGAL) == "/" + LEGAL

    def test_dot_rejected_anywhere(self):
        for raw in ("/agent.1", "/a/b.c", "/a.b/c"):
            result = canonicalize(raw, PathMode.PREFIX)
            assert not result.ok
            assert result.error.rule is PathRule.DOT_NOT_ALLOWED

    def test_trailing_slash_rejected(self):
        result = canonicalize("/agent1/", PathMode.PREFIX)
        assert result.error.rule is PathRule.TRAILING_SLASH
        assert str(result.error) == 'Prefix path cannot end with "/".'


class TestCanonicalizeFilePath:
    """File-mode grammar."""

    def test_valid_file_paths(self):
        for raw in ("/agent1/files/manifest.json", "/README", "/a.b", "/x/y/z"):
            assert normalize_file_path(raw) == raw

    def test_root_rejected(self):
        result = canonicalize("/", PathMode.FILE_PATH)
        assert result.error.rule is PathRule.ROOT_NOT_ALLOWED
        assert str(result.error) == 'File path cannot be root "/".'

    def test_two_dots_in_final_segment(self):
        result = canonicalize("/agent1/files/manifest..json", PathMode.FILE_PATH)
        assert result.error.rule is PathRule.MULTIPLE_DOTS

    def test_illegal_character_reports_position(self):
        result = canonicalize("/agent1/files/mani@fest.json", PathMode.FILE_PATH)
        assert result.error.rule is PathRule.INVALID_CHARACTER
        assert result.error.char == "@"
        assert result.error.position == len("/agent1/files/mani")
        assert 'invalid character "@"' in str(result.error)

    def test_dot_only_in_final_segment(self):
        result = canonicalize("/dir.v1/file", PathMode.FILE_PATH)
        assert result.error.rule is PathRule.DOT_OUTSIDE_FINAL_SEGMENT

    def test_segment_cannot_start_or_end_with_dot(self):
        assert canonicalize("/a/.env", PathMode.FILE_PATH).error.rule is PathRule.SEGMENT_STARTS_WITH_DOT
        assert canonicalize("/a/file.", PathMode.FILE_PATH).error.rule is PathRule.SEGMENT_ENDS_WITH_DOT

    def test_non_ascii_letters_and_digits_rejected(self):
        """str.isalnum() accepts these; the grammar must not."""
        for raw in ("/café", "/data/١٢", "/ｆｕｌｌ"):
            result = canonicalize(raw, PathMode.FILE_PATH)
            assert result.error.rule is PathRule.INVALID_CHARACTER

    def test_very_long_path(self):
        raw = "/" + "/".join(["segment"] * 2000) + "/file.bin"
        assert normalize_file_path(raw) == raw


class TestCanonicalizeProperties:
    """Properties that hold for every input."""

    @pytest.mark.parametrize("mode", list(PathMode))
    def test_not_starting_with_slash_always_fails(self, mode):
        for raw in ("", "a", "agent1/x", " /a", ".", "\\a", "a/"):
            result = canonicalize(raw, mode)
            assert not result.ok
            assert result.error.rule is PathRule.MUST_START_WITH_SLASH

    @pytest.mark.parametrize("mode", list(PathMode))
    def test_double_slash_always_fails(self, mode):
        for raw in ("//", "//a", "/a//b", "/a/b//", "/a//b.json"):
            assert not canonicalize(raw, mode).ok

    @pytest.mark.parametrize("mode", list(PathMode))
    def test_non_string_input_is_rejected_not_raised(self, mode):
        for raw in (None, 42, b"/agent1", ["/agent1"]):
            result = canonicalize(raw, mode)
            assert result.error.rule is PathRule.MUST_START_WITH_SLASH

    def test_canonicalization_is_idempotent(self):
        for raw in ("/agent1/files/manifest.json", "/Shared/Data", "/a-b_c/D.e"):
            once = normalize_file_path(raw)
            assert normalize_file_path(once) == once == raw
        for raw in ("/", "/agent1", "/A/b/C"):
            once = normalize_prefix_path(raw)
            assert normalize_prefix_path(once) == once == raw

    def test_first_violation_wins(self):
        """A later illegal character does not mask an earlier duplicate slash."""
        result = canonicalize("/a//b@", PathMode.FILE_PATH)
        assert result.error.rule is PathRule.DUPLICATE_SLASH
        assert result.error.position == 3

    def test_unwrap_raises_carried_error(self):
        result = canonicalize("nope", PathMode.PREFIX)
        with pytest.raises(InvalidPath) as exc_info:
            result.unwrap()
        assert exc_info.value is result.error
        assert exc_info.value.label == "Prefix path"

    def test_boolean_wrappers(self):
        assert is_valid_prefix_path("/")
        assert not is_valid_file_path("/")
        assert is_valid_file_path("/a.json")
        assert not is_valid_prefix_path("/a.json")

    def test_error_serializes(self):
        error = canonicalize("/a b", PathMode.PREFIX).error
        data = error.to_dict()
        assert data["rule"] == "invalid_character"
        assert data["char"] == " "
        assert data["position"] == 2


# =============================================================================
# MATCHER
# =============================================================================

class TestMatcher:
    """Strict-subtree prefix matching."""

    def test_subtree_match(self):
        assert matches("/shared/data/sub/file1", "/shared/data")

    def test_byte_prefix_collision_is_not_a_match(self):
        assert not matches("/shared/database/file1", "/shared/data")
        assert not matches("/agent10/x", "/agent1")

    def test_exact_match(self):
        assert matches("/agent1", "/agent1")

    def test_root_matches_everything(self):
        for path in ("/a", "/agent1/files/manifest.json", "/Z/z.z"):
            assert matches(path, "/")

    def test_case_sensitive(self):
        assert not matches("/Agent1/x", "/agent1")

    def test_longer_prefix_does_not_match_shorter_path(self):
        assert not matches("/agent", "/agent1")

    def test_any_prefix_authorizes(self):
        prefixes = ["/agent2", "/shared/data"]
        assert matches_any("/shared/data/x.json", prefixes)
        assert not matches_any("/agent1/x.json", prefixes)
        assert not matches_any("/agent1/x.json", [])
