"""Tests for CLI argument handling."""

from __future__ import annotations

import pytest

from main import (
    DAILY_MAX_RESULTS,
    MANUAL_MAX_RESULTS,
    build_parser,
    resolve_max_results,
)


class TestMaxResults:
    """--max-results falls back to a per-mode default only when omitted."""

    def test_mode_defaults(self) -> None:
        assert resolve_max_results("daily", None) == DAILY_MAX_RESULTS
        assert resolve_max_results("manual", None) == MANUAL_MAX_RESULTS

    def test_explicit_value_wins(self) -> None:
        assert resolve_max_results("daily", 3) == 3

    def test_explicit_zero_is_kept(self) -> None:
        args = build_parser().parse_args(["--mode", "manual", "--max-results", "0"])
        assert args.max_results == 0
        assert resolve_max_results(args.mode, args.max_results) == 0

    def test_negative_rejected(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--max-results", "-1"])


class TestParser:
    def test_defaults(self) -> None:
        args = build_parser().parse_args([])
        assert args.mode == "daily"
        assert args.max_results is None
        assert args.no_skip_seen is False

    def test_manual_overrides(self) -> None:
        args = build_parser().parse_args(
            ["--mode", "manual", "--titles", "Data Engineer", "ML Engineer", "--locations", "Remote"]
        )
        assert args.titles == ["Data Engineer", "ML Engineer"]
        assert args.locations == ["Remote"]
