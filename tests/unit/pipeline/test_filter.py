"""Tests for filter expressions."""

import logging

import pytest

from tracekit.filter import OFF, TRACE, EnvFilter, parse_level


class TestParseLevel:
    """Tests for level names."""

    @pytest.mark.parametrize(
        ("name", "level"),
        [
            ("trace", TRACE),
            ("DEBUG", logging.DEBUG),
            ("Info", logging.INFO),
            ("warn", logging.WARNING),
            ("warning", logging.WARNING),
            ("error", logging.ERROR),
            ("off", OFF),
        ],
    )
    def test_known_levels(self, name: str, level: int) -> None:
        """Should parse level names case-insensitively."""
        assert parse_level(name) == level

    def test_unknown_level(self) -> None:
        """Should return None for unknown names."""
        assert parse_level("verbose") is None


class TestEnvFilter:
    """Tests for EnvFilter."""

    def test_empty_expression_passes_nothing(self) -> None:
        """Should disable every level when the expression is empty."""
        env_filter = EnvFilter.parse("")
        assert not env_filter.enabled("app", logging.ERROR)
        assert env_filter.min_level == OFF

    def test_missing_expression_passes_nothing(self) -> None:
        """Should treat None like an empty expression."""
        assert not EnvFilter.parse(None).enabled("app", logging.CRITICAL)

    def test_bare_level_is_default(self) -> None:
        """Should apply a bare level to every target."""
        env_filter = EnvFilter.parse("info")
        assert env_filter.enabled("anything", logging.INFO)
        assert env_filter.enabled("anything", logging.ERROR)
        assert not env_filter.enabled("anything", logging.DEBUG)

    def test_target_directive_overrides_default(self) -> None:
        """Should use the target's level for matching loggers."""
        env_filter = EnvFilter.parse("warn,app.db=debug")
        assert env_filter.enabled("app.db", logging.DEBUG)
        assert env_filter.enabled("app.db.pool", logging.DEBUG)
        assert not env_filter.enabled("app.api", logging.INFO)

    def test_prefix_must_end_on_segment(self) -> None:
        """Should not match a target that only shares a string prefix."""
        env_filter = EnvFilter.parse("app=trace")
        assert env_filter.enabled("app.core", TRACE)
        assert not env_filter.enabled("application", logging.ERROR)

    def test_most_specific_target_wins(self) -> None:
        """Should prefer the longest matching target."""
        env_filter = EnvFilter.parse("app=error,app.orders=trace")
        assert env_filter.level_for("app.orders.create") == TRACE
        assert env_filter.level_for("app.users") == logging.ERROR

    def test_double_colon_separator(self) -> None:
        """Should accept :: as a target separator."""
        env_filter = EnvFilter.parse("app::db=debug")
        assert env_filter.enabled("app.db", logging.DEBUG)

    def test_bare_target_enables_all_levels(self) -> None:
        """Should enable every level for a target named without a level."""
        env_filter = EnvFilter.parse("app")
        assert env_filter.enabled("app", TRACE)
        assert not env_filter.enabled("other", logging.ERROR)

    def test_off_silences_target(self) -> None:
        """Should silence a target set to off."""
        env_filter = EnvFilter.parse("info,noisy=off")
        assert not env_filter.enabled("noisy", logging.CRITICAL)

    def test_invalid_directives_are_skipped(self) -> None:
        """Should ignore directives with unknown levels."""
        env_filter = EnvFilter.parse("info,app=loud,=debug")
        assert env_filter.directives == {}
        assert env_filter.default == logging.INFO

    def test_min_level(self) -> None:
        """Should report the lowest enabled level."""
        assert EnvFilter.parse("warn,app=debug").min_level == logging.DEBUG

    def test_filters_log_records(self) -> None:
        """Should act as a logging.Filter on record name and level."""
        env_filter = EnvFilter.parse("info")
        record = logging.LogRecord("app", logging.DEBUG, __file__, 1, "msg", None, None)
        assert env_filter.filter(record) is False
        record.levelno = logging.WARNING
        assert env_filter.filter(record) is True
