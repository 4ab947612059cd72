"""Tests for connector field helpers."""

from datetime import datetime, timezone

from jobpipe.sources.normalize import (
    clean_text,
    format_salary_range,
    make_external_id,
    normalize_job_type,
    parse_datetime,
    to_float,
)


class TestCleanText:
    def test_strips_tags_and_entities(self) -> None:
        assert clean_text("<p>Python &amp; <b>Django</b></p>") == "Python & Django"

    def test_collapses_whitespace(self) -> None:
        assert clean_text("  a \t  b  ") == "a b"

    def test_br_becomes_newline(self) -> None:
        assert clean_text("line one<br>line two") == "line one\nline two"

    def test_none(self) -> None:
        assert clean_text(None) == ""


class TestParseDatetime:
    def test_zulu(self) -> None:
        assert parse_datetime("2026-03-01T10:00:00Z") == datetime(
            2026, 3, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_naive_is_utc(self) -> None:
        parsed = parse_datetime("2026-03-01T10:00:00")
        assert parsed is not None
        assert parsed.tzinfo == timezone.utc

    def test_long_fraction_truncated(self) -> None:
        parsed = parse_datetime("2026-03-01T10:00:00.1234567")
        assert parsed is not None
        assert parsed.microsecond == 123456

    def test_offset_converted(self) -> None:
        parsed = parse_datetime("2026-03-01T12:00:00+02:00")
        assert parsed == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_garbage(self) -> None:
        assert parse_datetime("yesterday") is None
        assert parse_datetime(12345) is None


class TestMakeExternalId:
    def test_prefixed(self) -> None:
        assert make_external_id("jooble", 42) == "jooble-42"

    def test_fallback_is_stable(self) -> None:
        a = make_external_id("jooble", None, "https://x/1", "Engineer")
        b = make_external_id("jooble", "", "https://x/1", "Engineer")
        assert a == b
        assert a.startswith("jooble-")
        assert a != make_external_id("jooble", None, "https://x/2", "Engineer")


class TestNumbers:
    def test_to_float(self) -> None:
        assert to_float("85,000") == 85000.0
        assert to_float("") is None
        assert to_float("n/a") is None

    def test_salary_range(self) -> None:
        assert format_salary_range(60000, 90000, "Per Year") == "$60,000 - $90,000 Per Year"

    def test_salary_single_value(self) -> None:
        assert format_salary_range(50000, 50000) == "$50,000"

    def test_salary_missing(self) -> None:
        assert format_salary_range(None, None) is None


class TestNormalizeJobType:
    def test_variants(self) -> None:
        assert normalize_job_type("Full Time") == "full-time"
        assert normalize_job_type("full_time") == "full-time"
        assert normalize_job_type("FULL-TIME") == "full-time"

    def test_empty(self) -> None:
        assert normalize_job_type(None) is None
        assert normalize_job_type("") is None
