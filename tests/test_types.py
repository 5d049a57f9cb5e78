"""Tests for record types, path normalization and option parsing."""

from datetime import datetime, timezone

import pytest

from lore.errors import DeserializationError
from lore.types import (
    Record,
    RejectedAlternative,
    format_timestamp,
    normalize_path,
    parse_line_range,
    parse_rejected,
    parse_timestamp,
)


# ---------------------------------------------------------------------------
# normalize_path
# ---------------------------------------------------------------------------


class TestNormalizePath:
    def test_strips_leading_dot_slash(self):
        assert normalize_path("./src/main.py") == "src/main.py"

    def test_converts_backslashes(self):
        assert normalize_path("src\\utils\\helper.py") == "src/utils/helper.py"

    def test_plain_path_unchanged(self):
        assert normalize_path("src/main.py") == "src/main.py"

    def test_backslash_dot_prefix(self):
        assert normalize_path(".\\src\\main.py") == "src/main.py"

    def test_idempotent(self):
        for p in ["./src/a.py", "././b.py", "c\\d.py", "../e.py", "/abs/f.py"]:
            once = normalize_path(p)
            assert normalize_path(once) == once

    def test_does_not_resolve_parent_segments(self):
        assert normalize_path("../other/file.py") == "../other/file.py"

    def test_preserves_case(self):
        assert normalize_path("Src/Main.PY") == "Src/Main.PY"


# ---------------------------------------------------------------------------
# parse_line_range / parse_rejected
# ---------------------------------------------------------------------------


class TestParseLineRange:
    def test_valid(self):
        assert parse_line_range("10-45") == (10, 45)

    def test_start_after_end_allowed(self):
        assert parse_line_range("45-10") == (45, 10)

    @pytest.mark.parametrize("value", ["10", "a-b", "1-2-3", "-5", "10-", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_line_range(value)


class TestParseRejected:
    def test_name_only(self):
        assert parse_rejected("Redis") == RejectedAlternative("Redis")

    def test_name_and_reason(self):
        alt = parse_rejected("Auth0 SDK=vendor lock-in")
        assert alt.name == "Auth0 SDK"
        assert alt.reason == "vendor lock-in"

    def test_reason_may_contain_equals(self):
        assert parse_rejected("a=b=c").reason == "b=c"

    def test_empty_reason_is_none(self):
        assert parse_rejected("bcrypt=").reason is None


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


class TestTimestamps:
    def test_format_uses_z_suffix(self):
        dt = datetime(2025, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2025-01-15T10:30:00.123456Z"

    def test_parse_z_suffix(self):
        dt = parse_timestamp("2025-01-15T10:30:00Z")
        assert dt == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_parse_nanoseconds_truncated(self):
        dt = parse_timestamp("2025-01-15T10:30:00.123456789Z")
        assert dt.microsecond == 123456

    def test_parse_offset_converted_to_utc(self):
        dt = parse_timestamp("2025-01-15T12:30:00+02:00")
        assert dt == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_parse_naive_is_utc(self):
        assert parse_timestamp("2025-01-15T10:30:00").tzinfo is not None


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


class TestRecord:
    def test_create_assigns_unique_ids(self):
        a = Record.create("a.py", "h", "agent", "intent", "trace")
        b = Record.create("a.py", "h", "agent", "intent", "trace")
        assert a.id != b.id

    def test_create_normalizes_target(self):
        r = Record.create("./src\\a.py", "h", "agent", "intent", "trace")
        assert r.target_file == "src/a.py"

    def test_create_uses_utc(self):
        r = Record.create("a.py", "h", "agent", "intent", "trace")
        assert r.timestamp.utcoffset().total_seconds() == 0

    def test_to_dict_omits_absent_optionals(self, record_factory):
        d = record_factory().to_dict()
        for key in ("line_range", "commit_hash", "rejected_alternatives", "tags"):
            assert key not in d

    def test_to_dict_includes_present_optionals(self, record_factory):
        r = record_factory(
            line_range=(10, 45),
            commit_hash="deadbeef",
            rejected=[RejectedAlternative("Redis", "extra service")],
            tags=["perf"],
        )
        d = r.to_dict()
        assert d["line_range"] == [10, 45]
        assert d["commit_hash"] == "deadbeef"
        assert d["rejected_alternatives"] == [{"name": "Redis", "reason": "extra service"}]
        assert d["tags"] == ["perf"]

    def test_rejected_without_reason_omits_key(self):
        assert RejectedAlternative("Redis").to_dict() == {"name": "Redis"}

    def test_round_trip(self, record_factory):
        r = record_factory(
            line_range=(1, 2),
            commit_hash="abc",
            rejected=["x"],
            tags=["t1", "t2"],
        )
        assert Record.from_dict(r.to_dict()) == r

    def test_from_dict_accepts_nanosecond_timestamp(self, record_factory):
        d = record_factory().to_dict()
        d["timestamp"] = "2025-01-15T10:30:00.123456789Z"
        assert Record.from_dict(d).timestamp.microsecond == 123456

    def test_from_dict_missing_required_field(self, record_factory):
        d = record_factory().to_dict()
        del d["intent"]
        with pytest.raises(DeserializationError):
            Record.from_dict(d)

    def test_from_dict_bad_line_range(self, record_factory):
        d = record_factory().to_dict()
        d["line_range"] = [1]
        with pytest.raises(DeserializationError):
            Record.from_dict(d)

    def test_from_dict_bad_timestamp(self, record_factory):
        d = record_factory().to_dict()
        d["timestamp"] = "yesterday"
        with pytest.raises(DeserializationError):
            Record.from_dict(d)

    def test_from_dict_not_object(self):
        with pytest.raises(DeserializationError):
            Record.from_dict(["not", "a", "record"])

    def test_from_dict_null_optionals(self, record_factory):
        d = record_factory().to_dict()
        d["commit_hash"] = None
        d["line_range"] = None
        r = Record.from_dict(d)
        assert r.commit_hash is None
        assert r.line_range is None
