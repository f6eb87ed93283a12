"""Tests for commit model value types."""

from datetime import datetime, timedelta, timezone

import pytest

from crdt_inspector.models import Commit, HybridDateTime


class TestHybridDateTime:
    def test_parse_offset_aware(self):
        stamp = HybridDateTime.parse("2024-05-01T12:30:00+02:00", 3)
        assert stamp.date_time == datetime(2024, 5, 1, 10, 30, tzinfo=timezone.utc)
        assert stamp.counter == 3

    def test_parse_zulu_suffix(self):
        stamp = HybridDateTime.parse("2024-05-01T12:30:00Z")
        assert stamp.date_time.utcoffset() == timedelta(0)

    def test_naive_values_are_utc(self):
        stamp = HybridDateTime.parse("2024-05-01 12:30:00")
        assert stamp.date_time.tzinfo == timezone.utc

    def test_null_counter_is_zero(self):
        assert HybridDateTime.parse("2024-05-01 12:30:00", None).counter == 0

    @pytest.mark.parametrize(
        "raw, microsecond",
        [
            ("2024-05-14 10:20:30.1+00:00", 100000),
            ("2024-05-14 10:20:30.12+00:00", 120000),
            ("2024-05-14 10:20:30.1234+00:00", 123400),
            ("2024-05-14 10:20:30.1234567+00:00", 123456),
            ("2024-05-14T10:20:30.1234567Z", 123456),
            ("2024-05-14 10:20:30.12", 120000),
        ],
    )
    def test_fractional_seconds_of_any_precision(self, raw, microsecond):
        stamp = HybridDateTime.parse(raw)
        assert stamp.date_time.microsecond == microsecond
        assert stamp.date_time.second == 30

    def test_invalid_text(self):
        with pytest.raises(ValueError):
            HybridDateTime.parse("not a date")

    def test_counter_orders_equal_times(self):
        when = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert HybridDateTime(when, 1) > HybridDateTime(when, 0)
        assert HybridDateTime(when + timedelta(seconds=1), 0) > HybridDateTime(when, 99)

    def test_format(self):
        stamp = HybridDateTime(datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc))
        assert stamp.format("%Y-%m-%d %H:%M:%S") == "2024-02-03 04:05:06"


class TestCommit:
    def test_change_entities_start_empty_and_are_not_shared(self):
        stamp = HybridDateTime(datetime(2024, 1, 1, tzinfo=timezone.utc))
        a = Commit(id="a", hash="ha", hybrid_date_time=stamp)
        b = Commit(id="b", hash="hb", hybrid_date_time=stamp)

        assert a.change_entities == []
        assert a.change_entities is not b.change_entities

    def test_short_hash(self):
        stamp = HybridDateTime(datetime(2024, 1, 1, tzinfo=timezone.utc))
        commit = Commit(id="a", hash="0123456789abcdef", hybrid_date_time=stamp)
        assert commit.short_hash == "0123456789ab"
