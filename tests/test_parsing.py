"""Tests for line tokenizing, timestamp parsing and the recency scan."""

import random
from datetime import datetime, timedelta

import pytest

from pynetlogon import LogParseError, LogRecord, parse_line, parse_timestamp, scan_lines


class TestParseLine:
    def test_maps_fields_by_position(self, now, make_line):
        line = make_line(datetime(2026, 10, 17, 9, 12, 44), "10.0.0.5")
        record = parse_line(line, now=now)

        assert record == LogRecord(
            date=datetime(2026, 10, 17, 9, 12, 44),
            client="WKS01",
            domain="CONTOSO",
            error="NO_CLIENT_SITE:",
            user="jdoe",
            ip_address="10.0.0.5",
        )

    def test_irregular_spacing_keeps_fields_aligned(self, now):
        line = "10/17  09:12:44 [1234]   WKS01 CONTOSO  NO_CLIENT_SITE: jdoe\t10.0.0.5\r\n"
        record = parse_line(line, now=now)

        assert record.client == "WKS01"
        assert record.user == "jdoe"
        assert record.ip_address == "10.0.0.5"

    def test_too_few_tokens(self, now):
        with pytest.raises(LogParseError, match="at least 8 tokens"):
            parse_line("10/17 09:12:44 [1234] NO_CLIENT_SITE: 10.0.0.5", now=now)

    def test_unparseable_timestamp(self, now):
        with pytest.raises(LogParseError, match="bad timestamp"):
            parse_line("yesterday 09:12:44 [1234] WKS01 CONTOSO NO_CLIENT_SITE: jdoe 10.0.0.5", now=now)

    def test_record_is_immutable(self, now, make_line):
        record = parse_line(make_line(now, "10.0.0.5"), now=now)
        with pytest.raises(AttributeError):
            record.ip_address = "10.0.0.6"

    def test_as_row_uses_report_columns(self, now, make_line):
        record = parse_line(make_line(datetime(2026, 10, 17, 9, 12, 44), "10.0.0.5"), now=now)
        assert record.as_row() == {
            "Date": "2026-10-17 09:12:44",
            "Client": "WKS01",
            "User": "jdoe",
            "Domain": "CONTOSO",
            "Error": "NO_CLIENT_SITE:",
            "IPAddress": "10.0.0.5",
        }


class TestParseTimestamp:
    def test_assumes_current_year(self, now):
        ts = parse_timestamp(["10/17", "09:12:44"], "%m/%d %H:%M:%S", now)
        assert ts == datetime(2026, 10, 17, 9, 12, 44)

    def test_rolls_back_over_new_year(self):
        now = datetime(2026, 1, 1, 0, 30)
        ts = parse_timestamp(["12/31", "23:00:00"], "%m/%d %H:%M:%S", now)
        assert ts == datetime(2025, 12, 31, 23, 0, 0)

    def test_allows_small_clock_skew(self, now):
        ts = parse_timestamp(["10/18", "18:00:00"], "%m/%d %H:%M:%S", now)
        assert ts.year == 2026

    def test_format_with_year(self, now):
        ts = parse_timestamp(["2024-02-29", "10:00:00"], "%Y-%m-%d %H:%M:%S", now)
        assert ts == datetime(2024, 2, 29, 10, 0, 0)

    def test_single_token_format(self, now):
        ts = parse_timestamp(["10/17", "ignored"], "%m/%d", now)
        assert ts == datetime(2026, 10, 17)


class TestScanLines:
    def test_three_of_five_newest_first(self, now, make_line, days_ago):
        lines = [
            make_line(days_ago(10), "10.0.0.1"),
            make_line(days_ago(8), "10.0.0.2"),
            make_line(days_ago(5), "10.0.0.3"),
            make_line(days_ago(3), "10.0.0.4"),
            make_line(days_ago(1), "10.0.0.5"),
        ]
        records, malformed = scan_lines(lines, days_ago(7), now=now)

        assert [r.ip_address for r in records] == ["10.0.0.5", "10.0.0.4", "10.0.0.3"]
        assert malformed == 0

    def test_stops_at_first_stale_line(self, now, make_line, days_ago):
        # An out-of-order fresh line above a stale one is never reached
        lines = [
            make_line(days_ago(1), "10.0.0.9"),
            make_line(days_ago(10), "10.0.0.1"),
            make_line(days_ago(1), "10.0.0.5"),
        ]
        records, _ = scan_lines(lines, days_ago(7), now=now)
        assert [r.ip_address for r in records] == ["10.0.0.5"]

    def test_line_at_cutoff_is_kept(self, now, make_line):
        cutoff = datetime(2026, 10, 11, 12, 0, 0)
        records, _ = scan_lines([make_line(cutoff, "10.0.0.1")], cutoff, now=now)
        assert len(records) == 1

    def test_malformed_lines_are_skipped_and_counted(self, now, make_line, days_ago):
        lines = [
            make_line(days_ago(2), "10.0.0.1"),
            "10/17 09:12:44 NO_CLIENT_SITE: truncated",
            "??/?? 09:12:44 [1] WKS02 CONTOSO NO_CLIENT_SITE: jdoe 10.0.0.2",
            make_line(days_ago(1), "10.0.0.3"),
        ]
        records, malformed = scan_lines(lines, days_ago(7), now=now)

        assert [r.ip_address for r in records] == ["10.0.0.3", "10.0.0.1"]
        assert malformed == 2

    def test_marker_filters_other_events(self, now, make_line, days_ago):
        lines = [
            make_line(days_ago(2), "10.0.0.1"),
            make_line(days_ago(1), "10.0.0.2", error="SITE_CHANGED:"),
        ]
        records, _ = scan_lines(lines, days_ago(7), now=now)
        assert [r.ip_address for r in records] == ["10.0.0.1"]

        records, _ = scan_lines(lines, days_ago(7), marker="", now=now)
        assert len(records) == 2

    def test_blank_lines_ignored(self, now, make_line, days_ago):
        lines = [make_line(days_ago(1), "10.0.0.1"), "", "   "]
        records, malformed = scan_lines(lines, days_ago(7), now=now)
        assert len(records) == 1
        assert malformed == 0

    def test_matches_forward_filter_on_sorted_input(self, now, make_line):
        rng = random.Random(42)
        cutoff = now - timedelta(days=7)
        for _ in range(20):
            stamps = sorted(now - timedelta(minutes=rng.randint(0, 60 * 24 * 14)) for _ in range(30))
            lines = [make_line(ts, f"10.0.{i // 256}.{i % 256}") for i, ts in enumerate(stamps)]

            records, _ = scan_lines(lines, cutoff, now=now)
            expected = [parse_line(line, now=now) for line in lines]
            expected = [r for r in expected if r.date >= cutoff]

            assert set(records) == set(expected)
            assert records == list(reversed(expected))
