"""
Unit tests for watermark storage.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
import redis

from parcel_notifier.storage.redis_kv import RedisWatermarkStore
from parcel_notifier.storage.watermark import (
    FileWatermarkStore,
    InMemoryWatermarkStore,
    WatermarkError,
    default_watermark,
    format_watermark,
    parse_watermark,
)


JST = timezone(timedelta(hours=9), "JST")


class TestFormat:
    """Tests for the watermark text format."""

    def test_parse_known_string(self):
        parsed = parse_watermark("2026-10-19 09:00:00 +0900 JST")
        assert parsed == datetime(2026, 10, 19, 0, 0, 0, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(hours=9)

    def test_format_shape(self, watermark):
        parts = format_watermark(watermark).split(" ")
        assert len(parts) >= 4
        datetime.strptime(parts[0], "%Y-%m-%d")
        datetime.strptime(parts[1], "%H:%M:%S")
        assert parts[2][0] in "+-" and len(parts[2]) == 5

    def test_format_then_parse_same_instant(self, watermark):
        assert parse_watermark(format_watermark(watermark)) == watermark

    def test_format_drops_sub_second(self):
        w = datetime(2026, 10, 1, 12, 0, 0, 750000, tzinfo=timezone.utc)
        assert parse_watermark(format_watermark(w)) == w.replace(microsecond=0)

    def test_format_rejects_naive(self):
        with pytest.raises(WatermarkError):
            format_watermark(datetime(2026, 10, 1, 12, 0, 0))

    def test_trailing_newline_tolerated(self):
        assert parse_watermark("2026-10-19 09:00:00 +0900 JST\n").utcoffset() == timedelta(hours=9)

    @pytest.mark.parametrize("raw", [
        "",
        "2026-10-19 09:00:00 +0900",
        "2026-10-19T09:00:00+09:00",
        "2026-10-19 09:00:00.123 +0900 JST",
        "2026-10-19 09:00:00 +09:00 JST",
        "19/10/2026 09:00:00 +0900 JST",
        "garbage",
    ])
    def test_parse_rejects_drift(self, raw):
        with pytest.raises(WatermarkError):
            parse_watermark(raw)


class TestDefaultWatermark:
    def test_lookback_from_now(self):
        now = datetime(2026, 10, 19, 12, 30, 15, 999999, tzinfo=timezone.utc)
        assert default_watermark(timedelta(hours=200), now=now) == datetime(
            2026, 10, 11, 4, 30, 15, tzinfo=timezone.utc
        )

    def test_default_uses_current_time(self):
        before = datetime.now(timezone.utc) - timedelta(hours=200, seconds=1)
        result = default_watermark()
        after = datetime.now(timezone.utc) - timedelta(hours=200)
        assert before <= result <= after
        assert result.microsecond == 0


class TestFileWatermarkStore:
    """Tests for the flat-file store."""

    def test_missing_file_returns_lookback_default(self, tmp_path):
        store = FileWatermarkStore(tmp_path / "time.txt")
        expected = datetime.now(timezone.utc) - timedelta(hours=200)
        assert abs(store.load() - expected) < timedelta(seconds=5)

    def test_missing_file_custom_lookback(self, tmp_path):
        store = FileWatermarkStore(tmp_path / "time.txt", lookback=timedelta(hours=1))
        expected = datetime.now(timezone.utc) - timedelta(hours=1)
        assert abs(store.load() - expected) < timedelta(seconds=5)

    def test_save_then_load(self, tmp_path, watermark):
        store = FileWatermarkStore(tmp_path / "time.txt")
        store.save(watermark)
        assert store.load() == watermark

    def test_save_overwrites(self, tmp_path, watermark):
        path = tmp_path / "time.txt"
        store = FileWatermarkStore(path)
        store.save(watermark)
        store.save(watermark + timedelta(hours=1))
        assert store.load() == watermark + timedelta(hours=1)
        assert len(path.read_text(encoding="utf-8").splitlines()) == 1

    def test_save_creates_parent_directory(self, tmp_path, watermark):
        store = FileWatermarkStore(tmp_path / "state" / "time.txt")
        store.save(watermark)
        assert (tmp_path / "state" / "time.txt").exists()

    def test_reads_string_written_elsewhere(self, tmp_path):
        path = tmp_path / "time.txt"
        path.write_text("2026-10-19 09:00:00 +0900 JST", encoding="utf-8")
        assert FileWatermarkStore(path).load() == datetime(2026, 10, 19, 9, 0, 0, tzinfo=JST)

    def test_corrupt_file_is_fatal(self, tmp_path):
        path = tmp_path / "time.txt"
        path.write_text("not a timestamp", encoding="utf-8")
        with pytest.raises(WatermarkError):
            FileWatermarkStore(path).load()

    def test_non_utf8_file_is_fatal(self, tmp_path):
        path = tmp_path / "time.txt"
        path.write_bytes(b"\xff\xfe garbage")
        with pytest.raises(WatermarkError):
            FileWatermarkStore(path).load()

    def test_unreadable_path_is_fatal(self, tmp_path):
        # A directory where the file should be
        path = tmp_path / "time.txt"
        path.mkdir()
        with pytest.raises(WatermarkError):
            FileWatermarkStore(path).load()

    def test_write_failure_is_fatal(self, tmp_path, watermark):
        path = tmp_path / "time.txt"
        path.mkdir()
        with pytest.raises(WatermarkError):
            FileWatermarkStore(path).save(watermark)


class TestInMemoryWatermarkStore:
    def test_initial_value(self, watermark):
        store = InMemoryWatermarkStore(watermark)
        assert store.load() == watermark

    def test_records_saves(self, watermark):
        store = InMemoryWatermarkStore(watermark)
        later = watermark + timedelta(minutes=5)
        store.save(later)
        assert store.load() == later
        assert store.saved == [later]


class TestRedisWatermarkStore:
    """Tests for the Redis store with a mocked client."""

    def test_missing_key_returns_lookback_default(self):
        client = Mock()
        client.get.return_value = None
        store = RedisWatermarkStore(client=client, lookback=timedelta(hours=200))
        expected = datetime.now(timezone.utc) - timedelta(hours=200)
        assert abs(store.load() - expected) < timedelta(seconds=5)
        client.get.assert_called_once_with("parcel_notifier:watermark")

    def test_save_stores_formatted_string(self, watermark):
        client = Mock()
        store = RedisWatermarkStore(key="wm", client=client)
        store.save(watermark)
        client.set.assert_called_once_with("wm", format_watermark(watermark))

    def test_load_parses_stored_string(self):
        client = Mock()
        client.get.return_value = "2026-10-19 09:00:00 +0900 JST"
        store = RedisWatermarkStore(client=client)
        assert store.load() == datetime(2026, 10, 19, 9, 0, 0, tzinfo=JST)

    def test_load_accepts_bytes(self):
        client = Mock()
        client.get.return_value = b"2026-10-19 09:00:00 +0900 JST"
        assert RedisWatermarkStore(client=client).load() == datetime(2026, 10, 19, 9, 0, 0, tzinfo=JST)

    def test_redis_errors_are_fatal(self, watermark):
        client = Mock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.ConnectionError("down")
        store = RedisWatermarkStore(client=client)
        with pytest.raises(WatermarkError):
            store.load()
        with pytest.raises(WatermarkError):
            store.save(watermark)

    def test_corrupt_value_is_fatal(self):
        client = Mock()
        client.get.return_value = "yesterday"
        with pytest.raises(WatermarkError):
            RedisWatermarkStore(client=client).load()

    def test_non_utf8_value_is_fatal(self):
        client = Mock()
        client.get.return_value = b"\xff\xfe garbage"
        with pytest.raises(WatermarkError):
            RedisWatermarkStore(client=client).load()
