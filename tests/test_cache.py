"""
Tests for the LRU cache, batch transposition and configuration.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from chord_transposer.config import CONFIG_DIR_ENV, Config, get_config
from chord_transposer.core.batch_processor import BatchJobStatus, BatchTransposer
from chord_transposer.core.cache import LRUCache
from chord_transposer.core.fifths import Accidental, AccidentalPreference
from chord_transposer.core.quality import NotationStyle


class TestLRUCache:
    """Tests for LRUCache."""

    def test_get_put(self):
        """Test storing and reading values."""
        cache = LRUCache(4)
        cache.put("a", 1)

        assert cache.get("a") == 1
        assert cache.get("missing") is None
        assert cache.get("missing", "default") == "default"
        assert "a" in cache
        assert len(cache) == 1

    def test_update_existing(self):
        """Putting an existing key replaces its value."""
        cache = LRUCache(4)
        cache.put("a", 1)
        cache.put("a", 2)

        assert cache.get("a") == 2
        assert len(cache) == 1

    def test_evicts_least_recently_used(self):
        """The entry used longest ago goes first."""
        cache = LRUCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")
        cache.put("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert cache.stats().evictions == 1

    def test_ttl_expiry(self, monkeypatch):
        """Entries expire after their time-to-live."""
        clock = [100.0]
        monkeypatch.setattr(time, "monotonic", lambda: clock[0])

        cache = LRUCache(4, ttl=10)
        cache.put("a", 1)

        clock[0] = 105.0
        assert cache.get("a") == 1

        clock[0] = 111.0
        assert "a" not in cache
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_stats(self):
        """Test hit and miss counters."""
        cache = LRUCache(4)
        assert cache.stats().hit_rate == 0.0

        cache.put("a", 1)
        cache.get("a")
        cache.get("b")

        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.size == 1
        assert stats.max_size == 4
        assert stats.hit_rate == 0.5

    def test_clear(self):
        """Clearing drops entries and counters."""
        cache = LRUCache(4)
        cache.put("a", 1)
        cache.get("a")
        cache.clear()

        assert len(cache) == 0
        assert cache.stats().hits == 0

    def test_invalid_settings(self):
        """Size and TTL must be positive."""
        with pytest.raises(ValueError):
            LRUCache(0)
        with pytest.raises(ValueError):
            LRUCache(4, ttl=0)

    def test_concurrent_access(self):
        """Many threads can share one cache."""
        cache = LRUCache(16)

        def work(i):
            cache.put(i % 50, i)
            cache.get((i * 7) % 50)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(work, range(1000)))

        stats = cache.stats()
        assert len(cache) == 16
        assert stats.hits + stats.misses == 1000


class TestBatchTransposer:
    """Tests for BatchTransposer."""

    def make_batch(self, **kwargs):
        batch = BatchTransposer(**kwargs)
        batch.add_sheet("one", "{key: C}\n[C]la [G]la")
        batch.add_sheet("two", "[A]x [E7]y", "A")
        batch.add_sheet("none", "just words")
        return batch

    def test_process_sync(self):
        """Test a sequential batch."""
        batch = self.make_batch(max_workers=1)
        result = batch.process_sync("D", cache=None)

        assert result.total_items == 3
        assert result.completed == 2
        assert result.failed == 1
        assert result.success_rate == pytest.approx(2 / 3)
        assert result.warning_count == 0

        one, two, none = batch.items
        assert one.result.text == "{key: C}\n[D]la [A]la"
        assert two.result.text == "[D]x [A7]y"
        assert none.status == BatchJobStatus.FAILED
        assert "No source key" in none.error_message

    def test_parallel(self):
        """Test a batch with several workers."""
        batch = BatchTransposer(max_workers=4)
        for i in range(10):
            batch.add_sheet(f"sheet{i}", "[G]a [C]b [D7]c", "G")

        result = batch.process_sync("A", cache=None)

        assert result.completed == 10
        assert all(item.result.text == "[A]a [D]b [E7]c" for item in batch.items)

    def test_callbacks(self):
        """Progress callbacks fire per item and once per job."""
        started, completed, jobs = [], [], []
        batch = self.make_batch(max_workers=1)
        batch.set_callbacks(
            on_item_started=lambda i, item: started.append(i),
            on_item_completed=lambda i, item: completed.append(item.status),
            on_job_completed=jobs.append,
        )

        batch.process_sync("D", cache=None)

        assert started == [0, 1, 2]
        assert completed == [BatchJobStatus.COMPLETED, BatchJobStatus.COMPLETED, BatchJobStatus.FAILED]
        assert len(jobs) == 1

    def test_cancel(self):
        """Items not yet started are cancelled."""
        batch = self.make_batch(max_workers=1)
        batch.set_callbacks(on_item_started=lambda i, item: batch.cancel())

        result = batch.process_sync("D", cache=None)

        assert result.completed == 1
        assert result.cancelled == 2
        assert not batch.is_running

    def test_failing_started_callback(self):
        """A callback that raises fails its item without killing the job."""
        def boom(i, item):
            raise RuntimeError("ui callback failed")

        batch = self.make_batch(max_workers=1)
        batch.set_callbacks(on_item_started=boom)
        result = batch.process_sync("D", cache=None)

        assert result.total_items == 3
        assert result.failed == 3
        assert all(item.status == BatchJobStatus.FAILED for item in batch.items)
        assert all(item.error_message == "ui callback failed" for item in batch.items)
        assert not batch.is_running

        batch.set_callbacks()
        assert batch.process_sync("D", cache=None).completed == 2

    def test_failing_completed_callback(self):
        """Errors in the completed callbacks do not change item results."""
        def boom(*args):
            raise RuntimeError("ui callback failed")

        batch = self.make_batch(max_workers=2)
        batch.set_callbacks(on_item_completed=boom, on_job_completed=boom)
        result = batch.process_sync("D", cache=None)

        assert result.completed == 2
        assert result.failed == 1
        assert batch.items[0].result.text == "{key: C}\n[D]la [A]la"
        assert not batch.is_running

    def test_process_sync_while_running(self):
        """A second synchronous run is refused while one is in progress."""
        batch = self.make_batch(max_workers=1)
        batch._is_running = True
        with pytest.raises(RuntimeError):
            batch.process_sync("D", cache=None)

    def test_files(self, tmp_path):
        """Sheets can be read from and written to files."""
        song = tmp_path / "song.cho"
        song.write_text("{key: E}\n[E]hey [B7]ho\n", encoding="utf-8")

        batch = BatchTransposer(max_workers=1)
        batch.add_files([song])
        batch.set_output_directory(tmp_path / "out", ".txt")
        result = batch.process_sync("F", cache=None)

        assert result.completed == 1
        output = tmp_path / "out" / "song.txt"
        assert output.read_text(encoding="utf-8") == "{key: E}\n[F]hey [C7]ho\n"

    def test_default_workers_from_config(self):
        """Test that max_workers falls back to the config."""
        assert BatchTransposer().max_workers == get_config().batch.max_workers

    def test_clear(self):
        """Test removing all items."""
        batch = self.make_batch()
        batch.clear()
        assert batch.items == []


class TestConfig:
    """Tests for Config."""

    def test_defaults(self, tmp_path):
        """A missing file gives default settings."""
        config = Config.load(tmp_path)

        assert config.resolver.default_preference == "auto"
        assert config.resolver.tritone_default == "sharp"
        assert config.output.notation_style == "source"
        assert config.cache.enabled is True

    def test_save_and_load(self, tmp_path):
        """Saved settings are read back."""
        config = Config(_config_dir=tmp_path)
        config.resolver.default_preference = "flat"
        config.cache.max_entries = 64
        config.batch.max_workers = 3
        config.save()

        assert config.config_file.exists()
        loaded = Config.load(tmp_path)
        assert loaded.resolver.default_preference == "flat"
        assert loaded.cache.max_entries == 64
        assert loaded.batch.max_workers == 3

    def test_corrupt_file(self, tmp_path):
        """An unreadable file falls back to defaults."""
        (tmp_path / "config.json").write_text("{not json")
        config = Config.load(tmp_path)
        assert config.resolver.default_preference == "auto"

    def test_engine_values(self, tmp_path):
        """Test conversion of settings to engine values."""
        config = Config(_config_dir=tmp_path)
        config.resolver.default_preference = "flat"
        config.resolver.tritone_default = "flat"
        config.output.notation_style = "jazz"

        assert config.enharmonic_preference().default is AccidentalPreference.FLAT
        assert config.tie_default() is Accidental.FLAT
        assert config.notation_style() is NotationStyle.JAZZ

    def test_invalid_tritone_default(self, tmp_path):
        """The tritone fallback must be sharp or flat."""
        config = Config(_config_dir=tmp_path)
        config.resolver.tritone_default = "natural"
        with pytest.raises(ValueError):
            config.tie_default()

    def test_config_dir_from_environment(self, monkeypatch, tmp_path):
        """The config directory can be set through the environment."""
        monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path / "elsewhere"))
        assert Config().config_file == Path(tmp_path / "elsewhere" / "config.json")
