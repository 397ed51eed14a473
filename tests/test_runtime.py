"""Tests for the per-run infrastructure."""

import io
import logging
import threading
from unittest.mock import patch

import pytest

from contracts import GapforgeError
from logging_config import get_logger, setup_logging
from runtime import ParseCache, RunContext, atomic_write_text, map_bounded


class TestParseCache:
    """Test the LRU parse cache."""

    def test_lru_eviction(self):
        cache = ParseCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        assert cache.get("a") == 1
        cache.put("c", 3)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert len(cache) == 2
        assert (cache.hits, cache.misses) == (2, 1)

    def test_get_or_parse(self, tmp_path):
        path = tmp_path / "a.py"
        path.write_text("x = 1\n", encoding="utf-8")
        cache = ParseCache()
        calls = []

        def parse(p):
            calls.append(p)
            return p.read_text(encoding="utf-8")

        assert cache.get_or_parse(path, parse) == "x = 1\n"
        assert cache.get_or_parse(path, parse) == "x = 1\n"
        assert len(calls) == 1
        assert cache.hits == 1

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            ParseCache().get_or_parse(tmp_path / "missing.py", lambda p: None)


class TestRunContext:
    """Test warnings and the soft deadline."""

    def test_warn_and_warn_error(self):
        context = RunContext(run_id="run_test")
        context.warn("code-index", "unreadable", path="a.py", code="GAP_DETECTION_ERROR")
        context.warn_error("export", GapforgeError("boom"))
        assert [(w.stage, w.code) for w in context.warnings] == [
            ("code-index", "GAP_DETECTION_ERROR"),
            ("export", "GAPFORGE_ERROR"),
        ]
        assert context.run_id == "run_test"

    def test_warnings_are_a_copy(self):
        context = RunContext()
        context.warnings.append("x")
        assert context.warnings == []

    def test_mark_partial_warns_once(self):
        context = RunContext()
        context.mark_partial("code-index")
        context.mark_partial("brainstorm")
        assert context.partial
        assert [w.code for w in context.warnings] == ["PARTIAL_RESULT"]
        assert context.warnings[0].stage == "code-index"

    def test_deadline(self):
        assert not RunContext(deadline_seconds=60).expired
        expired = RunContext(deadline_seconds=1e-9)
        assert expired.expired
        assert expired.remaining_seconds == 0.0

    def test_overrides(self):
        context = RunContext(file_workers=2, provider_workers=1, provider_timeout_seconds=5, cache_size=8)
        assert (context.file_workers, context.provider_workers, context.provider_timeout_seconds) == (2, 1, 5)
        assert context.cache.max_entries == 8

    def test_contexts_do_not_share_state(self):
        first, second = RunContext(), RunContext()
        first.warn("x", "only here")
        assert second.warnings == []
        assert first.cache is not second.cache


class TestMapBounded:
    """Test the bounded worker pool."""

    def test_results_in_input_order(self):
        assert map_bounded(lambda n: n * n, [3, 1, 2], RunContext(), stage="test") == [9, 1, 4]

    def test_empty(self):
        assert map_bounded(lambda n: n, [], RunContext(), stage="test") == []

    def test_exceptions_propagate(self):
        def boom(n):
            raise ValueError(n)

        with pytest.raises(ValueError):
            map_bounded(boom, [1], RunContext(), stage="test")

    def test_expired_context_returns_nothing(self):
        context = RunContext(deadline_seconds=1e-9)
        assert map_bounded(lambda n: n, [1, 2], context, stage="test") == []
        assert context.partial

    def test_deadline_keeps_finished_results(self):
        release = threading.Event()

        def work(n):
            if n == 2:
                release.wait(5)
            return n

        context = RunContext(deadline_seconds=0.3, file_workers=2)
        try:
            results = map_bounded(work, [1, 2], context, stage="test")
        finally:
            release.set()
        assert results == [1]
        assert context.partial


class TestAtomicWrite:
    """Test atomic file replacement."""

    def test_writes_and_creates_parents(self, tmp_path):
        target = atomic_write_text(tmp_path / "out" / "roadmap.md", "# Roadmap\n")
        assert target.read_text(encoding="utf-8") == "# Roadmap\n"

    def test_failure_keeps_previous_file(self, tmp_path):
        target = tmp_path / "roadmap.md"
        target.write_text("old", encoding="utf-8")
        with patch("runtime.atomic.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_write_text(target, "new")
        assert target.read_text(encoding="utf-8") == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["roadmap.md"]


class TestLogging:
    """Test logging setup."""

    def test_setup_logging_replaces_handlers(self):
        stream = io.StringIO()
        setup_logging("DEBUG", stream=stream)
        setup_logging("DEBUG", stream=stream)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        get_logger("gapforge.test").debug("hello")
        assert "hello" in stream.getvalue()
        assert "DEBUG" in stream.getvalue()
        setup_logging("WARNING")
