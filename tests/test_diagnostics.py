"""
Tests for metrics and log formatting
"""

import json
import logging

import pytest

from lensware.diagnostics import AnnotationFormatter, Metrics


class TestMetrics:

    def test_track_counts_calls_and_errors(self):
        metrics = Metrics()
        with metrics.track("translate.google"):
            pass
        with pytest.raises(RuntimeError):
            with metrics.track("translate.google"):
                raise RuntimeError("offline")

        stats = metrics.get_stats("translate.google")
        assert stats["processed"] == 2
        assert stats["errors"] == 1
        assert stats["avg_time"] >= 0

    def test_record_values(self):
        metrics = Metrics()
        for value in (1.0, 2.0, 3.0):
            metrics.record("annotations", value)

        stats = metrics.get_stats("annotations")
        assert stats["count"] == 3
        assert stats["mean"] == 2.0
        assert metrics.get_stats("unknown") == {}

    def test_export_and_reset(self):
        metrics = Metrics()
        with metrics.track("pipeline.frame"):
            pass

        exported = json.loads(metrics.export_json())
        assert exported["pipeline.frame"]["processed"] == 1

        metrics.reset()
        assert metrics.get_all_stats() == {}


class TestAnnotationFormatter:

    def test_prefixes_frame_and_entity(self):
        record = logging.LogRecord("lensware", logging.INFO, __file__, 1, "applied", None, None)
        record.entity = "face-1"
        record.frame_num = 12

        assert AnnotationFormatter("%(message)s").format(record) == "Frame[12] [face-1] applied"
