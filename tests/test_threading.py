"""Tests for worker-count helpers"""
from unittest.mock import patch

from grovr.utils.threading import get_optimal_worker_count


class TestGetOptimalWorkerCount:
    def test_user_specified(self):
        assert get_optimal_worker_count(3) == 3

    def test_non_positive_is_auto(self):
        assert get_optimal_worker_count(0) >= 1

    @patch("grovr.utils.threading.is_free_threading_enabled", return_value=False)
    @patch("grovr.utils.threading.os.cpu_count", return_value=4)
    def test_gil_build(self, _cpu, _ft):
        assert get_optimal_worker_count() == 8

    @patch("grovr.utils.threading.is_free_threading_enabled", return_value=True)
    @patch("grovr.utils.threading.os.cpu_count", return_value=4)
    def test_free_threading_build(self, _cpu, _ft):
        assert get_optimal_worker_count() == 8
        assert get_optimal_worker_count(cap=6) == 6

    @patch("grovr.utils.threading.os.cpu_count", return_value=None)
    def test_unknown_cpu_count(self, _cpu):
        assert get_optimal_worker_count(cap=2) == 2
