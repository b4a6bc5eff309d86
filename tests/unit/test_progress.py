from __future__ import annotations

from unittest.mock import Mock, patch

from datascrub.services.progress import MonotonicProgress, ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True
    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_monotonic_progress_never_decreases():
    calls = []
    progress = MonotonicProgress(lambda p, label: calls.append((p, label)))
    progress(10, "read")
    progress(55, "process")
    progress(30, "read")  # 読み込み側が遅れて報告
    progress(150, "done")
    assert [p for p, _ in calls] == [10, 55, 55, 100]
    assert calls[2][1] == "read"
    assert progress.percent == 100


def test_monotonic_progress_without_sink():
    progress = MonotonicProgress()
    progress(42, "x")
    assert progress.percent == 42 and progress.label == "x"


class TestProgressTracker:
    def test_init_with_tty_enabled(self):
        with patch("datascrub.services.progress.is_tty_enabled", return_value=True), \
             patch("datascrub.services.progress.tqdm") as mock_tqdm:
            tracker = ProgressTracker(description="orders.csv")
            assert tracker.enabled is True
            mock_tqdm.assert_called_once()
            kwargs = mock_tqdm.call_args.kwargs
            assert kwargs["total"] == 100
            assert kwargs["desc"] == "orders.csv"
            assert kwargs["ascii"] is True

    def test_init_with_tty_disabled(self):
        with patch("datascrub.services.progress.is_tty_enabled", return_value=False):
            tracker = ProgressTracker()
            assert tracker.enabled is False
            assert tracker.pbar is None
            tracker(50, "ignored")  # no-op
            tracker.close()

    def test_call_updates_bar(self):
        mock_pbar = Mock()
        with patch("datascrub.services.progress.is_tty_enabled", return_value=True), \
             patch("datascrub.services.progress.tqdm", return_value=mock_pbar):
            tracker = ProgressTracker()
            tracker(37.25, "Processing... 10 rows")
            assert mock_pbar.n == 37.2
            mock_pbar.set_postfix_str.assert_called_once_with("Processing... 10 rows", refresh=False)
            mock_pbar.refresh.assert_called_once()

    def test_context_manager_closes(self):
        mock_pbar = Mock()
        with patch("datascrub.services.progress.is_tty_enabled", return_value=True), \
             patch("datascrub.services.progress.tqdm", return_value=mock_pbar):
            with ProgressTracker() as tracker:
                assert tracker.pbar is mock_pbar
            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
