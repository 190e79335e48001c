"""
Tests for the background workers' queue protocol.
"""

from queue import Queue
from unittest.mock import MagicMock

from grammarfix.ui.workers import DownloadWorker, InferenceWorker


def drain(queue):
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


class TestDownloadWorker:

    def test_reports_result(self):
        session = MagicMock()
        session.download_model.return_value = True
        queue = Queue()

        worker = DownloadWorker(session, queue)
        worker.start()
        worker.join(timeout=5)

        assert drain(queue) == [('download_finished', True)]
        assert worker.daemon

    def test_unexpected_error(self):
        session = MagicMock()
        session.download_model.side_effect = RuntimeError("disk gone")
        queue = Queue()

        worker = DownloadWorker(session, queue)
        worker.start()
        worker.join(timeout=5)

        assert drain(queue) == [('error', "Download failed: disk gone")]

    def test_stop_cancels_download(self):
        session = MagicMock()
        DownloadWorker(session, Queue()).stop()
        session.cancel_download.assert_called_once()


class TestInferenceWorker:

    def test_finished_with_stats(self):
        session = MagicMock()
        session.run_task.return_value = None
        queue = Queue()

        worker = InferenceWorker(session, queue, "adjust-tone", "hello", tone="friendly")
        worker.start()
        worker.join(timeout=5)

        session.run_task.assert_called_once_with("adjust-tone", "hello", tone="friendly")
        assert drain(queue) == [('task_finished', session.last_stats)]

    def test_rejected(self):
        session = MagicMock()
        session.run_task.return_value = "Please enter some text"
        queue = Queue()

        worker = InferenceWorker(session, queue, "fix-grammar", " ")
        worker.start()
        worker.join(timeout=5)

        assert drain(queue) == [('rejected', "Please enter some text")]
