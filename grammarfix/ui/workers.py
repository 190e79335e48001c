"""
Background Workers Module

Threads that keep slow session calls off the Tk main loop:
- DownloadWorker: Fetches the model file (local backend)
- InferenceWorker: Runs one writing task against the backend

Workers never touch widgets. State changes reach the window as
('status', StatusSnapshot) messages from the tracker listener; workers add
their own completion messages:

    ('download_finished', bool)      model ready after the download
    ('task_finished', GenerationStats | None)
    ('rejected', str)                request refused before it started
    ('error', str)                   unexpected failure
"""

import threading
import traceback
from queue import Queue

from grammarfix.logging_config import debug_log, error
from grammarfix.session import GrammarFixSession


class DownloadWorker(threading.Thread):
    """
    Background download of the model file.

    Attributes:
        session: Session that owns the downloader and the tracker
        ui_queue: Queue for communication with the main UI thread
    """

    def __init__(self, session: GrammarFixSession, ui_queue: Queue):
        super().__init__(daemon=True)
        self.session = session
        self.ui_queue = ui_queue

    def stop(self):
        """Ask the downloader to abort; the worker reports the cancellation."""
        debug_log("[DOWNLOAD WORKER] Stop signal received.")
        self.session.cancel_download()

    def run(self):
        try:
            ready = self.session.download_model()
            self.ui_queue.put(('download_finished', ready))
        except Exception as e:
            error(f"[DOWNLOAD WORKER] Unexpected failure: {e}", exc_info=True)
            debug_log(traceback.format_exc())
            self.ui_queue.put(('error', f"Download failed: {e}"))


class InferenceWorker(threading.Thread):
    """
    Background run of a single writing task.

    Attributes:
        session: Session that builds and dispatches the request
        ui_queue: Queue for communication with the main UI thread
        task_id: Writing task to run
        text: User input
        tone: Target tone (adjust-tone only)
    """

    def __init__(self, session: GrammarFixSession, ui_queue: Queue, task_id: str, text: str, tone: str = None):
        super().__init__(daemon=True)
        self.session = session
        self.ui_queue = ui_queue
        self.task_id = task_id
        self.text = text
        self.tone = tone

    def run(self):
        debug_log(f"[INFERENCE WORKER] Starting {self.task_id} ({len(self.text)} chars)")
        try:
            problem = self.session.run_task(self.task_id, self.text, tone=self.tone)
        except Exception as e:
            error(f"[INFERENCE WORKER] Unexpected failure: {e}", exc_info=True)
            self.ui_queue.put(('error', str(e)))
            return

        if problem:
            self.ui_queue.put(('rejected', problem))
        else:
            self.ui_queue.put(('task_finished', self.session.last_stats))
