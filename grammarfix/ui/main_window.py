"""
GrammarFix - Main Window (CustomTkinter)

Single-screen writing assistant:
- Status card: model state, progress bar, download/cancel buttons
- Input panel: text box + Fix Grammar / Rewrite / Adjust Tone / Reader Reaction
- Output panel: read-only streamed result
- Status bar: text statistics, generation statistics, CPU/RAM, timer

Architecture:
    GrammarFixWindow inherits from:
    - WindowLayoutMixin: widget creation (_create_header, _create_status_card, ...)
    - ctk.CTk: CustomTkinter main window base class

    All state lives in GrammarFixSession / ModelStateTracker. Worker threads
    post messages to a queue; this window drains it on the Tk thread and
    re-renders from the latest StatusSnapshot.
"""

import time
from queue import Empty, Queue
from tkinter import messagebox

import customtkinter as ctk

from grammarfix.ai import InferenceDispatcher, create_backend
from grammarfix.config import BACKEND_LOCAL, DEBUG_MODE, QUEUE_POLL_INTERVAL_MS
from grammarfix.download_manager import ModelDownloader
from grammarfix.logging_config import debug_log, info
from grammarfix.model_state import ModelStateTracker, StatusSnapshot
from grammarfix.prompting import TASK_ADJUST_TONE, WRITING_TASKS
from grammarfix.session import GrammarFixSession
from grammarfix.ui.text_stats import compute_text_stats, format_generation_stats, format_text_stats
from grammarfix.ui.window_layout import WindowLayoutMixin
from grammarfix.ui.workers import DownloadWorker, InferenceWorker


class GrammarFixWindow(WindowLayoutMixin, ctk.CTk):
    """
    Main application window for GrammarFix.

    Args:
        backend_name: 'local' or 'ollama'
        session: Pre-built session (tests and embedding); built from
                 backend_name when omitted
    """

    def __init__(self, backend_name: str = BACKEND_LOCAL, session: GrammarFixSession = None):
        super().__init__()

        self.title("GrammarFix")
        self.geometry("1100x700")
        self.minsize(800, 550)

        self.backend_name = backend_name

        # Worker communication
        self._ui_queue: Queue = Queue()
        self._queue_poll_id: str | None = None
        self._download_worker: DownloadWorker | None = None
        self._inference_worker: InferenceWorker | None = None

        # Render state
        self._snapshot = StatusSnapshot(backend=backend_name)
        self._active_task: str | None = None
        self._processing_start_time: float | None = None
        self._timer_after_id: str | None = None

        if session is None:
            tracker = ModelStateTracker(backend_name, listener=self._post_snapshot)
            dispatcher = InferenceDispatcher(create_backend(backend_name))
            session = GrammarFixSession(backend_name, tracker, dispatcher, downloader=ModelDownloader())
        else:
            session.tracker.listener = self._post_snapshot
        self.session = session

        # Build UI
        self._create_header()
        self._create_status_card()
        self._create_main_panels()
        self._create_status_bar()

        size_mb = self.session.model_config.get('approx_size_mb')
        if size_mb:
            self.download_btn.configure(text=f"Download Model (~{size_mb} MB)")

        self._poll_queue()
        self.session.initialize()

        if DEBUG_MODE:
            debug_log(f"[MainWindow] Initialized with backend '{backend_name}'")

    # =========================================================================
    # Queue handling
    # =========================================================================

    def _post_snapshot(self, snapshot: StatusSnapshot):
        """Tracker listener; may run on a worker thread."""
        self._ui_queue.put(('status', snapshot))

    def _poll_queue(self):
        """Drain worker messages, then reschedule."""
        try:
            while True:
                msg_type, data = self._ui_queue.get_nowait()
                self._handle_queue_message(msg_type, data)
        except Empty:
            pass

        self._queue_poll_id = self.after(QUEUE_POLL_INTERVAL_MS, self._poll_queue)

    def _handle_queue_message(self, msg_type: str, data):
        """Handle a message from the worker queue."""
        if msg_type == "status":
            self._apply_snapshot(data)

        elif msg_type == "download_finished":
            self._stop_timer()
            if data:
                info("Model downloaded and ready")

        elif msg_type == "task_finished":
            self._stop_timer()
            self._active_task = None
            self.generation_stats_label.configure(text=format_generation_stats(data))
            self._apply_snapshot(self._snapshot)

        elif msg_type == "rejected":
            self._stop_timer()
            self._active_task = None
            self._apply_snapshot(self._snapshot)
            messagebox.showwarning("GrammarFix", data)

        elif msg_type == "error":
            self._stop_timer()
            self._active_task = None
            self.status_label.configure(text=f"Error: {data}")
            messagebox.showerror("GrammarFix Error", str(data))

    # =========================================================================
    # Rendering
    # =========================================================================

    def _apply_snapshot(self, snapshot: StatusSnapshot):
        """Render a StatusSnapshot into the widgets."""
        previous = self._snapshot
        self._snapshot = snapshot

        self.status_label.configure(text=snapshot.status_message)
        self._render_progress(snapshot)
        self._render_download_controls(snapshot)

        self.input_box.configure(state="normal" if snapshot.is_model_ready else "disabled")

        button_state = "normal" if snapshot.can_submit else "disabled"
        for task_id, btn in self.task_buttons.items():
            if snapshot.is_processing and task_id == self._active_task:
                btn.configure(text="Processing...", state="disabled")
            else:
                btn.configure(text=WRITING_TASKS[task_id].label, state=button_state)
        self.tone_menu.configure(state=button_state)

        if snapshot.output_text != previous.output_text:
            self._set_output(snapshot.output_text)

        if snapshot.phase != previous.phase:
            debug_log(f"[MainWindow] Phase {previous.phase.value} -> {snapshot.phase.value}")

    def _render_progress(self, snapshot: StatusSnapshot):
        if not snapshot.show_progress_bar:
            self.progress_bar.stop()
            self.progress_bar.grid_remove()
            return

        self.progress_bar.grid(row=1, column=0, sticky="ew", padx=12, pady=(0, 10))
        value = snapshot.progress_value
        if value is None:
            if self.progress_bar.cget("mode") != "indeterminate":
                self.progress_bar.configure(mode="indeterminate")
                self.progress_bar.start()
        else:
            if self.progress_bar.cget("mode") != "determinate":
                self.progress_bar.stop()
                self.progress_bar.configure(mode="determinate")
            self.progress_bar.set(value)

    def _render_download_controls(self, snapshot: StatusSnapshot):
        if snapshot.show_download_button:
            self.download_btn.pack(side="left", padx=(0, 5))
        else:
            self.download_btn.pack_forget()

        if snapshot.is_downloading:
            self.cancel_btn.pack(side="left")
        else:
            self.cancel_btn.pack_forget()

    def _set_output(self, text: str):
        self.output_box.configure(state="normal")
        self.output_box.delete("1.0", "end")
        self.output_box.insert("1.0", text)
        self.output_box.see("end")
        self.output_box.configure(state="disabled")

    # =========================================================================
    # Actions
    # =========================================================================

    def _start_download(self):
        if self._download_worker and self._download_worker.is_alive():
            return
        self._start_timer()
        self._download_worker = DownloadWorker(self.session, self._ui_queue)
        self._download_worker.start()

    def _cancel_download(self):
        if self._download_worker and self._download_worker.is_alive():
            self._download_worker.stop()

    def _get_input_text(self) -> str:
        return self.input_box.get("1.0", "end-1c")

    def _selected_tone(self) -> str:
        return self.tone_menu.get().lower()

    def _run_task(self, task_id: str):
        """Validate and start a writing task in the background."""
        text = self._get_input_text()
        if self._inference_worker and self._inference_worker.is_alive():
            messagebox.showwarning("GrammarFix", "Please wait for the current request to finish")
            return

        problem = self.session.validate_request(text)
        if problem:
            messagebox.showwarning("GrammarFix", problem)
            return

        tone = self._selected_tone() if task_id == TASK_ADJUST_TONE else None
        self._active_task = task_id
        self.generation_stats_label.configure(text="")
        self._start_timer()

        self._inference_worker = InferenceWorker(self.session, self._ui_queue, task_id, text, tone=tone)
        self._inference_worker.start()

    def _on_input_changed(self, event=None):
        stats = compute_text_stats(self._get_input_text())
        self.text_stats_label.configure(text=format_text_stats(stats))

    def _copy_output(self):
        text = self.output_box.get("1.0", "end-1c")
        if not text:
            return
        self.clipboard_clear()
        self.clipboard_append(text)
        self.status_label.configure(text="Result copied to clipboard")

    # =========================================================================
    # Timer
    # =========================================================================

    def _start_timer(self):
        """Start the elapsed timer."""
        self._stop_timer()
        self._processing_start_time = time.time()
        self._update_timer()

    def _stop_timer(self):
        """Stop the timer, keeping the final time displayed."""
        if self._timer_after_id:
            self.after_cancel(self._timer_after_id)
            self._timer_after_id = None

        if self._processing_start_time:
            self._format_timer(time.time() - self._processing_start_time)
            self._processing_start_time = None

    def _update_timer(self):
        if self._processing_start_time:
            self._format_timer(time.time() - self._processing_start_time)
            self._timer_after_id = self.after(1000, self._update_timer)

    def _format_timer(self, seconds: float):
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        self.timer_label.configure(text=f"⏱ {minutes}:{secs:02d}")

    # =========================================================================
    # Cleanup
    # =========================================================================

    def destroy(self):
        """Clean up resources before destroying window."""
        if self._queue_poll_id:
            self.after_cancel(self._queue_poll_id)
            self._queue_poll_id = None

        if self._download_worker and self._download_worker.is_alive():
            self._download_worker.stop()

        self._stop_timer()
        self.session.dispatcher.backend.unload()

        super().destroy()
