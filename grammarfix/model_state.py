"""
Model State Tracking

Holds the screen's status snapshot and the model-ready gate.

Lifecycle:
    IDLE -> DOWNLOADING -> READY -> PROCESSING -> READY
    (a failed download goes back to IDLE; a failed request back to READY)

All status messages shown in the status card are produced here so the
wording stays in one place.
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from grammarfix.config import BACKEND_LOCAL, BACKEND_OLLAMA
from grammarfix.download_manager import format_megabytes
from grammarfix.errors import ModelNotReadyError, RequestInFlightError
from grammarfix.logging_config import debug_log


class AppPhase(Enum):
    IDLE = "idle"
    DOWNLOADING = "downloading"
    READY = "ready"
    PROCESSING = "processing"


@dataclass
class StatusSnapshot:
    """Everything the screen needs to render the status card and buttons."""

    backend: str = BACKEND_LOCAL
    is_downloading: bool = False
    is_model_ready: bool = False
    is_processing: bool = False
    is_model_loading: bool = False
    download_progress: float = 0.0
    loading_progress: float = 0.0
    status_message: str = "Model not downloaded"
    output_text: str = ""
    model_ref: str | None = None

    @property
    def phase(self) -> AppPhase:
        if self.is_processing:
            return AppPhase.PROCESSING
        if self.is_downloading:
            return AppPhase.DOWNLOADING
        if self.is_model_ready:
            return AppPhase.READY
        return AppPhase.IDLE

    @property
    def show_progress_bar(self) -> bool:
        return self.is_downloading or self.is_model_loading or self.is_processing

    @property
    def progress_value(self) -> float | None:
        """Determinate progress (0..1), or None for an indeterminate bar."""
        if self.is_downloading:
            return self.download_progress
        if self.is_model_loading:
            if self.download_progress < 1.0:
                return self.download_progress
            return self.loading_progress
        return None

    @property
    def can_submit(self) -> bool:
        return self.is_model_ready and not self.is_processing

    @property
    def show_download_button(self) -> bool:
        return self.backend == BACKEND_LOCAL and not self.is_model_ready and not self.is_downloading


class ModelStateTracker:
    """
    Owns the StatusSnapshot and applies state transitions.

    The listener (if any) receives a copy of the snapshot after every
    transition, so it can be handed across threads safely.
    """

    def __init__(self, backend: str = BACKEND_LOCAL, listener: Callable[[StatusSnapshot], None] = None):
        self.backend = backend
        self.listener = listener
        self._snapshot = StatusSnapshot(backend=backend)

    @property
    def snapshot(self) -> StatusSnapshot:
        return copy.copy(self._snapshot)

    def _ready_message(self) -> str:
        if self.backend == BACKEND_OLLAMA:
            return "Model ready! (Ollama)"
        return "Model ready!"

    def _notify(self):
        debug_log(f"[STATE] {self._snapshot.phase.value}: {self._snapshot.status_message}")
        if self.listener:
            self.listener(self.snapshot)

    # =========================================================================
    # Model acquisition
    # =========================================================================

    def mark_missing(self, approx_size_mb: int = None):
        """Model file is not on disk yet."""
        s = self._snapshot
        s.is_model_ready = False
        s.is_downloading = False
        s.model_ref = None
        if approx_size_mb:
            s.status_message = f"Model not downloaded (~{approx_size_mb} MB)"
        else:
            s.status_message = "Model not downloaded"
        self._notify()

    def begin_download(self):
        s = self._snapshot
        s.is_downloading = True
        s.download_progress = 0.0
        s.status_message = "Downloading model..."
        self._notify()

    def update_download(self, received: int, total: int):
        """Apply a download progress callback; unknown totals are ignored."""
        if total == -1 or total <= 0:
            return
        s = self._snapshot
        s.download_progress = min(received / total, 1.0)
        s.status_message = f"Downloading: {format_megabytes(received)} / {format_megabytes(total)}"
        self._notify()

    def download_complete(self, model_ref: str):
        s = self._snapshot
        s.model_ref = model_ref
        s.download_progress = 1.0
        s.status_message = "Download complete. Initializing model..."
        self._notify()

    def download_failed(self, reason):
        s = self._snapshot
        s.is_downloading = False
        s.status_message = f"Download failed: {reason}"
        self._notify()

    def model_found(self, model_ref: str):
        """Model file already exists; it still has to pass mark_ready."""
        s = self._snapshot
        s.model_ref = model_ref
        s.status_message = "Model ready. Initializing..."
        self._notify()

    def mark_ready(self, model_ref: str = None, message: str = None):
        """
        Open the model-ready gate.

        Raises:
            ModelNotReadyError: If no model reference is known
        """
        s = self._snapshot
        if model_ref is not None:
            s.model_ref = model_ref
        if not s.model_ref:
            raise ModelNotReadyError("Cannot mark model ready without a model reference")
        s.is_model_ready = True
        s.is_downloading = False
        s.status_message = message or self._ready_message()
        self._notify()

    def initialization_failed(self, reason):
        s = self._snapshot
        s.is_model_ready = False
        s.is_downloading = False
        s.status_message = f"Model initialization failed: {reason}"
        self._notify()

    # =========================================================================
    # Requests
    # =========================================================================

    def begin_processing(self, placeholder: str = "Processing..."):
        """
        Close the gate for the duration of one request.

        Raises:
            ModelNotReadyError: If the model is not ready
            RequestInFlightError: If a request is already processing
        """
        s = self._snapshot
        if not s.is_model_ready:
            raise ModelNotReadyError("Model is not ready yet")
        if s.is_processing:
            raise RequestInFlightError("A request is already being processed")
        s.is_processing = True
        s.output_text = placeholder
        if self.backend == BACKEND_OLLAMA:
            s.status_message = "Initializing..."
        self._notify()

    def update_loading(self, download_progress: float, loading_progress: float):
        """Apply a runtime model-loading progress callback."""
        s = self._snapshot
        s.is_model_loading = True
        s.download_progress = download_progress
        s.loading_progress = loading_progress
        if download_progress < 1.0:
            s.status_message = f"Downloading model: {int(download_progress * 100)}%"
        elif loading_progress < 1.0:
            s.status_message = f"Loading model into memory: {int(loading_progress * 100)}%"
        else:
            s.is_model_loading = False
            s.status_message = self._ready_message()
        self._notify()

    def update_output(self, text: str):
        """Show partial output of the running request."""
        self._snapshot.output_text = text
        self._notify()

    def finish_processing(self, text: str):
        s = self._snapshot
        s.output_text = text
        s.is_processing = False
        s.is_model_loading = False
        s.status_message = self._ready_message()
        self._notify()

    def processing_failed(self, reason):
        s = self._snapshot
        s.output_text = f"Error: {reason}"
        s.is_processing = False
        s.is_model_loading = False
        s.status_message = self._ready_message()
        self._notify()
