"""
GrammarFix Session

Orchestrates the screen's workflow independently of any widgets:

    initialize()      check the model (local) or set the model id (ollama)
    download_model()  local only: fetch the GGUF file, then open the gate
    run_task()        build a request, dispatch it, stream text into state

Every method is synchronous. The UI calls the slow ones (download_model,
run_task) from worker threads and receives StatusSnapshot copies through
the tracker listener.
"""

from grammarfix.ai.dispatcher import InferenceDispatcher
from grammarfix.config import BACKEND_LOCAL, BACKEND_OLLAMA, MAX_INPUT_CHARS, get_model_config
from grammarfix.download_manager import ModelDownloader
from grammarfix.errors import (
    DownloadCancelled,
    DownloadError,
    EmptyInputError,
    GrammarFixError,
    ModelNotReadyError,
    RequestInFlightError,
)
from grammarfix.logging_config import Timer, debug_log, error, info
from grammarfix.model_state import ModelStateTracker
from grammarfix.platform_paths import (
    create_model_directory,
    get_model_file_path,
    model_file_exists,
    resolve_model_reference,
)
from grammarfix.prompting.tasks import build_chat_request, get_task


class GrammarFixSession:
    """
    Screen-level state machine: idle -> downloading -> ready -> processing.

    Attributes:
        backend_name: 'local' or 'ollama'
        model_config: Model catalog entry for the backend
        tracker: Holds the StatusSnapshot and notifies the UI
        dispatcher: Sends requests to the inference backend
        downloader: Fetches the model file (local backend only)
    """

    def __init__(
        self,
        backend_name: str,
        tracker: ModelStateTracker,
        dispatcher: InferenceDispatcher,
        downloader: ModelDownloader = None,
        model_config: dict = None,
        models_dir=None,
    ):
        self.backend_name = backend_name
        self.model_config = model_config or get_model_config(backend_name)
        self.tracker = tracker
        self.dispatcher = dispatcher
        self.downloader = downloader or ModelDownloader()
        self.models_dir = models_dir

    @property
    def snapshot(self):
        return self.tracker.snapshot

    def _model_path(self):
        return get_model_file_path(self.model_config['filename'], self.backend_name, models_dir=self.models_dir)

    def _model_reference(self) -> str:
        return resolve_model_reference(self.backend_name, self.model_config, models_dir=self.models_dir)

    # =========================================================================
    # Model acquisition
    # =========================================================================

    def initialize(self):
        """Set up the model-ready gate on startup."""
        if self.backend_name == BACKEND_OLLAMA:
            self.tracker.mark_ready(
                self._model_reference(),
                message="Ready! Model will download on first use (Ollama)",
            )
            return

        model_path = self._model_path()
        if model_file_exists(model_path, self.backend_name):
            self.tracker.model_found(self._model_reference())
            self._initialize_model()
        else:
            self.tracker.mark_missing(self.model_config.get('approx_size_mb'))

    def download_model(self) -> bool:
        """
        Download the model file with progress, then open the gate.

        Returns:
            bool: True if the model is ready afterwards
        """
        if self.backend_name != BACKEND_LOCAL:
            return False
        if self.snapshot.is_downloading:
            debug_log("[SESSION] Download already running")
            return False

        self.downloader.reset()
        self.tracker.begin_download()
        model_path = self._model_path()
        create_model_directory(model_path, self.backend_name)
        try:
            with Timer("ModelDownload"):
                self.downloader.download(
                    self.model_config['url'],
                    model_path,
                    on_progress=self.tracker.update_download,
                )
        except DownloadCancelled:
            info("Model download cancelled by user")
            self.tracker.download_failed("cancelled")
            return False
        except DownloadError as e:
            error(f"Model download failed: {e}")
            self.tracker.download_failed(e)
            return False

        self.tracker.download_complete(self._model_reference())
        return self._initialize_model()

    def cancel_download(self):
        self.downloader.cancel()

    def _initialize_model(self) -> bool:
        """
        Open the gate for a model file that exists on disk.

        llama.cpp loads the file on the first request, so there is nothing
        to do here beyond marking it ready.
        """
        try:
            self.tracker.mark_ready()
            return True
        except ModelNotReadyError as e:
            self.tracker.initialization_failed(e)
            return False

    # =========================================================================
    # Requests
    # =========================================================================

    def validate_request(self, text: str) -> str | None:
        """
        Check the gate before starting a request.

        Returns:
            A user-facing message if the request cannot run, otherwise None
        """
        snapshot = self.snapshot
        if not snapshot.is_model_ready:
            return "Model is not ready yet"
        if snapshot.is_processing:
            return "Please wait for the current request to finish"
        if not (text or "").strip():
            return "Please enter some text"
        if len(text) > MAX_INPUT_CHARS:
            return f"Text is too long (max {MAX_INPUT_CHARS} characters)"
        return None

    def run_task(self, task_id: str, text: str, tone: str = None) -> str | None:
        """
        Run one writing task end to end.

        Args:
            task_id: Writing task id
            text: User input
            tone: Target tone for adjust-tone

        Returns:
            A user-facing message if the request was rejected before
            starting, otherwise None (results arrive through the tracker)
        """
        problem = self.validate_request(text)
        if problem:
            return problem

        task = get_task(task_id)
        try:
            request = build_chat_request(task_id, text, self.snapshot.model_ref, tone=tone)
            self.tracker.begin_processing(task.placeholder)
        except (EmptyInputError, ModelNotReadyError, RequestInFlightError) as e:
            return str(e)

        def on_response(response: str, done: bool):
            if done:
                self.tracker.finish_processing(response)
            else:
                self.tracker.update_output(response)

        try:
            self.dispatcher.run(request, on_response, on_load_progress=self.tracker.update_loading)
        except GrammarFixError as e:
            error(f"{task.label} failed: {e}")
            self.tracker.processing_failed(e)
            return None

        if self.snapshot.is_processing:
            # Backend returned without a final callback
            self.tracker.finish_processing(self.snapshot.output_text)
        info(f"{task.label} completed")
        return None

    @property
    def last_stats(self):
        return self.dispatcher.last_stats
