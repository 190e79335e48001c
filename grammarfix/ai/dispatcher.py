"""
Inference Dispatcher

Forwards a ChatRequest to the configured backend, relays streamed text to
the caller and keeps statistics about the last generation.
"""

import time
from dataclasses import dataclass

from grammarfix.ai.backend import ChatBackend, LoadProgressCallback, ResponseCallback
from grammarfix.ai.chat_request import ChatRequest
from grammarfix.errors import GrammarFixError, InferenceError
from grammarfix.logging_config import debug_log, error


@dataclass
class GenerationStats:
    task_id: str = ""
    elapsed_seconds: float = 0.0
    chunk_count: int = 0
    output_chars: int = 0
    output_words: int = 0

    @property
    def chars_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.output_chars / self.elapsed_seconds


class InferenceDispatcher:
    """
    Single entry point for running a request against a backend.

    Only one request is expected at a time; the UI gate enforces that.
    """

    def __init__(self, backend: ChatBackend):
        self.backend = backend
        self.last_stats: GenerationStats | None = None

    def run(
        self,
        request: ChatRequest,
        on_response: ResponseCallback,
        on_load_progress: LoadProgressCallback = None,
    ) -> str:
        """
        Run a request and relay partial and final text.

        Returns:
            str: Final response text

        Raises:
            InferenceError: Any backend failure, wrapped if necessary
        """
        self.last_stats = None
        stats = GenerationStats(task_id=request.task_id)
        start_time = time.time()

        def relay(text: str, done: bool):
            if not done:
                stats.chunk_count += 1
            on_response(text, done)

        debug_log(f"[DISPATCH] {request.task_id or 'chat'} -> {self.backend.name} ({request.model_ref})")
        try:
            final_text = self.backend.chat(request, relay, on_load_progress)
        except GrammarFixError:
            raise
        except Exception as e:
            error(f"Inference failed on {self.backend.name}: {e}", exc_info=True)
            raise InferenceError(str(e)) from e

        stats.elapsed_seconds = time.time() - start_time
        stats.output_chars = len(final_text)
        stats.output_words = len(final_text.split())
        self.last_stats = stats
        debug_log(f"[DISPATCH] Done: {stats.output_chars} chars, {stats.chunk_count} updates "
                  f"in {stats.elapsed_seconds:.2f}s")
        return final_text
