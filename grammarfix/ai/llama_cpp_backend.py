"""
llama-cpp-python Backend for GrammarFix
Runs a downloaded GGUF model in-process.

The model is loaded lazily on the first chat call for a given file and kept
in memory for later calls; switching to another file unloads the previous
one first.
"""

import os
import time

from grammarfix.ai.backend import ChatBackend, LoadProgressCallback, ResponseCallback
from grammarfix.ai.chat_request import ChatRequest
from grammarfix.ai.response_cleaner import clean_response
from grammarfix.config import LLAMA_CONTEXT_WINDOW, LLAMA_GPU_LAYERS
from grammarfix.errors import InferenceError
from grammarfix.logging_config import debug, debug_log

STOP_TOKENS = ["<|eot_id|>", "<|end_of_text|>"]


class LlamaCppBackend(ChatBackend):
    """
    Streams chat completions from a local GGUF file via llama-cpp-python.

    Args:
        llama_factory: Callable used to construct the model. Defaults to
            llama_cpp.Llama, imported on first use so the app starts without
            the native library when another backend is selected.
    """

    name = "local"

    def __init__(self, llama_factory=None, n_ctx: int = LLAMA_CONTEXT_WINDOW, n_gpu_layers: int = LLAMA_GPU_LAYERS):
        self._llama_factory = llama_factory
        self.n_ctx = n_ctx
        self.n_gpu_layers = n_gpu_layers
        self.current_model = None
        self.current_model_path: str | None = None

    def _get_llama_factory(self):
        """Lazy import of llama_cpp.Llama."""
        if self._llama_factory is None:
            try:
                from llama_cpp import Llama
            except (ImportError, OSError) as e:
                # OSError: the shared library failed to load
                debug(f"Failed to import llama_cpp: {e}")
                raise InferenceError(
                    "llama-cpp-python is not available. "
                    "Install it with: pip install 'grammarfix[local]'"
                ) from e
            self._llama_factory = Llama
        return self._llama_factory

    def load_model(self, model_path: str):
        """
        Load a GGUF model into memory (no-op if it is already loaded).

        Raises:
            InferenceError: If the file is missing or llama.cpp rejects it
        """
        if self.current_model is not None and self.current_model_path == model_path:
            return self.current_model

        if not os.path.isfile(model_path):
            raise InferenceError(f"Model file not found: {model_path}")

        self.unload()
        factory = self._get_llama_factory()

        # Physical cores for prompt processing, logical cores for batches
        logical_cores = os.cpu_count() or 4
        physical_cores = max(1, logical_cores // 2)

        debug_log(f"[LLAMA LOAD] Loading {model_path} (n_ctx={self.n_ctx}, gpu_layers={self.n_gpu_layers})")
        load_start = time.time()
        try:
            self.current_model = factory(
                model_path=model_path,
                n_ctx=self.n_ctx,
                n_threads=physical_cores,
                n_threads_batch=logical_cores,
                n_gpu_layers=self.n_gpu_layers,
                verbose=False,
            )
        except Exception as e:
            self.current_model = None
            self.current_model_path = None
            raise InferenceError(f"Failed to load model: {e}") from e

        self.current_model_path = model_path
        debug_log(f"[LLAMA LOAD] Model loaded in {time.time() - load_start:.2f}s")
        return self.current_model

    def chat(
        self,
        request: ChatRequest,
        on_response: ResponseCallback,
        on_load_progress: LoadProgressCallback = None,
    ) -> str:
        model = self.load_model(request.model_ref)

        debug_log(f"[LLAMA GENERATE] Task: {request.task_id or 'chat'}")
        debug_log(f"[LLAMA GENERATE] Max tokens: {request.max_tokens}, "
                  f"Temperature: {request.temperature}, Top P: {request.top_p}")
        debug_log(f"[LLAMA GENERATE] User prompt length: {len(request.user_prompt)} chars")

        raw_text = ""
        chunk_count = 0
        start_time = time.time()
        try:
            stream = model.create_chat_completion(
                messages=request.to_messages(),
                temperature=request.temperature,
                top_p=request.top_p,
                max_tokens=request.max_tokens,
                stop=STOP_TOKENS,
                stream=True,
            )
            for part in stream:
                delta = part["choices"][0].get("delta", {}).get("content") or ""
                if not delta:
                    continue
                raw_text += delta
                chunk_count += 1
                on_response(clean_response(raw_text), False)
        except Exception as e:
            debug_log(f"[LLAMA GENERATE] Error: {e}")
            raise InferenceError(f"Text generation failed: {e}") from e

        final_text = clean_response(raw_text)
        debug_log(f"[LLAMA GENERATE] {chunk_count} chunks, {len(final_text)} chars "
                  f"in {time.time() - start_time:.2f}s")
        on_response(final_text, True)
        return final_text

    def unload(self):
        """Unload the current model from memory."""
        if self.current_model is not None:
            debug(f"Unloading model: {self.current_model_path}")
            close = getattr(self.current_model, "close", None)
            if callable(close):
                close()
            self.current_model = None
            self.current_model_path = None
