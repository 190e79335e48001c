"""
Ollama Backend for GrammarFix
Streams chat completions through Ollama's REST API.

The model is addressed by id (e.g. 'llama3.2:1b'); Ollama owns storage.
On the first request for a model id the backend:
1. pulls the model if Ollama does not have it yet (download progress)
2. loads it into memory with an empty generate call (loading progress)
and reports both through on_load_progress(download, loading).
"""

import json
import time

import requests

from grammarfix.ai.backend import ChatBackend, LoadProgressCallback, ResponseCallback
from grammarfix.ai.chat_request import ChatRequest
from grammarfix.config import OLLAMA_API_BASE, OLLAMA_CONTEXT_WINDOW, OLLAMA_TIMEOUT_SECONDS
from grammarfix.errors import InferenceError
from grammarfix.logging_config import debug, debug_log, warning


class OllamaBackend(ChatBackend):
    """
    Manages Ollama-served models for writing tasks.

    No native dependencies: everything goes through requests.
    """

    name = "ollama"

    def __init__(self, api_base: str = OLLAMA_API_BASE, timeout: int = OLLAMA_TIMEOUT_SECONDS):
        self.api_base = api_base.rstrip('/')
        self.timeout = timeout
        self.is_connected = False
        self._loaded_models: set[str] = set()

    def _check_connection(self) -> bool:
        """
        Check if Ollama is running and accessible.

        Returns:
            bool: True if Ollama is accessible, False otherwise
        """
        try:
            response = requests.get(f"{self.api_base}/api/tags", timeout=5)
            self.is_connected = response.status_code == 200
            if self.is_connected:
                debug_log("[OLLAMA] Connection successful")
            else:
                debug_log(f"[OLLAMA] Connection failed: Status {response.status_code}")
        except requests.exceptions.ConnectionError:
            debug_log(f"[OLLAMA] Connection error: Cannot reach {self.api_base}")
            self.is_connected = False
        except requests.exceptions.RequestException as e:
            debug_log(f"[OLLAMA] Connection error: {str(e)}")
            self.is_connected = False

        return self.is_connected

    def get_available_models(self) -> dict:
        """
        Get list of models Ollama already has locally.

        Returns:
            dict: Model names mapped to their size in bytes
        """
        if not self.is_connected:
            self._check_connection()

        models = {}
        if not self.is_connected:
            debug_log("[OLLAMA] Not connected - cannot list models")
            return models

        try:
            response = requests.get(f"{self.api_base}/api/tags", timeout=10)
            if response.status_code == 200:
                for model in response.json().get('models', []):
                    models[model['name']] = model.get('size', 0)
                debug_log(f"[OLLAMA] Found {len(models)} models: {list(models.keys())}")
            else:
                debug(f"Failed to get models: {response.status_code}")
        except requests.exceptions.RequestException as e:
            debug_log(f"[OLLAMA] Error fetching models: {str(e)}")

        return models

    # =========================================================================
    # Model acquisition
    # =========================================================================

    def pull_model(self, model_id: str, on_progress=None):
        """
        Pull a model, reporting overall download progress (0..1).

        Ollama streams one JSON object per line; layer downloads report
        'digest', 'total' and 'completed'. Progress is summed across layers.

        Raises:
            InferenceError: If Ollama reports an error or is unreachable
        """
        debug_log(f"[OLLAMA PULL] Pulling {model_id}")
        layers: dict[str, tuple[int, int]] = {}
        try:
            with requests.post(
                f"{self.api_base}/api/pull",
                json={"model": model_id, "stream": True},
                stream=True,
                timeout=self.timeout,
            ) as response:
                response.raise_for_status()
                for line in response.iter_lines():
                    if not line:
                        continue
                    event = json.loads(line)
                    if event.get("error"):
                        raise InferenceError(f"Ollama could not pull {model_id}: {event['error']}")

                    digest = event.get("digest")
                    total = event.get("total") or 0
                    if digest and total:
                        layers[digest] = (event.get("completed") or 0, total)
                        completed_sum = sum(c for c, _ in layers.values())
                        total_sum = sum(t for _, t in layers.values())
                        if on_progress:
                            on_progress(min(completed_sum / total_sum, 0.99))

                    if event.get("status") == "success":
                        break
        except requests.exceptions.ConnectionError as e:
            raise InferenceError(
                f"Cannot connect to Ollama at {self.api_base}. "
                "Is Ollama running? Start with: ollama serve"
            ) from e
        except requests.exceptions.RequestException as e:
            raise InferenceError(f"Model pull failed: {e}") from e
        except json.JSONDecodeError as e:
            raise InferenceError(f"Unexpected reply from Ollama while pulling: {e}") from e

        if on_progress:
            on_progress(1.0)
        debug_log(f"[OLLAMA PULL] {model_id} pulled ({len(layers)} layers)")

    def load_model(self, model_id: str):
        """
        Load a model into Ollama's memory.

        An /api/generate call without a prompt only loads the model.
        """
        debug_log(f"[OLLAMA LOAD] Loading {model_id}")
        start_time = time.time()
        try:
            response = requests.post(
                f"{self.api_base}/api/generate",
                json={"model": model_id, "stream": False},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise InferenceError(f"Model load failed: {e}") from e

        if response.status_code != 200:
            raise InferenceError(f"Ollama returned status {response.status_code}: {response.text}")
        debug_log(f"[OLLAMA LOAD] {model_id} loaded in {time.time() - start_time:.2f}s")

    def ensure_model(self, model_id: str, on_load_progress: LoadProgressCallback = None):
        """Pull (if needed) and load a model once per backend instance."""
        if model_id in self._loaded_models:
            return

        if not self._check_connection():
            raise InferenceError(
                f"Ollama not available at {self.api_base}. "
                "Please ensure Ollama is running: https://ollama.com"
            )

        def report(download: float, loading: float):
            if on_load_progress:
                on_load_progress(download, loading)

        if model_id in self.get_available_models():
            debug_log(f"[OLLAMA] {model_id} already pulled")
        else:
            report(0.0, 0.0)
            self.pull_model(model_id, on_progress=lambda p: report(p, 0.0))
        report(1.0, 0.0)

        self.load_model(model_id)
        self._loaded_models.add(model_id)
        report(1.0, 1.0)

    # =========================================================================
    # Chat
    # =========================================================================

    def chat(
        self,
        request: ChatRequest,
        on_response: ResponseCallback,
        on_load_progress: LoadProgressCallback = None,
    ) -> str:
        model_id = request.model_ref
        self.ensure_model(model_id, on_load_progress)

        messages = request.to_messages()
        prompt_chars = sum(len(m['content']) for m in messages)
        if prompt_chars // 4 > OLLAMA_CONTEXT_WINDOW - request.max_tokens:
            warning(
                f"Prompt ({prompt_chars // 4} estimated tokens) may be truncated. "
                f"Context window is {OLLAMA_CONTEXT_WINDOW} tokens."
            )

        payload = {
            "model": model_id,
            "messages": messages,
            "stream": True,
            "options": {
                "temperature": request.temperature,
                "top_p": request.top_p,
                "num_predict": request.max_tokens,
                "num_ctx": OLLAMA_CONTEXT_WINDOW,
            },
        }

        debug_log(f"[OLLAMA CHAT] Task: {request.task_id or 'chat'}, model: {model_id}")
        debug_log(f"[OLLAMA CHAT] Max tokens: {request.max_tokens}, "
                  f"Temperature: {request.temperature}, Top P: {request.top_p}")

        text = ""
        tokens_used = 0
        start_time = time.time()
        try:
            with requests.post(
                f"{self.api_base}/api/chat",
                json=payload,
                stream=True,
                timeout=self.timeout,
            ) as response:
                if response.status_code != 200:
                    raise InferenceError(f"Ollama returned status {response.status_code}: {response.text}")
                for line in response.iter_lines():
                    if not line:
                        continue
                    event = json.loads(line)
                    if event.get("error"):
                        raise InferenceError(f"Ollama error: {event['error']}")
                    delta = (event.get("message") or {}).get("content", "")
                    if delta:
                        text += delta
                        on_response(text.strip(), False)
                    if event.get("done"):
                        tokens_used = event.get("eval_count", 0)
                        break
        except requests.exceptions.Timeout as e:
            raise InferenceError(f"Generation timeout after {self.timeout} seconds.") from e
        except requests.exceptions.ConnectionError as e:
            raise InferenceError(
                f"Cannot connect to Ollama at {self.api_base}. "
                "Is Ollama running? Start with: ollama serve"
            ) from e
        except requests.exceptions.RequestException as e:
            raise InferenceError(f"Text generation failed: {e}") from e
        except json.JSONDecodeError as e:
            raise InferenceError(f"Unexpected reply from Ollama: {e}") from e

        final_text = text.strip()
        debug_log(f"[OLLAMA CHAT] Complete: {tokens_used} tokens in {time.time() - start_time:.2f}s")
        on_response(final_text, True)
        return final_text

    def unload(self):
        """Ollama unloads idle models by itself; forget what we loaded."""
        self._loaded_models.clear()
