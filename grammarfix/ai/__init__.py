"""
GrammarFix AI Module
Inference backends and the dispatcher that drives them.

Backends:
- LlamaCppBackend ('local'): GGUF file downloaded by the app, run in-process
  with llama-cpp-python. Loads on the first request.
- OllamaBackend ('ollama'): model id handed to a local Ollama service, which
  pulls and loads the model on the first request and reports progress.
"""

from grammarfix.ai.backend import ChatBackend
from grammarfix.ai.chat_request import ChatMessage, ChatRequest, Role
from grammarfix.ai.dispatcher import GenerationStats, InferenceDispatcher
from grammarfix.ai.llama_cpp_backend import LlamaCppBackend
from grammarfix.ai.ollama_backend import OllamaBackend
from grammarfix.ai.response_cleaner import clean_response
from grammarfix.config import BACKEND_LOCAL, BACKEND_OLLAMA, SUPPORTED_BACKENDS


def create_backend(name: str) -> ChatBackend:
    """
    Build the backend for a configured backend name.

    Raises:
        ValueError: If the name is not a supported backend
    """
    if name == BACKEND_LOCAL:
        return LlamaCppBackend()
    if name == BACKEND_OLLAMA:
        return OllamaBackend()
    raise ValueError(f"Unknown backend '{name}'. Expected one of: {', '.join(SUPPORTED_BACKENDS)}")


__all__ = [
    'ChatBackend',
    'ChatMessage',
    'ChatRequest',
    'Role',
    'GenerationStats',
    'InferenceDispatcher',
    'LlamaCppBackend',
    'OllamaBackend',
    'clean_response',
    'create_backend',
]
