"""
Inference backend interface.

A backend takes a ChatRequest and streams the answer back through
on_response(text, done):
- text is always the cumulative response so far, never a delta
- done=False for partial updates, then exactly one call with done=True

Backends that manage model loading themselves may also report
on_load_progress(download_progress, loading_progress), both in 0..1.
"""

from abc import ABC, abstractmethod
from typing import Callable

from grammarfix.ai.chat_request import ChatRequest

ResponseCallback = Callable[[str, bool], None]
LoadProgressCallback = Callable[[float, float], None]


class ChatBackend(ABC):
    """Abstract base for streaming chat backends."""

    name = "base"

    @abstractmethod
    def chat(
        self,
        request: ChatRequest,
        on_response: ResponseCallback,
        on_load_progress: LoadProgressCallback = None,
    ) -> str:
        """
        Run one chat completion.

        Returns:
            str: The final response text (same value passed with done=True)

        Raises:
            InferenceError: If the backend fails
        """

    def unload(self):
        """Release any model held in memory. Default: nothing to release."""
