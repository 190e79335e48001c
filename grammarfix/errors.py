"""
Exception types for GrammarFix.

Library exceptions (requests, llama_cpp) are wrapped into these at the
backend boundary; the session turns them into status text for the UI.
"""


class GrammarFixError(Exception):
    """Base class for all application errors."""


class DownloadError(GrammarFixError):
    """The model file could not be downloaded."""


class DownloadCancelled(DownloadError):
    """The user cancelled a running download."""


class InferenceError(GrammarFixError):
    """The inference backend failed to produce a response."""


class ModelNotReadyError(GrammarFixError):
    """A request was made before a usable model reference exists."""


class RequestInFlightError(GrammarFixError):
    """A request was made while another one is still processing."""


class EmptyInputError(GrammarFixError, ValueError):
    """The input text is empty after trimming whitespace."""
