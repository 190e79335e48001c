"""
Model Storage Paths

Resolves where a backend keeps its model:
- local: a GGUF file under MODELS_DIR, managed by GrammarFix
- ollama: nothing on our side; the Ollama runtime stores models itself and
  is addressed by model id only
"""

from pathlib import Path

from grammarfix.config import BACKEND_OLLAMA, MODELS_DIR
from grammarfix.logging_config import debug_log


def get_model_file_path(filename: str, backend: str, models_dir: Path = None) -> Path | None:
    """
    Return the file system path for a model file.

    Creates the models directory if it does not exist yet.

    Args:
        filename: Model file name (e.g. 'llama-3.2-1b-q4.gguf')
        backend: Backend name
        models_dir: Override for MODELS_DIR (tests)

    Returns:
        Path to the model file, or None for runtime-managed backends
    """
    if backend == BACKEND_OLLAMA:
        return None

    models_dir = Path(models_dir) if models_dir is not None else MODELS_DIR
    models_dir.mkdir(parents=True, exist_ok=True)
    return models_dir / filename


def model_file_exists(path: Path | None, backend: str) -> bool:
    """
    Check whether a usable model file exists.

    Zero-byte files are treated as missing; they are what an interrupted
    copy leaves behind.
    """
    if backend == BACKEND_OLLAMA or path is None:
        return False

    path = Path(path)
    exists = path.is_file() and path.stat().st_size > 0
    debug_log(f"[PATHS] Model file {path} exists: {exists}")
    return exists


def create_model_directory(path: Path | None, backend: str) -> None:
    """Ensure the parent directory of a model path exists (no-op for ollama)."""
    if backend == BACKEND_OLLAMA or path is None:
        return
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def resolve_model_reference(backend: str, model_config: dict, models_dir: Path = None) -> str:
    """
    Get the model reference to put into a chat request.

    Args:
        backend: Backend name
        model_config: Entry from the model catalog (see config.get_model_config)
        models_dir: Override for MODELS_DIR (tests)

    Returns:
        The model file path as a string for local, otherwise the model id
    """
    if backend == BACKEND_OLLAMA:
        return model_config['model_id']

    path = get_model_file_path(model_config['filename'], backend, models_dir=models_dir)
    if path is None:
        return model_config['model_id']
    return str(path)
