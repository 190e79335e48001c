"""
GrammarFix Configuration Module
Centralized configuration for the application.
"""

import os
from pathlib import Path

import yaml

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "GrammarFix"
_default_home = Path(os.environ.get('APPDATA', os.path.expanduser('~/.config'))) / APP_NAME
APPDATA_DIR = Path(os.environ.get('GRAMMARFIX_HOME', str(_default_home)))
MODELS_DIR = APPDATA_DIR / "models"
LOGS_DIR = APPDATA_DIR / "logs"

# Ensure directories exist
for directory in [APPDATA_DIR, MODELS_DIR, LOGS_DIR]:
    directory.mkdir(parents=True, exist_ok=True)

# Inference Backends
# - local: GGUF file downloaded by the app, run in-process with llama-cpp-python
# - ollama: model id handed to the Ollama runtime, which pulls it on first use
BACKEND_LOCAL = "local"
BACKEND_OLLAMA = "ollama"
SUPPORTED_BACKENDS = (BACKEND_LOCAL, BACKEND_OLLAMA)
BACKEND = os.environ.get('GRAMMARFIX_BACKEND', BACKEND_LOCAL).lower()

# Download Settings
DOWNLOAD_CHUNK_SIZE = 1024 * 1024  # 1 MB per chunk
DOWNLOAD_CONNECT_TIMEOUT_SECONDS = 15
DOWNLOAD_READ_TIMEOUT_SECONDS = 60

# Ollama Configuration
OLLAMA_API_BASE = os.environ.get('OLLAMA_HOST', "http://localhost:11434")
OLLAMA_TIMEOUT_SECONDS = 600  # Pulls of a ~1 GB model can be slow
OLLAMA_CONTEXT_WINDOW = 2048  # Tokens - plenty for a paragraph plus its rewrite

# llama-cpp-python Configuration
LLAMA_CONTEXT_WINDOW = 2048
LLAMA_GPU_LAYERS = int(os.environ.get('GRAMMARFIX_GPU_LAYERS', '0'))

# UI Settings
QUEUE_POLL_INTERVAL_MS = 50
MAX_INPUT_CHARS = 8000

# --- Model Catalog ---
MODEL_CONFIG_FILE = Path(__file__).parent.parent / "config" / "models.yaml"
MODEL_CONFIGS = {}

# Used when config/models.yaml is missing or incomplete
FALLBACK_MODEL_CONFIGS = {
    BACKEND_LOCAL: {
        'display_name': 'Llama 3.2 1B Instruct (Q4_K_M)',
        'url': (
            'https://huggingface.co/bartowski/Llama-3.2-1B-Instruct-GGUF/resolve/main/'
            'Llama-3.2-1B-Instruct-Q4_K_M.gguf'
        ),
        'filename': 'llama-3.2-1b-q4.gguf',
        'approx_size_mb': 700,
        'model_id': 'llama3.2:1b',
    },
    BACKEND_OLLAMA: {
        'display_name': 'Llama 3.2 1B Instruct (Ollama)',
        'model_id': 'llama3.2:1b',
        'approx_size_mb': 1300,
    },
}


def load_model_configs():
    """Loads model configurations from config/models.yaml."""
    global MODEL_CONFIGS
    try:
        with open(MODEL_CONFIG_FILE, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
            MODEL_CONFIGS = data.get('models', {})
        if DEBUG_MODE and MODEL_CONFIGS:
            from grammarfix.logging_config import debug_log
            debug_log(f"[Config] Loaded {len(MODEL_CONFIGS)} model configurations from {MODEL_CONFIG_FILE}")
    except FileNotFoundError:
        if DEBUG_MODE:
            from grammarfix.logging_config import debug_log
            debug_log(f"[Config] WARNING: Model config file not found at {MODEL_CONFIG_FILE}. Using fallback values.")
        MODEL_CONFIGS = {}
    except Exception as e:
        from grammarfix.logging_config import debug_log
        debug_log(f"[Config] ERROR: Failed to load or parse model config file: {e}")
        MODEL_CONFIGS = {}


def get_model_config(backend: str) -> dict:
    """
    Returns the model configuration for a backend, with fallbacks.

    Values from config/models.yaml override the built-in defaults key by key,
    so a partial entry in the YAML file still yields a usable configuration.

    Args:
        backend: Backend name ('local' or 'ollama').

    Returns:
        A dictionary containing the model's configuration.

    Raises:
        ValueError: If the backend name is not supported.
    """
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(f"Unknown backend '{backend}'. Expected one of: {', '.join(SUPPORTED_BACKENDS)}")

    if not MODEL_CONFIGS:
        load_model_configs()

    merged = dict(FALLBACK_MODEL_CONFIGS[backend])
    merged.update(MODEL_CONFIGS.get(backend) or {})
    return merged


# Load configs on module import
load_model_configs()
# --- End Model Catalog ---

# Prompt parameters (per-task sampling settings)
PROMPT_PARAMS_FILE = Path(__file__).parent.parent / "config" / "prompt_parameters.json"

# Logging Configuration
LOG_FILE = LOGS_DIR / "grammarfix.log"
DEBUG_FLOW_FILE = LOGS_DIR / "debug_flow.txt"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
