"""
Sampling Parameters per Writing Task

Read from config/prompt_parameters.json so they can be tuned without code
changes. Keys starting with '_' are comments. Missing or invalid values
fall back to the built-in defaults per field.
"""

import json
from dataclasses import dataclass
from pathlib import Path

from grammarfix.config import PROMPT_PARAMS_FILE
from grammarfix.logging_config import debug_log, warning


@dataclass(frozen=True)
class SamplingParams:
    temperature: float
    top_p: float
    max_tokens: int


DEFAULT_SAMPLING = {
    # Grammar fixes must stay close to the input
    "fix-grammar": SamplingParams(temperature=0.1, top_p=0.95, max_tokens=256),
    "rewrite": SamplingParams(temperature=0.7, top_p=0.9, max_tokens=512),
    "adjust-tone": SamplingParams(temperature=0.5, top_p=0.9, max_tokens=512),
    "reader-reaction": SamplingParams(temperature=0.6, top_p=0.9, max_tokens=384),
}
FALLBACK_TASK = "rewrite"


def _strip_comments(data):
    if isinstance(data, dict):
        return {k: _strip_comments(v) for k, v in data.items() if not k.startswith('_')}
    return data


class PromptConfig:
    """
    Per-task sampling parameters.

    Example:
        config = PromptConfig()
        config.get_sampling("fix-grammar").temperature   # 0.1
        config.get("rewrite", "max_tokens")              # 512
    """

    def __init__(self, params_file: Path = PROMPT_PARAMS_FILE):
        self.params_file = Path(params_file)
        self._params = self._load()

    def _load(self) -> dict:
        if not self.params_file.exists():
            debug_log(f"[PROMPT CONFIG] {self.params_file} not found, using defaults")
            return {}
        try:
            with open(self.params_file, encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            warning(f"Could not read prompt parameters from {self.params_file}: {e}. Using defaults.")
            return {}
        if not isinstance(data, dict):
            warning(f"Prompt parameters in {self.params_file} must be a JSON object. Using defaults.")
            return {}
        return _strip_comments(data)

    def get(self, *keys, default=None):
        """Raw value by nested keys, or default."""
        value = self._params
        for key in keys:
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    def get_sampling(self, task_id: str) -> SamplingParams:
        """
        Sampling parameters for a task.

        Each field is taken from the file when it is a valid number in range,
        otherwise from DEFAULT_SAMPLING.
        """
        defaults = DEFAULT_SAMPLING.get(task_id, DEFAULT_SAMPLING[FALLBACK_TASK])
        return SamplingParams(
            temperature=self._number(task_id, 'temperature', defaults.temperature, float, 0.0, 2.0),
            top_p=self._number(task_id, 'top_p', defaults.top_p, float, 0.0, 1.0),
            max_tokens=self._number(task_id, 'max_tokens', defaults.max_tokens, int, 1, None),
        )

    def _number(self, task_id, key, default, cast, low, high):
        raw = self.get(task_id, key, default=default)
        try:
            value = cast(raw)
        except (TypeError, ValueError):
            warning(f"Ignoring invalid {task_id}.{key} = {raw!r}")
            return default
        if value < low or (high is not None and value > high):
            warning(f"Ignoring out-of-range {task_id}.{key} = {raw!r}")
            return default
        return value


_prompt_config = None


def get_prompt_config() -> PromptConfig:
    """Process-wide PromptConfig, loaded on first use."""
    global _prompt_config
    if _prompt_config is None:
        _prompt_config = PromptConfig()
    return _prompt_config
