"""
Prompting Package for GrammarFix.

    from grammarfix.prompting import (
        PromptConfig, get_prompt_config,
        WritingTask, WRITING_TASKS, TONES, build_chat_request,
    )

- PromptConfig loads per-task sampling parameters from
  config/prompt_parameters.json.
- tasks defines the four writing tasks and turns user text into a
  ChatRequest.
"""

from grammarfix.prompting.config import (
    PromptConfig,
    SamplingParams,
    get_prompt_config,
)
from grammarfix.prompting.tasks import (
    DEFAULT_TONE,
    TASK_ADJUST_TONE,
    TASK_FIX_GRAMMAR,
    TASK_READER_REACTION,
    TASK_REWRITE,
    TONES,
    WRITING_TASKS,
    WritingTask,
    build_chat_request,
    get_task,
)

__all__ = [
    'PromptConfig',
    'SamplingParams',
    'get_prompt_config',
    'WritingTask',
    'WRITING_TASKS',
    'TONES',
    'DEFAULT_TONE',
    'TASK_FIX_GRAMMAR',
    'TASK_REWRITE',
    'TASK_ADJUST_TONE',
    'TASK_READER_REACTION',
    'build_chat_request',
    'get_task',
]
