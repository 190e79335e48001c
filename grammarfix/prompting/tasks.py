"""
Writing Tasks

Each task pairs a system prompt with a user prompt template. Sampling
parameters come from PromptConfig so they can be tuned without code
changes.
"""

from dataclasses import dataclass

from grammarfix.ai.chat_request import ChatMessage, ChatRequest, Role
from grammarfix.errors import EmptyInputError
from grammarfix.prompting.config import PromptConfig, get_prompt_config

TASK_FIX_GRAMMAR = "fix-grammar"
TASK_REWRITE = "rewrite"
TASK_ADJUST_TONE = "adjust-tone"
TASK_READER_REACTION = "reader-reaction"

TONES = ("formal", "friendly", "confident", "concise", "persuasive", "empathetic")
DEFAULT_TONE = "formal"


@dataclass(frozen=True)
class WritingTask:
    task_id: str
    label: str
    system_prompt: str
    user_template: str
    placeholder: str
    needs_tone: bool = False


WRITING_TASKS = {
    TASK_FIX_GRAMMAR: WritingTask(
        task_id=TASK_FIX_GRAMMAR,
        label="Fix Grammar",
        system_prompt=(
            "You are a grammar correction assistant. Your task is to correct grammar, spelling, "
            "and punctuation errors in the text provided by the user. Return ONLY the corrected "
            "text without any explanations or additional commentary."
        ),
        user_template="Correct the following text: {text}",
        placeholder="Processing...",
    ),
    TASK_REWRITE: WritingTask(
        task_id=TASK_REWRITE,
        label="Rewrite",
        system_prompt=(
            "You are a professional writing assistant. Your task is to completely rewrite and "
            "improve the text provided by the user. Make it clearer, more engaging, and "
            "professionally written while preserving the original meaning. Return ONLY the "
            "rewritten text without any explanations."
        ),
        user_template="Rewrite the following text: {text}",
        placeholder="Rewriting...",
    ),
    TASK_ADJUST_TONE: WritingTask(
        task_id=TASK_ADJUST_TONE,
        label="Adjust Tone",
        system_prompt=(
            "You are a writing assistant that adjusts the tone of text. Rewrite the text provided "
            "by the user so that it reads in a {tone} tone. Keep the original meaning, facts and "
            "language. Return ONLY the adjusted text without any explanations."
        ),
        user_template="Rewrite the following text in a {tone} tone: {text}",
        placeholder="Adjusting tone...",
        needs_tone=True,
    ),
    TASK_READER_REACTION: WritingTask(
        task_id=TASK_READER_REACTION,
        label="Reader Reaction",
        system_prompt=(
            "You are an honest first reader. Read the text provided by the user and describe how "
            "a typical reader would react to it: the overall impression, the tone it conveys, "
            "anything confusing or off-putting, and the one change that would improve it most. "
            "Answer in at most five short bullet points."
        ),
        user_template="How would a reader react to the following text? {text}",
        placeholder="Reading...",
    ),
}


def get_task(task_id: str) -> WritingTask:
    """
    Look up a writing task.

    Raises:
        ValueError: If the task id is unknown
    """
    try:
        return WRITING_TASKS[task_id]
    except KeyError:
        raise ValueError(
            f"Unknown task '{task_id}'. Expected one of: {', '.join(WRITING_TASKS)}"
        ) from None


def build_chat_request(
    task_id: str,
    text: str,
    model_ref: str,
    tone: str = None,
    prompt_config: PromptConfig = None,
) -> ChatRequest:
    """
    Build the chat request for a writing task.

    Args:
        task_id: One of WRITING_TASKS
        text: User input; surrounding whitespace is stripped
        model_ref: Model path or id to send the request to
        tone: Target tone for adjust-tone (defaults to DEFAULT_TONE)
        prompt_config: Source of sampling parameters (defaults to the global one)

    Returns:
        ChatRequest with a system and a user message

    Raises:
        EmptyInputError: If the text is blank
        ValueError: If the task or tone is unknown
    """
    task = get_task(task_id)

    text = (text or "").strip()
    if not text:
        raise EmptyInputError("Please enter some text")

    fields = {'text': text}
    if task.needs_tone:
        tone = (tone or DEFAULT_TONE).lower()
        if tone not in TONES:
            raise ValueError(f"Unknown tone '{tone}'. Expected one of: {', '.join(TONES)}")
        fields['tone'] = tone

    sampling = (prompt_config or get_prompt_config()).get_sampling(task_id)

    return ChatRequest(
        messages=(
            ChatMessage(Role.SYSTEM, task.system_prompt.format(**fields)),
            ChatMessage(Role.USER, task.user_template.format(**fields)),
        ),
        model_ref=model_ref,
        temperature=sampling.temperature,
        top_p=sampling.top_p,
        max_tokens=sampling.max_tokens,
        task_id=task_id,
    )
