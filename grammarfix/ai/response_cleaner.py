"""
Response cleanup for raw model output.

Small GGUF models occasionally echo Llama 3 chat-template tokens into the
generated text, e.g.

    <|start_header_id|>assistant<|end_header_id|>

    I went to school yesterday.<|eot_id|>

Only the template scaffolding is removed: a role word is dropped when it
sits inside a header or alone on the first line, never when it is part of
the user's prose ("The user agreed").
"""

import re

_HEADER_BLOCK = re.compile(r'<\|start_header_id\|>\s*(?:system|user|assistant)?\s*<\|end_header_id\|>')
_TEMPLATE_TOKENS = re.compile(r'<\|(?:eot_id|start_header_id|end_header_id|begin_of_text|end_of_text)\|>')
_LEADING_ROLE_LINE = re.compile(r'^\s*(?:system|user|assistant)\s*:?\s*(?:\n|$)', re.IGNORECASE)


def clean_response(text: str) -> str:
    """
    Strip chat-template tokens and header role labels from model output.

    Args:
        text: Raw (possibly partial) generated text

    Returns:
        str: Cleaned text with surrounding whitespace removed
    """
    if not text:
        return ""

    cleaned = _HEADER_BLOCK.sub('', text)
    cleaned = _TEMPLATE_TOKENS.sub('', cleaned)

    # A header can lose its tokens mid-stream and leave a bare role line behind
    while True:
        stripped = _LEADING_ROLE_LINE.sub('', cleaned, count=1)
        if stripped == cleaned:
            break
        cleaned = stripped

    return cleaned.strip()
