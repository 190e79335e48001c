"""
Text and generation statistics shown under the editor.
"""

import re
from dataclasses import dataclass

WORDS_PER_MINUTE = 238  # average silent reading speed for adults

_SENTENCE_END = re.compile(r'[.!?]+(?=\s|$)')


@dataclass(frozen=True)
class TextStats:
    words: int
    characters: int
    sentences: int
    reading_seconds: float


def compute_text_stats(text: str) -> TextStats:
    """
    Count words, characters and sentences in text.

    A non-empty text without terminal punctuation counts as one sentence.
    """
    text = (text or "").strip()
    if not text:
        return TextStats(words=0, characters=0, sentences=0, reading_seconds=0.0)

    words = len(text.split())
    sentences = len(_SENTENCE_END.findall(text)) or 1
    return TextStats(
        words=words,
        characters=len(text),
        sentences=sentences,
        reading_seconds=words / WORDS_PER_MINUTE * 60,
    )


def format_duration(seconds: float) -> str:
    """
    Format seconds into human-readable duration string.

    Examples:
        >>> format_duration(45)
        '45s'
        >>> format_duration(150)
        '2m 30s'
        >>> format_duration(3725)
        '1h 2m 5s'
    """
    total_seconds = int(seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"


def format_text_stats(stats: TextStats) -> str:
    """'42 words · 230 chars · 3 sentences · ~11s read'"""
    if stats.words == 0:
        return "No text"
    word_label = "word" if stats.words == 1 else "words"
    sentence_label = "sentence" if stats.sentences == 1 else "sentences"
    reading = format_duration(max(stats.reading_seconds, 1))
    return (
        f"{stats.words} {word_label} · {stats.characters} chars · "
        f"{stats.sentences} {sentence_label} · ~{reading} read"
    )


def format_generation_stats(stats) -> str:
    """
    Summarize a GenerationStats instance.

    Example:
        '58 words, 312 chars in 4.2s (74 chars/s)'
    """
    if stats is None:
        return ""
    return (
        f"{stats.output_words} words, {stats.output_chars} chars in {stats.elapsed_seconds:.1f}s "
        f"({stats.chars_per_second:.0f} chars/s)"
    )
