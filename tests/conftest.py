"""
Shared pytest configuration.

GRAMMARFIX_HOME must point somewhere disposable before grammarfix.config is
imported, because the config module creates its directories on import.
"""

import os
import sys
import tempfile
from pathlib import Path

os.environ.setdefault('GRAMMARFIX_HOME', tempfile.mkdtemp(prefix="grammarfix-tests-"))

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest  # noqa: E402

from grammarfix.ai.chat_request import ChatMessage, ChatRequest, Role  # noqa: E402


@pytest.fixture
def chat_request():
    """A minimal grammar request aimed at a model id."""
    return ChatRequest(
        messages=(
            ChatMessage(Role.SYSTEM, "You are a grammar correction assistant."),
            ChatMessage(Role.USER, "Correct the following text: i has a apple"),
        ),
        model_ref="llama3.2:1b",
        temperature=0.1,
        top_p=0.95,
        max_tokens=256,
        task_id="fix-grammar",
    )
