"""
GrammarFix - grammar correction, rewriting and tone adjustment with a
local LLM.
"""

__version__ = "1.0.0"
