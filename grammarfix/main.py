"""
GrammarFix - Main Application Entry Point

Parses the command line, then initializes CustomTkinter and launches the
main window.

    grammarfix                    # on-device model (llama.cpp)
    grammarfix --backend ollama   # local Ollama service
    grammarfix --debug            # verbose console + debug_flow.txt
"""

import argparse
import os
import sys


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="grammarfix",
        description="Fix grammar, rewrite and adjust the tone of text with a local LLM."
    )
    parser.add_argument(
        "--backend",
        choices=("local", "ollama"),
        default=os.environ.get('GRAMMARFIX_BACKEND', "local").lower(),
        help="Inference backend: 'local' downloads a GGUF model and runs it in-process, "
             "'ollama' uses a running Ollama service (default: %(default)s)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging"
    )
    return parser.parse_args(argv)


def main(argv=None):
    """
    Main entry point for the GrammarFix desktop application.
    """
    args = parse_args(argv)

    # DEBUG_MODE and BACKEND are read when grammarfix.config is first imported
    if args.debug:
        os.environ['DEBUG'] = 'true'
    os.environ['GRAMMARFIX_BACKEND'] = args.backend

    import customtkinter as ctk

    from grammarfix.logging_config import close_debug_log, info
    from grammarfix.ui.main_window import GrammarFixWindow

    info(f"Starting GrammarFix (backend: {args.backend})")

    # Set appearance mode (light/dark/system)
    ctk.set_appearance_mode("System")
    ctk.set_default_color_theme("blue")

    try:
        app = GrammarFixWindow(backend_name=args.backend)
        app.mainloop()
    finally:
        close_debug_log()
    return 0


if __name__ == "__main__":
    sys.exit(main())
