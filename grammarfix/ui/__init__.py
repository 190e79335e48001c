"""
GrammarFix UI Package

Widgets are imported from their modules directly so that text_stats can be
used without a display:

    from grammarfix.ui.main_window import GrammarFixWindow
"""
