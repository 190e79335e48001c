"""
Window Layout Mixin for GrammarFixWindow

Widget creation and layout only; behavior lives in main_window.py.

Usage:
    class GrammarFixWindow(WindowLayoutMixin, ctk.CTk):
        def __init__(self):
            super().__init__()
            self._create_header()
            self._create_status_card()
            self._create_main_panels()
            self._create_status_bar()
"""

import customtkinter as ctk

from grammarfix.prompting import (
    DEFAULT_TONE,
    TASK_ADJUST_TONE,
    TASK_FIX_GRAMMAR,
    TASK_READER_REACTION,
    TASK_REWRITE,
    TONES,
    WRITING_TASKS,
)


class WindowLayoutMixin:
    """
    Mixin providing layout creation methods for GrammarFixWindow.

    This mixin expects the following attributes to be defined:
    - self (ctk.CTk window instance)
    - self.backend_name (str)
    - self._start_download, self._cancel_download (callback methods)
    - self._run_task(task_id) (callback method)
    - self._on_input_changed(event) (callback method)
    - self._copy_output (callback method)

    And creates these widget references:
    - self.header_frame, self.title_label, self.backend_label
    - self.status_card, self.status_label, self.progress_bar
    - self.download_btn, self.cancel_btn
    - self.input_box, self.output_box, self.copy_btn
    - self.task_buttons (task_id -> CTkButton), self.tone_menu
    - self.status_frame, self.text_stats_label, self.generation_stats_label
    - self.system_monitor, self.timer_label
    """

    def _create_header(self):
        """Create header row with the app title and active backend."""
        self.header_frame = ctk.CTkFrame(self, height=50, corner_radius=0)
        self.header_frame.pack(fill="x", padx=0, pady=0)
        self.header_frame.pack_propagate(False)

        self.title_label = ctk.CTkLabel(
            self.header_frame,
            text="GrammarFix",
            font=ctk.CTkFont(size=20, weight="bold")
        )
        self.title_label.pack(side="left", padx=15, pady=10)

        backend_text = "On-device (llama.cpp)" if self.backend_name == "local" else "Ollama"
        self.backend_label = ctk.CTkLabel(
            self.header_frame,
            text=f"Backend: {backend_text}",
            font=ctk.CTkFont(size=12),
            text_color=("gray40", "gray60")
        )
        self.backend_label.pack(side="right", padx=15, pady=10)

    def _create_status_card(self):
        """Create the model status card with progress bar and download controls."""
        self.status_card = ctk.CTkFrame(self)
        self.status_card.pack(fill="x", padx=10, pady=(10, 0))
        self.status_card.grid_columnconfigure(0, weight=1)

        self.status_label = ctk.CTkLabel(
            self.status_card,
            text="Checking model...",
            font=ctk.CTkFont(size=13, weight="bold"),
            anchor="w"
        )
        self.status_label.grid(row=0, column=0, sticky="ew", padx=12, pady=(10, 4))

        btn_frame = ctk.CTkFrame(self.status_card, fg_color="transparent")
        btn_frame.grid(row=0, column=1, rowspan=2, sticky="e", padx=12, pady=8)

        self.download_btn = ctk.CTkButton(
            btn_frame,
            text="Download Model",
            width=180,
            command=self._start_download
        )
        self.cancel_btn = ctk.CTkButton(
            btn_frame,
            text="Cancel",
            width=80,
            fg_color=("gray70", "gray30"),
            command=self._cancel_download
        )
        # Packed by _apply_snapshot when relevant

        # Gridded by _apply_snapshot while downloading, loading or processing
        self.progress_bar = ctk.CTkProgressBar(self.status_card, mode="determinate")
        self.progress_bar.set(0)

    def _create_main_panels(self):
        """Create the input (left) and output (right) panels."""
        self.main_frame = ctk.CTkFrame(self, fg_color="transparent")
        self.main_frame.pack(fill="both", expand=True, padx=10, pady=10)

        self.main_frame.grid_columnconfigure(0, weight=1)
        self.main_frame.grid_columnconfigure(1, weight=1)
        self.main_frame.grid_rowconfigure(0, weight=1)

        self._create_input_panel()
        self._create_output_panel()

    def _create_input_panel(self):
        """Create the text input and the writing task buttons."""
        self.input_panel = ctk.CTkFrame(self.main_frame)
        self.input_panel.grid(row=0, column=0, sticky="nsew", padx=(0, 5), pady=0)
        self.input_panel.grid_columnconfigure(0, weight=1)
        self.input_panel.grid_rowconfigure(1, weight=1)

        input_header = ctk.CTkLabel(
            self.input_panel,
            text="✏ YOUR TEXT",
            font=ctk.CTkFont(size=14, weight="bold")
        )
        input_header.grid(row=0, column=0, sticky="w", padx=10, pady=(10, 5))

        self.input_box = ctk.CTkTextbox(self.input_panel, wrap="word", font=ctk.CTkFont(size=13))
        self.input_box.grid(row=1, column=0, sticky="nsew", padx=10, pady=5)
        self.input_box.bind("<KeyRelease>", self._on_input_changed)
        self.input_box.configure(state="disabled")  # Enabled once the model is ready

        actions = ctk.CTkFrame(self.input_panel, fg_color="transparent")
        actions.grid(row=2, column=0, sticky="ew", padx=10, pady=(5, 10))
        actions.grid_columnconfigure((0, 1), weight=1)

        self.task_buttons = {}
        for task_id, row, column in (
            (TASK_FIX_GRAMMAR, 0, 0),
            (TASK_REWRITE, 0, 1),
            (TASK_ADJUST_TONE, 1, 0),
            (TASK_READER_REACTION, 2, 0),
        ):
            btn = ctk.CTkButton(
                actions,
                text=WRITING_TASKS[task_id].label,
                height=36,
                font=ctk.CTkFont(size=13, weight="bold"),
                state="disabled",
                command=lambda t=task_id: self._run_task(t)
            )
            span = 2 if task_id == TASK_READER_REACTION else 1
            btn.grid(row=row, column=column, columnspan=span, sticky="ew", padx=3, pady=3)
            self.task_buttons[task_id] = btn

        self.tone_menu = ctk.CTkOptionMenu(
            actions,
            values=[tone.capitalize() for tone in TONES],
            height=36
        )
        self.tone_menu.set(DEFAULT_TONE.capitalize())
        self.tone_menu.grid(row=1, column=1, sticky="ew", padx=3, pady=3)

    def _create_output_panel(self):
        """Create the read-only result display."""
        self.output_panel = ctk.CTkFrame(self.main_frame)
        self.output_panel.grid(row=0, column=1, sticky="nsew", padx=(5, 0), pady=0)
        self.output_panel.grid_columnconfigure(0, weight=1)
        self.output_panel.grid_rowconfigure(1, weight=1)

        header = ctk.CTkFrame(self.output_panel, fg_color="transparent")
        header.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 5))

        output_label = ctk.CTkLabel(
            header,
            text="📋 RESULT",
            font=ctk.CTkFont(size=14, weight="bold")
        )
        output_label.pack(side="left")

        self.copy_btn = ctk.CTkButton(
            header,
            text="Copy",
            width=60,
            fg_color=("gray70", "gray30"),
            command=self._copy_output
        )
        self.copy_btn.pack(side="right")

        self.output_box = ctk.CTkTextbox(self.output_panel, wrap="word", font=ctk.CTkFont(size=13))
        self.output_box.grid(row=1, column=0, sticky="nsew", padx=10, pady=(5, 10))
        self.output_box.configure(state="disabled")

    def _create_status_bar(self):
        """Create the statistics bar at the bottom of the window."""
        from grammarfix.ui.system_monitor import SystemMonitor

        self.status_frame = ctk.CTkFrame(self, height=30, corner_radius=0)
        self.status_frame.pack(fill="x", side="bottom")
        self.status_frame.pack_propagate(False)

        self.text_stats_label = ctk.CTkLabel(
            self.status_frame,
            text="No text",
            font=ctk.CTkFont(size=11)
        )
        self.text_stats_label.pack(side="left", padx=10, pady=5)

        self.timer_label = ctk.CTkLabel(
            self.status_frame,
            text="⏱ 0:00",
            font=ctk.CTkFont(size=11)
        )
        self.timer_label.pack(side="right", padx=10, pady=5)

        self.system_monitor = SystemMonitor(self.status_frame)
        self.system_monitor.pack(side="right", padx=5)

        self.generation_stats_label = ctk.CTkLabel(
            self.status_frame,
            text="",
            font=ctk.CTkFont(size=11),
            text_color=("gray50", "gray60")
        )
        self.generation_stats_label.pack(side="right", padx=20, pady=5)
