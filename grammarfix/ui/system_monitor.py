"""
System Monitor Widget for GrammarFix

Shows CPU, RAM and the app's own memory footprint (which jumps by the model
size once llama.cpp has loaded a GGUF file) in the statistics bar.
"""

import os
import threading
import time
from dataclasses import dataclass

import customtkinter as ctk
import psutil

# Usage thresholds, applied independently to CPU and RAM
THRESHOLD_ELEVATED = 75
THRESHOLD_HIGH = 85
THRESHOLD_CRITICAL = 90


@dataclass(frozen=True)
class SystemUsage:
    cpu_percent: float
    ram_percent: float
    process_rss_mb: float


def read_system_usage(process: psutil.Process = None) -> SystemUsage:
    """
    Sample current usage without blocking.

    cpu_percent(interval=None) returns the usage since the previous call,
    so the first sample after startup reads 0.
    """
    process = process or psutil.Process(os.getpid())
    return SystemUsage(
        cpu_percent=psutil.cpu_percent(interval=None),
        ram_percent=psutil.virtual_memory().percent,
        process_rss_mb=process.memory_info().rss / (1024 ** 2),
    )


def usage_colors(percent: float) -> tuple:
    """
    Background and foreground colors for a usage percentage.

    - below 75%: green
    - 75-84%: yellow
    - 85-89%: orange
    - 90% and above: red
    """
    if percent < THRESHOLD_ELEVATED:
        return ("#1a3a1a", "#90EE90")
    elif percent < THRESHOLD_HIGH:
        return ("#3a3a1a", "#FFEB3B")
    elif percent < THRESHOLD_CRITICAL:
        return ("#3a2a1a", "#FFA500")
    else:
        return ("#3a1a1a", "#FF4444")


def format_usage_label(name: str, percent: float) -> str:
    """'CPU: 42%', with a '!' appended at the critical threshold."""
    indicator = "!" if percent >= THRESHOLD_CRITICAL else ""
    return f"{name}: {round(percent)}%{indicator}"


class SystemMonitor(ctk.CTkFrame):
    """
    Resource monitor with color-coded CPU and RAM indicators.

    A daemon thread samples psutil; the Tk thread picks up the latest sample
    with after() so no widget is touched off the main thread.
    """

    def __init__(self, parent=None, update_interval_ms=2000):
        super().__init__(parent, fg_color="transparent")
        self.update_interval_ms = update_interval_ms
        self.monitoring = False
        self._latest: SystemUsage | None = None
        self._lock = threading.Lock()
        self._process = psutil.Process(os.getpid())

        self.cpu_frame = ctk.CTkFrame(self, fg_color="#1a3a1a", corner_radius=4)
        self.cpu_frame.pack(side="left", padx=(5, 2), pady=3)
        self.cpu_label = ctk.CTkLabel(self.cpu_frame, text="CPU: 0%", font=ctk.CTkFont(size=10), text_color="#90EE90")
        self.cpu_label.pack(padx=6, pady=2)

        self.ram_frame = ctk.CTkFrame(self, fg_color="#1a3a1a", corner_radius=4)
        self.ram_frame.pack(side="left", padx=2, pady=3)
        self.ram_label = ctk.CTkLabel(self.ram_frame, text="RAM: 0%", font=ctk.CTkFont(size=10), text_color="#90EE90")
        self.ram_label.pack(padx=6, pady=2)

        self.app_label = ctk.CTkLabel(
            self,
            text="App: 0 MB",
            font=ctk.CTkFont(size=10),
            text_color=("gray40", "gray60")
        )
        self.app_label.pack(side="left", padx=(4, 5))

        self.start_monitoring()

    def start_monitoring(self):
        """Start the sampling thread and the main-thread refresh loop."""
        self.monitoring = True
        threading.Thread(target=self._monitoring_loop, daemon=True).start()
        self._schedule_main_thread_update()

    def stop_monitoring(self):
        self.monitoring = False

    def _monitoring_loop(self):
        """Background sampling; never touches widgets."""
        psutil.cpu_percent(interval=None)  # prime the CPU counter
        while self.monitoring:
            try:
                usage = read_system_usage(self._process)
            except psutil.Error:
                usage = None
            if usage is not None:
                with self._lock:
                    self._latest = usage
            time.sleep(self.update_interval_ms / 1000.0)

    def _schedule_main_thread_update(self):
        if not self.monitoring:
            return

        with self._lock:
            usage, self._latest = self._latest, None
        if usage is not None:
            self._update_display(usage)

        self.after(self.update_interval_ms, self._schedule_main_thread_update)

    def _update_display(self, usage: SystemUsage):
        cpu_bg, cpu_fg = usage_colors(usage.cpu_percent)
        ram_bg, ram_fg = usage_colors(usage.ram_percent)

        self.cpu_label.configure(text=format_usage_label("CPU", usage.cpu_percent), text_color=cpu_fg)
        self.cpu_frame.configure(fg_color=cpu_bg)
        self.ram_label.configure(text=format_usage_label("RAM", usage.ram_percent), text_color=ram_fg)
        self.ram_frame.configure(fg_color=ram_bg)
        self.app_label.configure(text=f"App: {usage.process_rss_mb:.0f} MB")

    def destroy(self):
        self.stop_monitoring()
        super().destroy()
