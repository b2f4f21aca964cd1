# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import ttk
from typing import Callable

from core.timer_engine import TimerState, format_clock
from domain.models import Phase
from services.errors import ServiceError
from services.timer_service import TimerService

PHASE_COLORS = {
    Phase.FOCUS: "#4A90E2",
    Phase.SHORT_BREAK: "#7ED321",
    Phase.LONG_BREAK: "#2E8B57",
}


class PomodoroWidget(ttk.Frame):
    """
    Timer display + controls. Commands go straight to TimerService;
    rendering only happens from snapshots handed in via render().
    """

    def __init__(
        self,
        master,
        timer_service: TimerService,
        on_error: Callable[[str], None],
    ):
        super().__init__(master)

        self.timer_service = timer_service
        self.on_error = on_error

        self._build_ui()

    def _build_ui(self):
        self.columnconfigure(0, weight=1)

        self.phase_var = tk.StringVar(value="Focus")
        self.time_var = tk.StringVar(value="25:00")
        self.info_var = tk.StringVar(value="Ready")

        title = ttk.Label(self, text="Pomodoro", font=("Sans", 12, "bold"))
        title.grid(row=0, column=0, sticky="w", pady=(0, 6))

        self.phase_label = tk.Label(
            self, textvariable=self.phase_var, fg="white", padx=8, pady=2
        )
        self.phase_label.grid(row=1, column=0, sticky="w")

        self.time_label = ttk.Label(
            self, textvariable=self.time_var, font=("Sans", 32, "bold")
        )
        self.time_label.grid(row=2, column=0, sticky="w", pady=(8, 4))

        self.info_label = ttk.Label(self, textvariable=self.info_var)
        self.info_label.grid(row=3, column=0, sticky="w", pady=(0, 10))

        btns = ttk.Frame(self)
        btns.grid(row=4, column=0, sticky="w")

        self.toggle_btn = ttk.Button(btns, text="Start", command=self._toggle)
        self.skip_btn = ttk.Button(btns, text="Skip", command=self._skip)

        self.toggle_btn.grid(row=0, column=0, padx=(0, 6))
        self.skip_btn.grid(row=0, column=1)

    def _toggle(self):
        try:
            self.timer_service.toggle()
        except ServiceError as e:
            self.on_error(str(e))

    def _skip(self):
        try:
            self.timer_service.skip()
        except ServiceError as e:
            self.on_error(str(e))

    def render(self, snap: TimerState):
        self.time_var.set(format_clock(snap.remaining_seconds))
        self.phase_var.set(snap.phase.label)
        self.phase_label.configure(bg=PHASE_COLORS[snap.phase])

        if snap.is_running:
            self.info_var.set(f"Running... (interruptions: {snap.interruptions})")
            self.toggle_btn.configure(text="Pause")
        elif snap.started_at is not None:
            self.info_var.set("Paused")
            self.toggle_btn.configure(text="Resume")
        else:
            self.info_var.set(f"Ready · cycle {snap.cycle_index}")
            self.toggle_btn.configure(text="Start")
