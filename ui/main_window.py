# -*- coding: utf-8 -*-

import queue
import tkinter as tk
from tkinter import messagebox, ttk
from typing import Dict, List, Optional

from tkinterweb import HtmlFrame

from core.timer_engine import TimerState, status_line
from domain.models import AnalyticsRange, Settings
from remote.server import local_ip
from services import events
from services.catalog_service import CatalogService
from services.errors import ServiceError
from services.events import EventBus
from services.settings_service import SettingsService
from services.stats_service import (
    DEFAULT_STATS_PERIOD,
    STATS_PERIOD_DAYS,
    StatsService,
    build_range,
    days_for_period,
)
from services.timer_service import TimerService
from ui.markdown_renderer import DARK_THEME, MarkdownRenderer, MarkdownTheme
from ui.pomodoro_widget import PomodoroWidget
from ui.stats_report import build_report_md

EVENT_POLL_MS = 200
NO_PROJECT = "(no project)"
ALL_PROJECTS = "All projects"
ALL_TAGS = "All tags"

# (field, label, low, high) for the duration spinboxes
DURATION_FIELDS = [
    ("focus_min", "Focus (min)", 1, 180),
    ("short_break_min", "Short break (min)", 1, 60),
    ("long_break_min", "Long break (min)", 1, 90),
    ("long_break_every", "Long break every", 2, 10),
]


class MainWindow:
    def __init__(
        self,
        timer_service: TimerService,
        settings_service: SettingsService,
        catalog_service: CatalogService,
        stats_service: StatsService,
        bus: EventBus,
    ):
        self.timer_service = timer_service
        self.settings_service = settings_service
        self.catalog_service = catalog_service
        self.stats_service = stats_service
        self.bus = bus
        self.events = bus.subscribe()

        self.root = tk.Tk()
        self.root.title("Pomodoro")
        self.root.geometry("980x760")
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

        self._project_ids: Dict[str, Optional[int]] = {NO_PROJECT: None}
        self._tag_index_to_id: Dict[int, int] = {}
        self._filter_tag_ids: Dict[str, Optional[int]] = {ALL_TAGS: None}
        self.settings: Settings = settings_service.get()
        self.renderer = MarkdownRenderer(self._theme())

        self._build_ui()
        self._refresh_catalog()
        self._render_state(timer_service.get_state())
        self._render_settings(self.settings)
        self._refresh_stats()
        self.root.after(EVENT_POLL_MS, self._poll_events)

    def _theme(self) -> MarkdownTheme:
        return DARK_THEME if self.settings.theme == "dark" else MarkdownTheme()

    def _build_ui(self):
        root = self.root

        outer = ttk.Frame(root, padding=10)
        outer.pack(fill="both", expand=True)

        outer.columnconfigure(0, weight=1)
        outer.columnconfigure(1, weight=2)
        outer.rowconfigure(0, weight=1)

        # LEFT: session context (project / tags), remote control, settings
        left = ttk.Frame(outer)
        left.grid(row=0, column=0, sticky="nsew", padx=(0, 10))
        left.columnconfigure(0, weight=1)
        left.rowconfigure(0, weight=1)

        ctx = ttk.Labelframe(left, text="Context", padding=10)
        ctx.grid(row=0, column=0, sticky="nsew")
        ctx.columnconfigure(0, weight=1)
        ctx.rowconfigure(4, weight=1)

        self.project_var = tk.StringVar(value=NO_PROJECT)
        self.project_box = ttk.Combobox(
            ctx, textvariable=self.project_var, state="readonly"
        )
        self.project_box.grid(row=0, column=0, sticky="ew")

        add_project = ttk.Frame(ctx)
        add_project.grid(row=1, column=0, sticky="ew", pady=(6, 0))
        add_project.columnconfigure(0, weight=1)
        self.new_project_var = tk.StringVar()
        ttk.Entry(add_project, textvariable=self.new_project_var).grid(
            row=0, column=0, sticky="ew"
        )
        ttk.Button(add_project, text="Add project", command=self._add_project).grid(
            row=0, column=1, padx=(6, 0)
        )

        self.err_var = tk.StringVar(value="")
        ttk.Label(ctx, textvariable=self.err_var, foreground="red").grid(
            row=2, column=0, sticky="w", pady=(6, 6)
        )

        ttk.Label(ctx, text="Tags").grid(row=3, column=0, sticky="w")
        self.tag_list = tk.Listbox(ctx, height=8, selectmode="multiple", exportselection=False)
        self.tag_list.grid(row=4, column=0, sticky="nsew")

        add_tag = ttk.Frame(ctx)
        add_tag.grid(row=5, column=0, sticky="ew", pady=(6, 0))
        add_tag.columnconfigure(0, weight=1)
        self.new_tag_var = tk.StringVar()
        ttk.Entry(add_tag, textvariable=self.new_tag_var).grid(
            row=0, column=0, sticky="ew"
        )
        ttk.Button(add_tag, text="Add tag", command=self._add_tag).grid(
            row=0, column=1, padx=(6, 0)
        )

        ttk.Button(ctx, text="Use for current session", command=self._apply_context).grid(
            row=6, column=0, sticky="ew", pady=(8, 0)
        )

        remote = ttk.Labelframe(left, text="Remote control", padding=10)
        remote.grid(row=1, column=0, sticky="ew", pady=(10, 0))
        remote.columnconfigure(1, weight=1)

        self.remote_enabled_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(
            remote,
            text="Enabled",
            variable=self.remote_enabled_var,
            command=self._save_remote,
        ).grid(row=0, column=0, sticky="w")

        self.port_var = tk.StringVar()
        ttk.Entry(remote, textvariable=self.port_var, width=8).grid(
            row=0, column=1, sticky="e"
        )
        ttk.Button(remote, text="Save port", command=self._save_remote).grid(
            row=0, column=2, padx=(6, 0)
        )

        self.remote_url_var = tk.StringVar(value="")
        ttk.Label(remote, textvariable=self.remote_url_var, wraplength=280).grid(
            row=1, column=0, columnspan=3, sticky="w", pady=(6, 0)
        )

        actions = ttk.Frame(remote)
        actions.grid(row=2, column=0, columnspan=3, sticky="ew", pady=(6, 0))
        ttk.Button(actions, text="New token", command=self._new_token).pack(side="left")
        ttk.Button(actions, text="Reset all data", command=self._reset_all).pack(
            side="right"
        )

        prefs = ttk.Labelframe(left, text="Settings", padding=10)
        prefs.grid(row=2, column=0, sticky="ew", pady=(10, 0))
        prefs.columnconfigure(1, weight=1)

        self.duration_vars: Dict[str, tk.StringVar] = {}
        for row, (name, label, low, high) in enumerate(DURATION_FIELDS):
            ttk.Label(prefs, text=label).grid(row=row, column=0, sticky="w")
            var = tk.StringVar()
            ttk.Spinbox(prefs, from_=low, to=high, textvariable=var, width=6).grid(
                row=row, column=1, sticky="e", pady=1
            )
            self.duration_vars[name] = var

        row = len(DURATION_FIELDS)
        ttk.Label(prefs, text="Theme").grid(row=row, column=0, sticky="w")
        self.theme_var = tk.StringVar(value="light")
        ttk.Combobox(
            prefs,
            textvariable=self.theme_var,
            values=["light", "dark"],
            state="readonly",
            width=8,
        ).grid(row=row, column=1, sticky="e", pady=1)

        self.sound_var = tk.BooleanVar(value=True)
        ttk.Checkbutton(prefs, text="Sound", variable=self.sound_var).grid(
            row=row + 1, column=0, sticky="w"
        )
        self.notify_var = tk.BooleanVar(value=True)
        ttk.Checkbutton(prefs, text="Notifications", variable=self.notify_var).grid(
            row=row + 1, column=1, sticky="e"
        )

        ttk.Button(prefs, text="Save settings", command=self._save_settings).grid(
            row=row + 2, column=0, columnspan=2, sticky="ew", pady=(8, 0)
        )

        # RIGHT: Pomodoro + Stats
        right = ttk.Frame(outer)
        right.grid(row=0, column=1, sticky="nsew")
        right.columnconfigure(0, weight=1)
        right.rowconfigure(0, weight=0)
        right.rowconfigure(1, weight=1)

        self.pomodoro = PomodoroWidget(
            right,
            timer_service=self.timer_service,
            on_error=self.err_var.set,
        )
        self.pomodoro.grid(row=0, column=0, sticky="ew")

        stats = ttk.Labelframe(right, text="Stats", padding=4)
        stats.grid(row=1, column=0, sticky="nsew", pady=(10, 0))
        stats.columnconfigure(0, weight=1)
        stats.rowconfigure(1, weight=1)

        filters = ttk.Frame(stats)
        filters.grid(row=0, column=0, sticky="ew", pady=(0, 4))

        self.period_var = tk.StringVar(value=DEFAULT_STATS_PERIOD)
        self.filter_project_var = tk.StringVar(value=ALL_PROJECTS)
        self.filter_tag_var = tk.StringVar(value=ALL_TAGS)

        period_box = ttk.Combobox(
            filters,
            textvariable=self.period_var,
            values=list(STATS_PERIOD_DAYS),
            state="readonly",
            width=8,
        )
        self.filter_project_box = ttk.Combobox(
            filters, textvariable=self.filter_project_var, state="readonly", width=18
        )
        self.filter_tag_box = ttk.Combobox(
            filters, textvariable=self.filter_tag_var, state="readonly", width=14
        )
        for col, box in enumerate((period_box, self.filter_project_box, self.filter_tag_box)):
            box.grid(row=0, column=col, padx=(0, 6))
            box.bind("<<ComboboxSelected>>", lambda _e: self._refresh_stats())

        self.stats_view = HtmlFrame(stats, horizontal_scrollbar="auto")
        self.stats_view.grid(row=1, column=0, sticky="nsew")

    def run(self):
        self.root.mainloop()

    def _on_close(self):
        self.bus.unsubscribe(self.events)
        self.root.destroy()

    # ----- Event channel -----
    def _poll_events(self):
        try:
            while True:
                event = self.events.get_nowait()
                self._on_event(event)
        except queue.Empty:
            pass
        self.root.after(EVENT_POLL_MS, self._poll_events)

    def _on_event(self, event: events.Event):
        if event.topic == events.TIMER_STATE:
            self._render_state(event.payload)
        elif event.topic == events.SESSION_COMPLETED:
            self._refresh_stats()
        elif event.topic == events.PHASE_COMPLETED:
            if self.settings.sound_enabled:
                self.root.bell()
        elif event.topic == events.SETTINGS_CHANGED:
            self._render_settings(event.payload)

    def _render_state(self, snap: TimerState):
        self.pomodoro.render(snap)
        self.root.title(f"Pomodoro · {status_line(snap)}")

    def _render_settings(self, settings: Settings):
        theme_changed = settings.theme != self.settings.theme
        self.settings = settings
        if theme_changed:
            self.renderer = MarkdownRenderer(self._theme())
            self._refresh_stats()

        for name, var in self.duration_vars.items():
            var.set(str(getattr(settings, name)))
        self.theme_var.set(settings.theme)
        self.sound_var.set(settings.sound_enabled)
        self.notify_var.set(settings.notifications_enabled)

        self.remote_enabled_var.set(settings.remote_control_enabled)
        self.port_var.set(str(settings.remote_control_port))
        if settings.remote_control_enabled:
            self.remote_url_var.set(
                f"http://{local_ip()}:{settings.remote_control_port}/"
                f"?token={settings.remote_control_token}"
            )
        else:
            self.remote_url_var.set("Off")

    # ----- Context -----
    def _refresh_catalog(self):
        projects = self.catalog_service.list_projects(include_archived=False)
        self._project_ids = {NO_PROJECT: None}
        for p in projects:
            self._project_ids[p.name] = p.id
        self.project_box.configure(values=list(self._project_ids))
        project_filters = [ALL_PROJECTS] + [p.name for p in projects]
        self.filter_project_box.configure(values=project_filters)
        if self.filter_project_var.get() not in project_filters:
            self.filter_project_var.set(ALL_PROJECTS)

        tags = self.catalog_service.list_tags()
        self.tag_list.delete(0, tk.END)
        self._tag_index_to_id.clear()
        for i, t in enumerate(tags):
            self.tag_list.insert(tk.END, t.name)
            self._tag_index_to_id[i] = t.id

        self._filter_tag_ids = {ALL_TAGS: None}
        for t in tags:
            self._filter_tag_ids[t.name] = t.id
        self.filter_tag_box.configure(values=list(self._filter_tag_ids))
        if self.filter_tag_var.get() not in self._filter_tag_ids:
            self.filter_tag_var.set(ALL_TAGS)

    def _selected_tag_ids(self) -> List[int]:
        return [self._tag_index_to_id[int(i)] for i in self.tag_list.curselection()]

    def _add_project(self):
        try:
            project = self.catalog_service.upsert_project(self.new_project_var.get())
        except (ValueError, ServiceError) as e:
            self.err_var.set(str(e))
            return
        self.new_project_var.set("")
        self.err_var.set("")
        self._refresh_catalog()
        self.project_var.set(project.name)

    def _add_tag(self):
        try:
            self.catalog_service.upsert_tag(self.new_tag_var.get())
        except (ValueError, ServiceError) as e:
            self.err_var.set(str(e))
            return
        self.new_tag_var.set("")
        self.err_var.set("")
        self._refresh_catalog()

    def _apply_context(self):
        project_id = self._project_ids.get(self.project_var.get())
        try:
            self.timer_service.set_context(project_id, self._selected_tag_ids())
            self.err_var.set("")
        except ServiceError as e:
            self.err_var.set(str(e))

    # ----- Remote / settings -----
    def _save_remote(self):
        try:
            port = int(self.port_var.get())
        except ValueError:
            self.err_var.set("Port must be a number.")
            return
        try:
            self.settings_service.update(
                {
                    "remote_control_enabled": self.remote_enabled_var.get(),
                    "remote_control_port": port,
                }
            )
            self.err_var.set("")
        except (ValueError, ServiceError) as e:
            self.err_var.set(str(e))

    def _save_settings(self):
        patch = {}
        try:
            for name, var in self.duration_vars.items():
                patch[name] = int(var.get())
        except ValueError:
            self.err_var.set("Durations must be whole numbers.")
            return
        patch["theme"] = self.theme_var.get()
        patch["sound_enabled"] = self.sound_var.get()
        patch["notifications_enabled"] = self.notify_var.get()
        try:
            self.settings_service.update(patch)
            self.err_var.set("")
        except (ValueError, ServiceError) as e:
            self.err_var.set(str(e))

    def _new_token(self):
        try:
            self.settings_service.regenerate_token()
        except ServiceError as e:
            self.err_var.set(str(e))

    def _reset_all(self):
        if not messagebox.askyesno(
            "Reset all data",
            "Delete all sessions, projects, tags and settings?",
        ):
            return
        try:
            self.settings_service.reset_all_data()
        except ServiceError as e:
            self.err_var.set(str(e))
            return
        self._refresh_catalog()
        self._refresh_stats()

    # ----- Stats -----
    def _stats_range(self) -> AnalyticsRange:
        project = self.filter_project_var.get()
        return build_range(
            days_for_period(self.period_var.get()),
            project_id=None if project == ALL_PROJECTS else self._project_ids.get(project),
            tag_id=self._filter_tag_ids.get(self.filter_tag_var.get()),
        )

    def _refresh_stats(self):
        try:
            rng = self._stats_range()
            summary = self.stats_service.summary(rng)
            points = self.stats_service.timeseries(rng)
            recent = self.stats_service.session_history(rng)[:10]
            today = self.stats_service.total_today_focus_sec()
            projects = {p.id: p for p in self.catalog_service.list_projects()}
        except ServiceError as e:
            self.err_var.set(str(e))
            return
        md = build_report_md(summary, points, recent, projects, today_focus_sec=today)
        self.stats_view.load_html(self.renderer.to_html(md))
