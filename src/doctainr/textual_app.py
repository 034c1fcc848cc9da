"""Textual-based UI for doctainr."""

from __future__ import annotations

from typing import Any, Optional

from rich.markup import escape as rich_escape
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, Static, Tab, Tabs

from . import setup_logging
from .backend import DockerBackend
from .config import ConfigManager, config_manager
from .engine import SyncEngine
from .model import ContainerInfo, OperationalState
from .state import SnapshotStore, StoreSnapshot
from .stats import StatsCollector, format_metric_cards


class InputScreen(ModalScreen[Optional[str]]):
    def __init__(self, prompt: str, initial: str = "") -> None:
        super().__init__()
        self.prompt = prompt
        self.initial = initial

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static("Input", classes="modal_title"),
            Static(rich_escape(self.prompt), classes="modal_body"),
            Input(value=self.initial, placeholder="unix:///var/run/docker.sock", id="input_value"),
            Static("[Esc] Cancel", classes="modal_hint", markup=False),
            id="modal",
        )

    def on_mount(self) -> None:
        self.query_one("#input_value", Input).focus()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        value = event.value.strip()
        self.dismiss(value or None)

    async def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)


# Rendering helpers are plain functions of the snapshot so they can be tested without a terminal.

def render_dashboard(snapshot: StoreSnapshot) -> str:
    stats = StatsCollector().collect_stats(snapshot.containers, snapshot.images, snapshot.volumes)
    lines = ["DASHBOARD", "Overview of your local Docker engine", ""]
    for title, value, hint in format_metric_cards(stats):
        lines.append(f"{title:20} {value:>5}   {hint}")
    lines += [
        "",
        "ENGINE",
        f"Host: {snapshot.docker_host}",
        "Context: local",
    ]
    return "\n".join(lines)


def render_containers(containers: list[ContainerInfo], selected_index: int) -> str:
    if not containers:
        return "(no containers)"
    lines = [f"  {'NAME':20} {'STATUS':22} {'IMAGE':28} {'PORTS':18} {'STATE':8} ACTION", ""]
    for idx, c in enumerate(containers):
        marker = ">" if idx == selected_index else " "
        lines.append(
            f"{marker} {c.name[:20]:20} {c.status[:22]:22} {c.image[:28]:28} "
            f"{c.ports[:18]:18} {c.state.label:8} [{c.state.action_label}]"
        )
    return "\n".join(lines)


def render_images(snapshot: StoreSnapshot) -> str:
    if not snapshot.images:
        return "(no images)"
    lines = [f"{'REPOSITORY':30} {'TAG':15} {'IMAGE ID':20} SIZE", ""]
    for i in snapshot.images:
        lines.append(f"{i.repository[:30]:30} {i.tag[:15]:15} {i.id[:20]:20} {i.size}")
    return "\n".join(lines)


def render_volumes(snapshot: StoreSnapshot) -> str:
    if not snapshot.volumes:
        return "(no volumes)"
    lines = [f"{'NAME':28} {'DRIVER':10} {'MOUNTPOINT':50} SIZE", ""]
    for v in snapshot.volumes:
        lines.append(f"{v.name[:28]:28} {v.driver[:10]:10} {v.mountpoint[:50]:50} {v.size}")
    return "\n".join(lines)


def render_settings(snapshot: StoreSnapshot) -> str:
    return "\n".join(
        [
            "SETTINGS",
            "Connection and preferences",
            "",
            f"Docker host: {snapshot.docker_host}",
            "",
            "[h] Edit host   [t] Test connection   [w] Save",
            "A new host is used the next time doctainr starts.",
        ]
    )


def render_status(operational: OperationalState) -> str:
    parts = []
    if operational.loading:
        parts.append("Loading...")
    if operational.last_error:
        parts.append(f"Error: {operational.last_error}")
    elif operational.last_action:
        parts.append(operational.last_action)
    return "  ".join(parts)


class DoctainrApp(App[None]):
    TITLE = "doctainr"
    SUB_TITLE = "Docker dashboard"

    CSS = """
    Screen {
      layout: vertical;
    }

    #tabs {
      height: 1;
      padding: 0 1;
      background: $surface;
      color: $text;
    }

    #main {
      height: 1fr;
      border: round $accent;
      padding: 0 1;
      overflow: auto;
    }

    #status {
      height: 1;
      padding: 0 1;
      background: $panel;
      color: $text;
    }

    #modal {
      width: 70;
      height: auto;
      border: round $accent;
      background: $surface;
      padding: 1 2;
      align: center middle;
    }

    .modal_title {
      text-style: bold;
      margin-bottom: 1;
    }

    .modal_body {
      margin-bottom: 1;
    }

    .modal_hint {
      color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("1", "tab('dashboard')", "Dashboard", show=False),
        Binding("2", "tab('containers')", "Containers", show=False),
        Binding("3", "tab('images')", "Images", show=False),
        Binding("4", "tab('volumes')", "Volumes", show=False),
        Binding("5", "tab('settings')", "Settings", show=False),
        Binding("up", "up", "Up"),
        Binding("down", "down", "Down"),
        Binding("enter", "toggle_container", "Start/Stop"),
        Binding("s", "toggle_container", "Start/Stop", show=False),
        Binding("r", "refresh", "Refresh"),
        Binding("h", "edit_host", "Edit host", show=False),
        Binding("t", "test_connection", "Test connection", show=False),
        Binding("w", "save_settings", "Save", show=False),
    ]

    TABS = ["dashboard", "containers", "images", "volumes", "settings"]

    def __init__(self, engine: Optional[SyncEngine] = None, config: Optional[ConfigManager] = None) -> None:
        super().__init__()
        self.config_manager = config or config_manager
        if engine is None:
            # Only an explicit host bypasses from_env, which also reads the DOCKER_TLS_* settings.
            backend = DockerBackend(host=self.config_manager.get_config().docker.host)
            engine = SyncEngine(backend, SnapshotStore(docker_host=self.config_manager.get_docker_host()))
        self.engine = engine
        self.store = engine.store
        self.selected_tab = "dashboard"
        self.selected_index = 0
        self._rendered_version = -1
        self._unsubscribe: Optional[Any] = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Tabs(
            Tab("DASHBOARD", id="dashboard"),
            Tab("CONTAINERS", id="containers"),
            Tab("IMAGES", id="images"),
            Tab("VOLUMES", id="volumes"),
            Tab("SETTINGS", id="settings"),
            id="tabs",
        )
        yield Static("", id="main")
        yield Static("", id="status")
        yield Footer()

    def on_mount(self) -> None:
        theme = self.config_manager.get_theme()
        if theme in self.available_themes:
            self.theme = theme
        # Store writes happen on this loop; batch them into one render per message.
        self._unsubscribe = self.store.subscribe(lambda _value: self.call_later(self._render_if_changed))
        interval = self.config_manager.get_refresh_interval()
        if interval > 0:
            self.set_interval(interval, self._auto_refresh)
        self.engine.refresh_all()
        self._render()

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
        close = getattr(self.engine.backend, "close", None)
        if callable(close):
            close()

    def _auto_refresh(self) -> None:
        if not self.store.loading.get():
            self.engine.refresh_all()

    def _render_if_changed(self) -> None:
        if self.store.get_version() != self._rendered_version:
            self._render()

    def _containers(self) -> list[ContainerInfo]:
        return list(self.store.containers.get())

    def _normalize_selection(self) -> None:
        count = len(self._containers())
        self.selected_index = max(0, min(self.selected_index, count - 1)) if count else 0

    def _render_main(self, snapshot: StoreSnapshot) -> str:
        if self.selected_tab == "containers":
            return render_containers(snapshot.containers, self.selected_index)
        if self.selected_tab == "images":
            return render_images(snapshot)
        if self.selected_tab == "volumes":
            return render_volumes(snapshot)
        if self.selected_tab == "settings":
            return render_settings(snapshot)
        return render_dashboard(snapshot)

    def _render(self) -> None:
        self._rendered_version = self.store.get_version()
        self._normalize_selection()
        snapshot = self.store.get_snapshot()
        self.query_one("#main", Static).update(rich_escape(self._render_main(snapshot)))
        self.query_one("#status", Static).update(rich_escape(render_status(snapshot.operational)))

    def action_tab(self, tab: str) -> None:
        self._set_tab(tab)

    def _set_tab(self, tab: str) -> None:
        if tab not in self.TABS:
            return
        self.selected_tab = tab
        self.selected_index = 0
        tabs = self.query_one("#tabs", Tabs)
        if tabs.active != tab:
            tabs.active = tab
        self._render()

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id
        if tab_id and tab_id != self.selected_tab:
            self._set_tab(tab_id)

    def action_up(self) -> None:
        if self.selected_tab == "containers":
            self.selected_index = max(0, self.selected_index - 1)
            self._render()

    def action_down(self) -> None:
        if self.selected_tab == "containers":
            self.selected_index += 1
            self._render()

    def action_toggle_container(self) -> None:
        if self.selected_tab != "containers":
            return
        containers = self._containers()
        if 0 <= self.selected_index < len(containers):
            container = containers[self.selected_index]
            self.engine.set_container_state(container.id, container.state.toggled())

    def action_refresh(self) -> None:
        self.engine.refresh_all()

    def action_test_connection(self) -> None:
        self.engine.test_connection()

    def action_edit_host(self) -> None:
        self.run_worker(self._edit_host_flow(), group="settings", exclusive=True)

    async def _edit_host_flow(self) -> None:
        value = await self.push_screen_wait(InputScreen("Docker host", self.store.docker_host.get()))
        if value:
            self.engine.set_docker_host(value)

    def action_save_settings(self) -> None:
        host = self.store.docker_host.get()
        self.config_manager.get_config().docker.host = host
        self.config_manager.save_config()
        self.engine.record_action("Saved settings")

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool:
        # If a modal screen is active, app-level bindings must not steal keys.
        if len(self.screen_stack) > 1:
            return False
        return True


def run() -> None:
    config = config_manager.load_config()
    setup_logging(
        config_manager.get_log_level(),
        config_manager.get_custom_log_path(),
        config.logging.max_size_mb,
        config.logging.backup_count,
    )
    app = DoctainrApp()
    app.run()
