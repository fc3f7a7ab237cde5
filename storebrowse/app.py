from __future__ import annotations

import argparse
import asyncio
import logging
import webbrowser
from pathlib import Path
from time import monotonic
from typing import Optional, Union

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.logging import TextualHandler
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import (
    Button,
    DataTable,
    Footer,
    Header,
    Input,
    Select,
    Static,
)

from .api import FetchFailure, StoreClient
from .config import BrowserConfig, load_config, save_config
from .icons import FOLDER_ICON, glyph_for_icon
from .listing import BucketListingModel, BucketModel, FileItem, SearchModel
from .router import Router
from .routes import (
    bucket_listing_hash,
    location_from_arg,
    parse_hash,
    route_hash,
    search_hash,
)
from .views import REVISION_CHANGED, Listener

logger = logging.getLogger(__name__)

ESC_QUIT_WINDOW_SECONDS = 1.0
SEARCH_PREFIX = "?"


def cell(label: str, style: str = "") -> Text:
    return Text(label or "", style=style, no_wrap=True, overflow="ellipsis")


class LinkButton(Button):
    def __init__(self, label: str, location: str, **kwargs) -> None:
        super().__init__(Text(label), **kwargs)
        self.location = location


class ViewContainer(Vertical):
    """Renders view models into widgets and hosts view-owned listeners."""

    class Navigate(Message):
        def __init__(self, location: str) -> None:
            super().__init__()
            self.location = location

    class OpenFile(Message):
        def __init__(self, item: FileItem) -> None:
            super().__init__()
            self.item = item

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._listeners: dict[str, list[Listener]] = {}
        self._row_keys: list[str] = []
        self._row_targets: dict[str, Union[str, FileItem]] = {}
        self.model: Optional[object] = None

    def add_listener(self, event: str, callback: Listener) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Listener) -> None:
        callbacks = self._listeners.get(event)
        if not callbacks:
            return
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            del self._listeners[event]

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(callbacks) for callbacks in self._listeners.values())

    async def _replace(self, *widgets) -> None:
        await self.remove_children()
        self._row_keys = []
        self._row_targets = {}
        await self.mount_all(widgets)

    def _add_row(self, table: DataTable, key: str, target: Union[str, FileItem], *cells) -> None:
        table.add_row(*cells, key=key)
        self._row_keys.append(key)
        self._row_targets[key] = target

    async def show_loading(self, message: str) -> None:
        self.model = None
        await self._replace(Static(cell(message, "italic"), classes="view-loading"))

    async def show_error(self, title: str, message: str) -> None:
        self.model = None
        await self._replace(
            Vertical(
                Static(cell(title, "bold"), classes="error-title"),
                Static(Text(message), classes="error-message"),
                classes="error-panel",
            )
        )

    async def show_bucket_listing(self, model: BucketListingModel) -> None:
        table = DataTable(classes="listing-table", cursor_type="row", zebra_stripes=True)
        await self._replace(Static(cell("Buckets", "bold"), classes="view-title"), table)
        self.model = model
        table.add_columns("Bucket", "Last revision")
        for index, row in enumerate(model.buckets):
            self._add_row(
                table,
                f"bucket:{index}",
                row.target,
                cell(row.name, "bold"),
                cell(row.last_revision_label),
            )
        table.focus()

    async def show_bucket(self, model: BucketModel) -> None:
        select_kwargs = {}
        if model.selected_revision is not None:
            select_kwargs["value"] = model.selected_revision
        revision_select = Select(
            [(option.label, option.value) for option in model.revisions],
            prompt="Revision",
            classes="revision-select",
            **select_kwargs,
        )
        breadcrumbs = Horizontal(
            *[
                LinkButton(crumb.label, crumb.target, classes="breadcrumb", compact=True)
                for crumb in model.breadcrumbs
            ],
            classes="breadcrumbs",
        )
        table = DataTable(classes="listing-table", cursor_type="row", zebra_stripes=True)
        await self._replace(
            Horizontal(
                Static(cell(model.bucket_name, "bold"), classes="view-title"),
                revision_select,
                classes="bucket-header",
            ),
            breadcrumbs,
            table,
        )
        self.model = model
        table.add_columns("", "Name", "Info", "Size", "Modified")
        for index, item in enumerate(model.dirs):
            self._add_row(
                table,
                f"dir:{index}",
                item.target,
                cell(glyph_for_icon(FOLDER_ICON)),
                cell(item.name, "bold"),
                cell(f"{item.nested_file_count} files", "dim"),
                cell(""),
                cell(""),
            )
        for index, item in enumerate(model.files):
            self._add_row(
                table,
                f"file:{index}",
                item,
                cell(glyph_for_icon(item.icon)),
                cell(item.name),
                cell(item.description or "", "italic"),
                cell(item.size_label),
                cell(item.modified_label),
            )
        table.focus()

    async def show_search(self, model: SearchModel) -> None:
        table = DataTable(classes="listing-table", cursor_type="row", zebra_stripes=True)
        title = f"Search results for {model.term!r} ({len(model.results)})"
        await self._replace(Static(cell(title, "bold"), classes="view-title"), table)
        self.model = model
        table.add_columns("Bucket", "Revision", "Path")
        for index, item in enumerate(model.results):
            self._add_row(
                table,
                f"result:{index}",
                item.target,
                cell(item.bucket_name, "bold"),
                cell(item.revision_label),
                cell(item.path),
            )
        table.focus()

    def selected_file(self) -> Optional[FileItem]:
        try:
            table = self.query_one(DataTable)
        except NoMatches:
            return None
        row = table.cursor_row
        if row is None or row < 0 or row >= len(self._row_keys):
            return None
        target = self._row_targets.get(self._row_keys[row])
        return target if isinstance(target, FileItem) else None

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        event.stop()
        target = self._row_targets.get(event.row_key.value)
        if isinstance(target, FileItem):
            self.post_message(self.OpenFile(target))
        elif isinstance(target, str):
            self.post_message(self.Navigate(target))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if not isinstance(event.button, LinkButton):
            return
        event.stop()
        self.post_message(self.Navigate(event.button.location))

    def on_select_changed(self, event: Select.Changed) -> None:
        if not event.select.has_class("revision-select"):
            return
        event.stop()
        if not isinstance(event.value, str):
            return
        for callback in list(self._listeners.get(REVISION_CHANGED, [])):
            callback(event.value)


class DownloadDialog(ModalScreen[Optional[str]]):
    BINDINGS = [
        ("escape", "cancel", "Cancel"),
    ]
    CSS = """
    DownloadDialog {
        align: center middle;
    }

    #download-dialog {
        width: 60;
        max-width: 80;
        min-width: 40;
        height: auto;
        margin: 1 2;
        padding: 1 2;
        border: round $panel;
        background: $panel;
        color: $text;
    }

    #download-info {
        width: 100%;
        height: auto;
        margin-top: 1;
        padding: 0 1;
        border: round $panel;
        background: $surface;
        color: $text-muted;
    }

    #download-actions {
        width: 100%;
        height: auto;
        align: center middle;
        margin-top: 1;
    }

    #download-ok {
        margin-left: 2;
    }
    """

    def __init__(self, default_path: str, info_lines: Optional[list[str]] = None) -> None:
        super().__init__()
        self._default_path = default_path
        self._info_lines = info_lines or []

    def compose(self) -> ComposeResult:
        with Vertical(id="download-dialog"):
            yield Static("Download to:")
            yield Input(value=self._default_path, id="download-path")
            if self._info_lines:
                yield Static("\n".join(self._info_lines), id="download-info", markup=False)
            with Horizontal(id="download-actions"):
                yield Button("Cancel", id="download-cancel", compact=True)
                yield Button("Download", id="download-ok", compact=True)

    def on_mount(self) -> None:
        self.query_one("#download-path", Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "download-cancel":
            self.dismiss(None)
        elif event.button.id == "download-ok":
            self._submit()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "download-path":
            return
        self._submit()

    def _submit(self) -> None:
        value = self.query_one("#download-path", Input).value.strip()
        if not value:
            return
        self.dismiss(value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class StoreBrowser(App):
    TITLE = "storebrowse"

    CSS = """
    #path-bar {
        height: 3;
        padding: 0 1;
        border: round $panel;
        background: $surface;
        color: $text;
        content-align: left middle;
    }

    #path-input {
        width: 1fr;
        height: 1;
        background: $panel;
        color: $text;
        border: none;
    }

    #nav-back {
        margin-left: 1;
        margin-right: 1;
    }

    #nav-back,
    #nav-forward,
    #download {
        height: 1;
        min-width: 3;
        padding: 0 1;
        content-align: center middle;
        border: none;
        background: $panel;
        color: $text;
    }

    #download {
        margin-left: 1;
    }

    #content {
        height: 1fr;
        border: round $panel;
    }

    .bucket-header {
        height: auto;
    }

    .view-title {
        width: 1fr;
        padding: 0 1;
        content-align: left middle;
    }

    .revision-select {
        width: 48;
    }

    .breadcrumbs {
        height: 1;
        padding: 0 1;
    }

    .breadcrumb {
        margin-right: 1;
        background: $panel;
    }

    .listing-table {
        height: 1fr;
        scrollbar-gutter: stable;
    }

    .view-loading {
        padding: 1 2;
        color: $text-muted;
    }

    .error-panel {
        height: auto;
        margin: 1 2;
        padding: 1 2;
        border: round $error;
        background: $error 15%;
    }

    .error-title {
        color: $error;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("escape", "confirm_quit", "Quit x2"),
        ("r", "reload", "Reload"),
        ("backspace", "up", "Up"),
        ("alt+left", "back", "Back"),
        ("alt+right", "forward", "Forward"),
        ("ctrl+l", "focus_path", "Path"),
        ("slash", "search", "Search"),
        ("o", "open_file", "Open"),
        ("d", "download", "Download"),
    ]

    class LocationChanged(Message):
        def __init__(self, location: str) -> None:
            super().__init__()
            self.location = location

    def __init__(
        self,
        config: Optional[BrowserConfig] = None,
        client: Optional[StoreClient] = None,
        initial_location: str = bucket_listing_hash(),
    ) -> None:
        super().__init__()
        self.config = config or BrowserConfig()
        self.client = client or StoreClient(self.config.base_url, timeout=self.config.timeout)
        self.sub_title = self.client.base_url
        self.location = ""
        self.router: Optional[Router] = None
        self._initial_location = initial_location
        self._history: list[str] = []
        self._history_index = -1
        self._suppress_history_once = False
        self._quit_escape_deadline = 0.0

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="path-bar"):
            yield Input(placeholder="#/buckets/<bucket>/<revision>/<dir> or ?term", id="path-input")
            yield Button("←", id="nav-back", compact=True)
            yield Button("→", id="nav-forward", compact=True)
            yield Button("↓", id="download", compact=True)
        yield ViewContainer(id="content")
        yield Footer()

    def on_mount(self) -> None:
        self.path_input = self.query_one("#path-input", Input)
        self.nav_back = self.query_one("#nav-back", Button)
        self.nav_forward = self.query_one("#nav-forward", Button)
        self.content = self.query_one("#content", ViewContainer)
        self.router = Router(
            self.client,
            self.content,
            self.set_location,
            spawn=self._spawn_render,
        )
        self.location = self._initial_location
        self._record_history(self.location)
        self._set_path_value(self.location)
        self.router.dispatch(self.location)

    async def on_unmount(self) -> None:
        if self.router is not None:
            self.router.close()
        await self.client.aclose()

    def _spawn_render(self, coro):
        # a new render cancels the superseded one before it mounts more widgets
        return self.run_worker(coro, group="view", exclusive=True)

    def set_location(self, location: str) -> bool:
        """Write the location; True when a LocationChanged will follow."""
        from_history = self._suppress_history_once
        self._suppress_history_once = False
        if location == self.location:
            return False
        self.location = location
        if from_history:
            self._sync_nav_buttons()
        else:
            self._record_history(location)
        self._set_path_value(location)
        self.post_message(self.LocationChanged(location))
        return True

    def navigate(self, location: str) -> None:
        if self.router is None:
            return
        self.router.navigate(location)

    def on_store_browser_location_changed(self, event: LocationChanged) -> None:
        if self.router is None:
            return
        # a later write may already have superseded this one
        if event.location != self.location:
            return
        self.router.dispatch(event.location)

    def on_view_container_navigate(self, event: ViewContainer.Navigate) -> None:
        self.navigate(event.location)

    async def on_view_container_open_file(self, event: ViewContainer.OpenFile) -> None:
        await self._open_file(event.item)

    async def _open_file(self, item: FileItem) -> None:
        url = self.client.absolute_url(item.url)
        opened = await asyncio.to_thread(webbrowser.open, url, 2)
        if not opened:
            self.notify(f"Could not open a browser for {url}", severity="warning")

    def _set_path_value(self, value: str) -> None:
        if hasattr(self, "path_input"):
            self.path_input.value = value

    def _record_history(self, location: str) -> None:
        if self._history and self._history_index >= 0:
            current = self._history[self._history_index]
            if current == location:
                self._sync_nav_buttons()
                return
            if not parse_hash(current).is_complete:
                # the incomplete entry was only a redirect to this one
                self._history[self._history_index] = location
                self._sync_nav_buttons()
                return
        if self._history_index < len(self._history) - 1:
            self._history = self._history[: self._history_index + 1]
        self._history.append(location)
        self._history_index = len(self._history) - 1
        self._sync_nav_buttons()

    def _sync_nav_buttons(self) -> None:
        if not hasattr(self, "nav_back"):
            return
        self.nav_back.disabled = self._history_index <= 0
        self.nav_forward.disabled = self._history_index >= len(self._history) - 1

    def action_back(self) -> None:
        if self._history_index <= 0:
            return
        self._history_index -= 1
        self._suppress_history_once = True
        self.navigate(self._history[self._history_index])

    def action_forward(self) -> None:
        if self._history_index >= len(self._history) - 1:
            return
        self._history_index += 1
        self._suppress_history_once = True
        self.navigate(self._history[self._history_index])

    def action_reload(self) -> None:
        if self.router is not None:
            self.router.dispatch(self.location)

    def action_up(self) -> None:
        route = parse_hash(self.location)
        if route.bucket_name is None or not route.root_dir_segments:
            self.navigate(bucket_listing_hash())
            return
        self.navigate(
            route_hash(
                route.bucket_name,
                route.revision_str or "latest",
                route.root_dir_segments[:-1],
            )
        )

    def action_confirm_quit(self) -> None:
        now = monotonic()
        if now <= self._quit_escape_deadline:
            self._quit_escape_deadline = 0.0
            self.exit()
            return
        self._quit_escape_deadline = now + ESC_QUIT_WINDOW_SECONDS
        self.notify(
            "Press Esc again within 1 second to quit.",
            severity="warning",
        )

    def action_focus_path(self) -> None:
        self.set_focus(self.path_input)
        if hasattr(self.path_input, "select_all"):
            self.path_input.select_all()

    def action_search(self) -> None:
        self.path_input.value = SEARCH_PREFIX
        self.set_focus(self.path_input)
        self.path_input.cursor_position = len(SEARCH_PREFIX)

    async def action_open_file(self) -> None:
        item = self.content.selected_file()
        if item is None:
            self.notify("Select a file to open.", severity="warning")
            return
        await self._open_file(item)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "path-input":
            return
        value = event.value.strip()
        if value.startswith(SEARCH_PREFIX):
            self.navigate(search_hash(value[len(SEARCH_PREFIX) :].strip()))
            return
        self.navigate(location_from_arg(value))

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "nav-back":
            self.action_back()
            return
        if event.button.id == "nav-forward":
            self.action_forward()
            return
        if event.button.id == "download":
            self.action_download()
            return

    def action_download(self) -> None:
        self.run_worker(self._download_flow(), exclusive=True)

    async def _download_flow(self) -> None:
        item = self.content.selected_file()
        route = parse_hash(self.location)
        if item is None or route.bucket_name is None or route.revision_str is None:
            self.notify("Select a file to download.", severity="warning")
            return
        default_path = str(Path(self.config.download_dir).expanduser() / item.name)
        info_lines = [
            f"Bucket: {route.bucket_name}",
            f"Revision: {route.revision_str}",
            f"Path: {item.path}",
        ]
        if item.size_label:
            info_lines.append(f"Size: {item.size_label}")
        target = await self.push_screen_wait(DownloadDialog(default_path, info_lines))
        if not target:
            return
        destination = Path(target).expanduser()
        if destination.is_dir():
            destination = destination / item.name
        self.notify("Downloading...", severity="information")
        try:
            saved = await self.client.download_file(
                route.bucket_name, route.revision_str, item.path, str(destination)
            )
        except (FetchFailure, OSError) as exc:
            self.notify(f"{exc}", severity="error")
            return
        self.notify(f"Downloaded to {saved}", severity="information")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[TextualHandler()],
    )


def _run_browser(config: BrowserConfig, initial_location: str) -> int:
    app = StoreBrowser(config=config, initial_location=initial_location)
    app.run()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="storebrowse",
        description="Terminal browser for an intelligent-store server",
    )
    parser.add_argument(
        "location",
        nargs="?",
        default="",
        help="Start location: a hash (#/buckets/docs) or bucket[/revision[/dir...]]",
    )
    parser.add_argument("--url", help="Server base URL (overrides config and env)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Persist --url/--timeout to the config file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log navigation details to the textual console",
    )
    args = parser.parse_args(argv)

    config = load_config()
    if args.url or args.timeout:
        config = BrowserConfig(
            base_url=(args.url or config.base_url).rstrip("/"),
            timeout=args.timeout if args.timeout and args.timeout > 0 else config.timeout,
            download_dir=config.download_dir,
        )
    if args.save_config and not save_config(config):
        print("Could not write the config file.")
        return 1
    _configure_logging(args.verbose)
    return _run_browser(config, location_from_arg(args.location))


if __name__ == "__main__":
    raise SystemExit(main())
