"""Picker screen: the Textual result sink for a search session.

A modal overlay with a prompt and a live ranked list. All search
decisions live in SearchSession; this screen only forwards edits and
keys, and renders what the session pushes back.
"""

from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Input, Static

from ..models.candidate import Candidate, Selection
from ..models.notice import Notice, NoticeSeverity
from ..services.config import PickerOptions
from ..services.session import SearchSession, SelectCallback

# Textual toast severities
TOAST_SEVERITY = {
    NoticeSeverity.INFO: "information",
    NoticeSeverity.WARNING: "warning",
    NoticeSeverity.ERROR: "error",
}


class ResultRow(Static):
    """A single candidate in the results list."""

    def __init__(self, candidate: Candidate, **kwargs) -> None:
        super().__init__(candidate.display, markup=False, **kwargs)
        self.add_class("result-row")
        self.candidate = candidate


class PickerScreen(ModalScreen[Selection | None]):
    """Searchable picker modal over any candidate source."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("enter", "confirm", "Select", show=False),
        Binding("up", "move(-1)", "Up", show=False, priority=True),
        Binding("down", "move(1)", "Down", show=False, priority=True),
        Binding("ctrl+p", "move(-1)", "Up", show=False, priority=True),
        Binding("ctrl+n", "move(1)", "Down", show=False, priority=True),
        Binding("ctrl+k", "move(-1)", "Up", show=False, priority=True),
        Binding("ctrl+j", "move(1)", "Down", show=False, priority=True),
        Binding("shift+tab", "move(-1)", "Up", show=False, priority=True),
        Binding("tab", "move(1)", "Down", show=False, priority=True),
    ]

    DEFAULT_CSS = """
    PickerScreen #dialog {
        border: round $primary;
    }

    PickerScreen #picker-input {
        width: 100%;
        margin-bottom: 1;
    }

    PickerScreen #results {
        height: auto;
        max-height: 60vh;
        min-height: 5;
    }
    """

    def __init__(
        self,
        source: Any,
        options: PickerOptions | None = None,
        on_select: SelectCallback | None = None,
        initial_query: str = "",
        auto_select_single: bool = False,
    ) -> None:
        """Create the picker.

        Args:
            source: Source variant, item list or fetch callable
            options: Session options (title, limits, debounce)
            on_select: Called with (candidate, query) on confirmation
            initial_query: Prompt text to start with
            auto_select_single: Pick immediately when the initial query
                settles on exactly one result
        """
        super().__init__()
        self._source = source
        self._options = options or PickerOptions()
        self._on_select = on_select
        self._initial_query = initial_query
        self._auto_select_single = auto_select_single and bool(initial_query)
        self._session: SearchSession | None = None
        self._items: list[Candidate] = []
        self._selected = 1

    @property
    def session(self) -> SearchSession | None:
        return self._session

    def compose(self) -> ComposeResult:
        self.add_class("picker-modal", "wide")

        with Vertical(id="dialog"):
            yield Static(self._options.title, classes="picker-title", markup=False)
            yield Input(placeholder="type to search...", id="picker-input")
            yield VerticalScroll(id="results")
            yield Static("↑↓ navigate  enter select  esc cancel", classes="picker-hint")

    def on_mount(self) -> None:
        self._session = SearchSession.open(
            self._source,
            options=self._options,
            sink=self,
            on_select=self._on_select,
        )
        prompt = self.query_one("#picker-input", Input)
        if self._initial_query:
            prompt.value = self._initial_query
        prompt.focus()

    def on_unmount(self) -> None:
        if self._session is not None:
            self._session.close()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Forward every edit to the session."""
        if self._session is not None:
            self._session.set_query(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.action_confirm()

    # --- Result sink ---

    def on_ranked_list_changed(self, items: list[Candidate], selected_index: int) -> None:
        """Render a new ranked list (or just move the highlight)."""
        if items == self._items:
            self._selected = selected_index
            self._update_highlight()
        else:
            self._items = items
            self._selected = selected_index
            self._rebuild_results()
        self._maybe_auto_select()

    def on_notice(self, notice: Notice) -> None:
        self.notify(notice.message, severity=TOAST_SEVERITY[notice.severity])

    # --- Rendering ---

    def _rebuild_results(self) -> None:
        results = self.query_one("#results", VerticalScroll)
        results.remove_children()

        if not self._items:
            results.mount(Static("no matches", classes="no-results"))
            return

        rows = [ResultRow(candidate) for candidate in self._items]
        if 0 < self._selected <= len(rows):
            rows[self._selected - 1].add_class("selected")
        results.mount(*rows)

    def _update_highlight(self) -> None:
        rows = list(self.query_one("#results", VerticalScroll).query(ResultRow))
        for i, row in enumerate(rows, start=1):
            row.set_class(i == self._selected, "selected")
            if i == self._selected:
                row.scroll_visible()

    def _maybe_auto_select(self) -> None:
        session = self._session
        if not self._auto_select_single or session is None:
            return
        if session.query != self._initial_query:
            # Only the initial query may auto-select; any other edit opts out
            if session.query:
                self._auto_select_single = False
            return
        if session.is_fetching or session.is_debouncing:
            return
        self._auto_select_single = False
        if len(self._items) == 1:
            self.call_after_refresh(self.action_confirm)

    # --- Actions ---

    def action_move(self, delta: int) -> None:
        if self._session is not None:
            self._session.move_selection(delta)

    def action_confirm(self) -> None:
        if self._session is None:
            return
        selection = self._session.confirm_selection()
        if selection is not None:
            self.dismiss(selection)

    def action_cancel(self) -> None:
        if self._session is not None:
            self._session.close()
        self.dismiss(None)
