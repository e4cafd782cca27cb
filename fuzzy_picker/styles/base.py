"""Central CSS definitions for the fuzzy-picker screens."""

# Overlay: centered dialog over the terminal
PICKER_MODAL_CSS = """
.picker-modal {
    align: center top;
    padding-top: 2;
}

.picker-modal #dialog {
    height: auto;
    max-height: 80%;
    padding: 0 1;
    background: $panel;
    border: round $accent;
}

.picker-modal.wide #dialog {
    width: 80vw;
    min-width: 50;
    max-width: 140;
}
"""

# Prompt, results and footer
PICKER_LIST_CSS = """
.picker-title {
    width: 100%;
    color: $text-muted;
    text-style: bold;
}

.picker-hint {
    width: 100%;
    color: $text-disabled;
}

.result-row {
    height: 1;
    padding: 0 1;
}

.result-row.selected {
    background: $accent 40%;
    text-style: bold;
}

.no-results {
    color: $text-disabled;
    padding: 0 1;
}
"""

BASE_CSS = PICKER_MODAL_CSS + PICKER_LIST_CSS
