"""Textual screens for fuzzy-picker."""

from fuzzy_picker.screens.picker import PickerScreen, ResultRow

__all__ = ["PickerScreen", "ResultRow"]
