"""Shared styles for fuzzy-picker."""

from fuzzy_picker.styles.base import BASE_CSS

__all__ = ["BASE_CSS"]
