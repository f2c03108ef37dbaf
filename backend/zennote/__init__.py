"""Folder/note document store with debounced autosave."""

__version__ = "0.1.0"
