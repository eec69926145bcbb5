"""Textual screens for the presenter console."""
