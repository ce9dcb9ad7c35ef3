"""Interactive helpers for the command line application."""
