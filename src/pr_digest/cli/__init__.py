"""Command-line interface for pr-digest."""
