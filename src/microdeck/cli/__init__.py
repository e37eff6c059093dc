"""Command-line interface for microdeck."""
