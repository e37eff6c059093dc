"""CLI commands for microdeck."""
