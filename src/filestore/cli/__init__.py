"""Command-line interface for the file store."""
