"""Command-line interface for docwatch."""
