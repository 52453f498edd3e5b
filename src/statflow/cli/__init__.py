"""Command-line interface for statflow."""
