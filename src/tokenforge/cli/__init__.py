"""Command-line interface for tokenforge."""
