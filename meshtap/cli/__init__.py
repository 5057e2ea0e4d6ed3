"""Command-line interface for meshtap."""
