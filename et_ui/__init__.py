"""Command-line interface for etrace."""
