"""Adapters for the external tools etrace drives."""
