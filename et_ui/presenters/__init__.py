"""Renderers turning run results into console output."""
