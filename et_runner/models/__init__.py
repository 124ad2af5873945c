"""Data models for etrace runs."""
