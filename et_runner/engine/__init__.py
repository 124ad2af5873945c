"""Orchestration engine for startup timing trials."""
