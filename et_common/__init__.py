"""Shared helpers for etrace."""

from et_common.api import ETraceError, configure_logging

__all__ = ["configure_logging", "ETraceError"]
