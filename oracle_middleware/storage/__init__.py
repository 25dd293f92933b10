"""Persistent job state."""
from .jobs import JobStore

__all__ = ["JobStore"]
