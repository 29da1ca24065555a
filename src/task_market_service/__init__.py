"""Task market service: task lifecycle, time tracking and billing."""

__version__ = "0.1.0"
