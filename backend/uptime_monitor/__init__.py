"""Scheduled uptime checks with state tracking and email alerts."""

__version__ = "1.0.0"
