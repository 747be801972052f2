"""Database models."""
from .site import Site
from .settings import AlertSettings
from .ping_log import PingLog
from .system_event import SystemEvent

__all__ = ["Site", "AlertSettings", "PingLog", "SystemEvent"]
