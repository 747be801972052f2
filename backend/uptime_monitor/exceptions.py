"""Exceptions raised by the check pipeline."""


class MonitorError(Exception):
    """Base class for uptime monitor errors."""


class SiteNotFoundError(MonitorError):
    """The requested site does not exist or is not visible to the caller."""

    def __init__(self, site_id: int):
        super().__init__(f"Site not found: {site_id}")
        self.site_id = site_id


class AuthenticationError(MonitorError):
    """A bearer token could not be resolved to a user."""
