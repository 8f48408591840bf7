"""Exceptions raised while building a status report."""


class OctobotError(Exception):
    """Base exception for octobot errors."""
    pass


class UpstreamUnavailable(OctobotError):
    """The energy provider or the messaging API could not be reached or refused the request."""
    pass


class NotFound(OctobotError):
    """An expected record was missing from an upstream response."""
    pass


class ConfigurationMissing(OctobotError):
    """A required setting is absent. Fatal at startup."""
    pass
