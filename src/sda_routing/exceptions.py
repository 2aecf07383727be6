"""Exceptions raised by the routing and prediction engine."""


class SDARoutingError(Exception):
    """Base exception for all SDA routing errors."""
    pass


class ConfigurationError(SDARoutingError, ValueError):
    """Raised when a classification value or predictor setting is out of domain."""
    pass
