class ConfigurationError(Exception):
    """Raised when the token subsystem is started without a usable signing secret."""


class InvalidTokenError(Exception):
    """Raised for malformed tokens, unexpected signing algorithms and bad signatures."""
